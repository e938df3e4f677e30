from .math_tools import MathTools
from .weight_converter import WeightConverter
from .record_reducer import (
    WorkoutContribution,
    build_samples,
    reduce_record,
    rebuild_record,
)

__all__ = [
    "MathTools",
    "WeightConverter",
    "WorkoutContribution",
    "build_samples",
    "reduce_record",
    "rebuild_record",
]
