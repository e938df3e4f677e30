from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any, Iterable, Optional


STRENGTH = "strength"
DEFAULT_CATEGORY = "General"


@dataclass(frozen=True)
class SetEntry:
    """One logged set. Distance-only sets carry no reps."""

    weight: float = 0.0
    reps: int = 0
    unit: str = "kg"
    distance: Optional[float] = None
    time: Optional[str] = None
    rpe: Optional[float] = None

    @classmethod
    def from_dict(cls, data: dict) -> "SetEntry":
        return cls(
            weight=float(data.get("weight") or 0.0),
            reps=int(data.get("reps") or 0),
            unit=data.get("unit") or "kg",
            distance=data.get("distance"),
            time=data.get("time"),
            rpe=data.get("rpe"),
        )


@dataclass(frozen=True)
class ExerciseEntry:
    name: str
    sets: tuple[SetEntry, ...] = ()
    unilateral: bool = False
    type: Optional[str] = None
    category: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "ExerciseEntry":
        return cls(
            name=data.get("name") or "",
            sets=tuple(SetEntry.from_dict(s) for s in data.get("sets") or []),
            unilateral=bool(data.get("unilateral", False)),
            type=data.get("type"),
            category=data.get("category"),
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class WorkoutEntry:
    user_id: str
    date: str
    exercises: tuple[ExerciseEntry, ...] = ()
    id: Optional[int] = None
    created_at: Optional[str] = None
    notes: Optional[str] = None
    user_weight: Optional[float] = None
    source: str = "web"

    @property
    def day(self) -> str:
        """Calendar date portion of ``date``."""
        return self.date.split("T")[0]

    def sort_key(self) -> tuple:
        return (self.day, self.created_at or "", self.id or 0)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["exercises"] = [e.to_dict() for e in self.exercises]
        return data


@dataclass(frozen=True)
class CatalogEntry:
    id: str
    name_en: str
    name_es: str = ""
    category: str = DEFAULT_CATEGORY
    type: str = STRENGTH
    is_bodyweight: bool = False
    is_custom: bool = False


@dataclass(frozen=True)
class ExerciseProfile:
    """Classification of one exercise name, resolved against the catalog."""

    exercise_id: str
    canonical_id: str
    category: str
    exercise_type: str
    is_bodyweight: bool


@dataclass(frozen=True)
class SetSample:
    """A qualifying set normalized to kilograms, ready for aggregation."""

    real_weight: float
    effective_load: float
    reps: int
    date: str
    workout_id: Optional[int] = None


@dataclass(frozen=True)
class DailyMax:
    date: str
    max_weight_kg: float
    max_reps: int

    def beats(self, other: "DailyMax") -> bool:
        return self.max_weight_kg > other.max_weight_kg or (
            self.max_weight_kg == other.max_weight_kg and self.max_reps > other.max_reps
        )


@dataclass(frozen=True)
class NearMax:
    weight: float
    reps: int
    date: Optional[str] = None
    workout_id: Optional[int] = None


RECORD_VALUE_FIELDS = (
    "max_weight_kg",
    "max_weight_reps",
    "max_weight_date",
    "max_weight_workout_id",
    "max_1rm_kg",
    "max_1rm_date",
    "max_1rm_workout_id",
    "total_volume_kg",
    "max_reps",
    "max_reps_date",
    "max_reps_workout_id",
    "best_single_set_weight_kg",
    "best_single_set_reps",
    "best_single_set_volume_kg",
    "best_single_set_date",
    "best_single_set_workout_id",
    "best_near_max_weight_kg",
    "best_near_max_reps",
    "best_near_max_date",
    "best_near_max_workout_id",
    "daily_max",
)

_NUMERIC_DEFAULTS = {
    "max_weight_kg": 0.0,
    "max_weight_reps": 0,
    "max_1rm_kg": 0.0,
    "total_volume_kg": 0.0,
    "max_reps": 0,
}


@dataclass(frozen=True)
class ExerciseRecord:
    """Personal records of one user for one exact exercise name."""

    user_id: str
    exercise_id: str
    exercise_name: str
    max_weight_kg: float = 0.0
    max_weight_reps: int = 0
    max_weight_date: Optional[str] = None
    max_weight_workout_id: Optional[int] = None
    max_1rm_kg: float = 0.0
    max_1rm_date: Optional[str] = None
    max_1rm_workout_id: Optional[int] = None
    total_volume_kg: float = 0.0
    max_reps: int = 0
    max_reps_date: Optional[str] = None
    max_reps_workout_id: Optional[int] = None
    best_single_set_weight_kg: Optional[float] = None
    best_single_set_reps: Optional[int] = None
    best_single_set_volume_kg: Optional[float] = None
    best_single_set_date: Optional[str] = None
    best_single_set_workout_id: Optional[int] = None
    best_near_max_weight_kg: Optional[float] = None
    best_near_max_reps: Optional[int] = None
    best_near_max_date: Optional[str] = None
    best_near_max_workout_id: Optional[int] = None
    daily_max: tuple[DailyMax, ...] = ()
    is_bodyweight: bool = False
    category: str = DEFAULT_CATEGORY
    exercise_type: str = STRENGTH
    unit: str = "kg"
    id: Optional[int] = None
    version: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def near_max(self) -> Optional[NearMax]:
        if self.best_near_max_weight_kg is None and self.best_near_max_reps is None:
            return None
        return NearMax(
            weight=self.best_near_max_weight_kg or 0.0,
            reps=self.best_near_max_reps or 0,
            date=self.best_near_max_date,
            workout_id=self.best_near_max_workout_id,
        )

    def values(self) -> dict[str, Any]:
        """Return the derived fields, ``daily_max`` serialized to JSON."""
        data = {name: getattr(self, name) for name in RECORD_VALUE_FIELDS}
        data["daily_max"] = dump_daily_max(self.daily_max)
        return data

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["daily_max"] = [asdict(d) for d in self.daily_max]
        return data

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "ExerciseRecord":
        """Build a record from a store row, defaulting missing numbers."""
        data = dict(row)
        for name, default in _NUMERIC_DEFAULTS.items():
            if data.get(name) is None:
                data[name] = default
        data["daily_max"] = load_daily_max(data.get("daily_max"))
        data["is_bodyweight"] = bool(data.get("is_bodyweight") or False)
        data["category"] = data.get("category") or DEFAULT_CATEGORY
        data["exercise_type"] = data.get("exercise_type") or STRENGTH
        data["unit"] = data.get("unit") or "kg"
        data["version"] = int(data.get("version") or 0)
        return cls(**data)


def load_daily_max(raw: Any) -> tuple[DailyMax, ...]:
    """Parse the stored ``daily_max`` column; unreadable data yields ``()``."""
    if not raw:
        return ()
    try:
        items = json.loads(raw) if isinstance(raw, str) else raw
        if not isinstance(items, (list, tuple)):
            return ()
        return tuple(
            DailyMax(
                date=str(item["date"]),
                max_weight_kg=float(item.get("max_weight_kg") or 0.0),
                max_reps=int(item.get("max_reps") or 0),
            )
            for item in items
            if isinstance(item, dict) and item.get("date")
        )
    except (ValueError, TypeError):
        return ()


def dump_daily_max(entries: Iterable[DailyMax]) -> str:
    return json.dumps([asdict(d) for d in entries])
