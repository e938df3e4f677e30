
class MathTools:
    """Provides essential mathematical utilities for record calculations."""

    EPLEY_BASE: float = 1.0278
    EPLEY_COEFF: float = 0.0278
    EPLEY_MAX_REPS: int = 30
    NEAR_MAX_MIN_REPS: int = 2
    NEAR_MAX_MAX_REPS: int = 10

    @staticmethod
    def clamp(value: float, min_value: float, max_value: float) -> float:
        """Clamp ``value`` to the inclusive range [min_value, max_value]."""
        if min_value > max_value:
            raise ValueError("min_value must not exceed max_value")
        return max(min_value, min(value, max_value))

    @classmethod
    def epley_1rm(cls, weight: float, reps: int) -> float:
        """Return the estimated one-rep max.

        A single is returned unchanged. Reps above 30 are clamped so the
        denominator stays positive.
        """
        if reps < 0:
            raise ValueError("reps must be non-negative")
        if reps == 0 or not weight:
            return 0
        if reps == 1:
            return weight
        r = cls.clamp(reps, 1, cls.EPLEY_MAX_REPS)
        return round(weight / (cls.EPLEY_BASE - cls.EPLEY_COEFF * r))

    @staticmethod
    def set_volume(effective_load: float, reps: int) -> float:
        if reps < 0:
            raise ValueError("reps must be non-negative")
        return effective_load * reps

    @staticmethod
    def rep_factor(reps: int) -> float:
        """Penalty applied to higher-rep sets in near-max scoring."""
        if reps <= 6:
            return 1.0
        if reps <= 8:
            return 0.9
        return 0.8

    @classmethod
    def near_max_weight_score(
        cls, effective_load: float, max_weight: float, reps: int
    ) -> float:
        """Score a weighted set by its closeness to ``max_weight``."""
        if max_weight <= 0:
            return 0.0
        ratio = effective_load / max_weight
        return ratio * ratio * cls.rep_factor(reps)

    @staticmethod
    def near_max_reps_score(reps: int, max_reps: int) -> float:
        """Score a bodyweight set by its closeness to ``max_reps``."""
        if max_reps <= 0:
            return 0.0
        ratio = reps / max_reps
        return ratio * ratio

    @staticmethod
    def power_score(weight: float, reps: int, is_bodyweight: bool) -> float:
        """Return the comparison score used for head-to-head duels."""
        if is_bodyweight:
            return float(reps)
        return weight * (1 + reps / 30)
