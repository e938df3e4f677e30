class WeightConverter:
    """Utility for converting between kg and lb."""

    KG_TO_LB = 2.20462
    LB_TO_KG = 0.453592
    POUND_UNITS = {"lb", "lbs"}

    @staticmethod
    def kg_to_lb(kg: float) -> float:
        return round(kg * WeightConverter.KG_TO_LB, 2)

    @staticmethod
    def lb_to_kg(lb: float) -> float:
        return round(lb * WeightConverter.LB_TO_KG, 2)

    @classmethod
    def is_pounds(cls, unit: str | None) -> bool:
        return (unit or "kg").strip().lower() in cls.POUND_UNITS

    @classmethod
    def to_kg(cls, weight: float, unit: str | None) -> float:
        """Return ``weight`` in kilograms without display rounding."""
        if not weight:
            return 0.0
        if cls.is_pounds(unit):
            return float(weight) * cls.LB_TO_KG
        return float(weight)

    @classmethod
    def real_weight(
        cls, weight: float, unit: str | None = "kg", unilateral: bool = False
    ) -> float:
        """Return the load actually moved, in kg.

        Unilateral entries log the weight of one side, so the converted value
        is doubled to model the combined left and right load.
        """
        kg = cls.to_kg(weight, unit)
        return kg * 2 if unilateral else kg

    @classmethod
    def effective_load(
        cls, real_weight: float, is_bodyweight: bool, body_weight: float
    ) -> float:
        """Return the load used for volume and near-max scoring."""
        return real_weight + body_weight if is_bodyweight else real_weight
