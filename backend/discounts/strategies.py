"""
Adjustment variants for discounts and tips.

A discount or tip arrives either as a percentage of the subtotal or as a fixed
amount. Each variant is resolved once, against the subtotal only, into an
absolute amount before it reaches the invoice calculator.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
import logging

from core_backend.exceptions import ValidationError
from payments.money import calculate_percentage, default_currency, quantize

logger = logging.getLogger(__name__)


class AdjustmentStrategy(ABC):
    """The interface for resolving an adjustment against a subtotal."""

    @abstractmethod
    def resolve(self, subtotal: Decimal, value: Decimal, currency: str) -> Decimal:
        pass


class PercentOfSubtotalStrategy(AdjustmentStrategy):
    """Percentage of the pre-tax subtotal. Never applied to tax-inclusive amounts."""

    def resolve(self, subtotal: Decimal, value: Decimal, currency: str) -> Decimal:
        return calculate_percentage(currency, subtotal, value)


class FixedAmountStrategy(AdjustmentStrategy):
    """A caller-supplied absolute amount."""

    def resolve(self, subtotal: Decimal, value: Decimal, currency: str) -> Decimal:
        return quantize(currency, value)


@dataclass(frozen=True)
class Adjustment:
    """
    Tagged variant: ``Adjustment.percent(10)`` or ``Adjustment.fixed(15000)``.
    """

    PERCENT = "percent"
    FIXED = "fixed"

    kind: str
    value: Decimal

    def __post_init__(self):
        if self.kind not in STRATEGIES:
            raise ValidationError("InvalidAdjustment", f"Unknown adjustment kind '{self.kind}'")
        try:
            value = Decimal(str(self.value))
        except (InvalidOperation, ValueError) as e:
            raise ValidationError("InvalidAdjustment", f"'{self.value}' is not a valid amount") from e
        if value < 0:
            raise ValidationError("InvalidAdjustment", "Adjustments cannot be negative")
        object.__setattr__(self, "value", value)

    @classmethod
    def percent(cls, value) -> "Adjustment":
        return cls(cls.PERCENT, value)

    @classmethod
    def fixed(cls, value) -> "Adjustment":
        return cls(cls.FIXED, value)

    @classmethod
    def none(cls) -> "Adjustment":
        return cls(cls.FIXED, Decimal("0"))

    @classmethod
    def coerce(cls, value) -> "Adjustment":
        """Accepts an Adjustment, a plain amount (treated as fixed) or None."""
        if value is None:
            return cls.none()
        if isinstance(value, Adjustment):
            return value
        if isinstance(value, dict):
            return cls(value.get("kind", cls.FIXED), value.get("value", 0))
        return cls.fixed(value)

    @property
    def is_zero(self) -> bool:
        return self.value == 0

    def resolve(self, subtotal, currency: str = None) -> Decimal:
        currency = currency or default_currency()
        return STRATEGIES[self.kind].resolve(Decimal(str(subtotal)), self.value, currency)

    def describe(self) -> str:
        if self.kind == self.PERCENT:
            return f"{self.value.normalize():f}%"
        return f"{self.value.normalize():f}"


STRATEGIES = {
    Adjustment.PERCENT: PercentOfSubtotalStrategy(),
    Adjustment.FIXED: FixedAmountStrategy(),
}
