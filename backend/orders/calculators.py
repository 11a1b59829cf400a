"""
Bill calculators for table sessions.

InvoiceCalculator is pure: it never touches the database and can be called
repeatedly to drive a live preview before an invoice is committed.

    taxAmount      = subtotal * taxRate / 100
    serviceCharge  = subtotal * serviceChargeRate / 100
    totalDiscount  = discount + promoDiscount
    grandTotal     = subtotal + tax + serviceCharge + tip - totalDiscount - depositCredit

Percentage discounts and tips resolve against the subtotal only.

Usage:
    from orders.calculators import InvoiceCalculator
    calculator = InvoiceCalculator(tax_rate=10, service_charge_rate=5)
    totals = calculator.calculate(billable_items, discount=Adjustment.fixed(15000))
"""

from dataclasses import asdict, dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Optional, Union

from django.conf import settings

from core_backend.exceptions import ValidationError
from discounts.strategies import Adjustment
from payments.money import calculate_percentage, default_currency, quantize

ZERO = Decimal("0")


@dataclass(frozen=True)
class BillTotals:
    subtotal: Decimal
    tax_amount: Decimal
    service_charge: Decimal
    discount_amount: Decimal
    promo_discount_amount: Decimal
    deposit_credit: Decimal
    tip_amount: Decimal
    invoice_total: Decimal
    grand_total: Decimal
    clamped: bool = False

    @property
    def total_discount(self) -> Decimal:
        return self.discount_amount + self.promo_discount_amount

    @property
    def is_negative(self) -> bool:
        return self.grand_total < 0

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["total_discount"] = self.total_discount
        return data


def _line_is_billable(line) -> bool:
    if isinstance(line, dict):
        return line.get("status") != "cancelled" and line.get("order_status") != "cancelled"
    is_billable = getattr(line, "is_billable", None)
    if is_billable is not None:
        return is_billable
    return getattr(line, "status", None) != "cancelled"


def _line_value(line, name):
    if isinstance(line, dict):
        return line[name]
    return getattr(line, name)


def _to_decimal(value, label) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError("InvalidAmount", f"{label} '{value}' is not a number") from e


class InvoiceCalculator:
    """
    Turns a billable item set plus adjustments into a totals breakdown.

    Negative totals: a live preview may go below zero when discounts and
    deposit credit exceed the taxed subtotal. With clamp_negative enabled
    (BILLING_CLAMP_NEGATIVE_TOTAL) the totals are floored at zero instead.
    """

    def __init__(
        self,
        tax_rate: Union[Decimal, str, int],
        service_charge_rate: Union[Decimal, str, int],
        currency: Optional[str] = None,
        clamp_negative: Optional[bool] = None,
    ):
        self.tax_rate = self._validate_rate(tax_rate, "Tax rate")
        self.service_charge_rate = self._validate_rate(service_charge_rate, "Service charge rate")
        self.currency = currency or default_currency()
        if clamp_negative is None:
            clamp_negative = getattr(settings, "BILLING_CLAMP_NEGATIVE_TOTAL", False)
        self.clamp_negative = clamp_negative

    @staticmethod
    def _validate_rate(rate, label) -> Decimal:
        rate = _to_decimal(rate, label)
        if rate < 0 or rate > 100:
            raise ValidationError("InvalidRate", f"{label} must be between 0 and 100 (got {rate})")
        return rate

    @staticmethod
    def subtotal(lines: Iterable) -> Decimal:
        """
        Sum of quantity x unit price over billable lines. Accepts order items or
        dicts with quantity, unit_price and an optional status.
        """
        total = ZERO
        for line in lines:
            if not _line_is_billable(line):
                continue
            total += _to_decimal(_line_value(line, "unit_price"), "Unit price") * int(_line_value(line, "quantity"))
        return total

    def _money(self, amount) -> Decimal:
        return quantize(self.currency, amount)

    def _absolute(self, value, label) -> Decimal:
        amount = self._money(_to_decimal(value or ZERO, label))
        if amount < 0:
            raise ValidationError("InvalidAmount", f"{label} cannot be negative")
        return amount

    def calculate(
        self,
        source,
        discount=None,
        promo_discount=None,
        deposit_credit=ZERO,
        tip=None,
    ) -> BillTotals:
        """
        Args:
            source: Billable lines, or an already-summed subtotal
            discount: Adjustment or absolute amount
            promo_discount: Absolute amount or Adjustment from a promo
            deposit_credit: Absolute pre-paid credit
            tip: Adjustment (percent of subtotal or fixed) or absolute amount
        """
        if isinstance(source, (Decimal, int, str)):
            subtotal = _to_decimal(source, "Subtotal")
        else:
            subtotal = self.subtotal(source)
        subtotal = self._money(subtotal)
        if subtotal < 0:
            raise ValidationError("InvalidAmount", "Subtotal cannot be negative")

        tax_amount = calculate_percentage(self.currency, subtotal, self.tax_rate)
        service_charge = calculate_percentage(self.currency, subtotal, self.service_charge_rate)
        discount_amount = Adjustment.coerce(discount).resolve(subtotal, self.currency)
        promo_amount = Adjustment.coerce(promo_discount).resolve(subtotal, self.currency)
        tip_amount = Adjustment.coerce(tip).resolve(subtotal, self.currency)
        deposit = self._absolute(deposit_credit, "Deposit credit")

        invoice_total = subtotal + tax_amount + service_charge - discount_amount - promo_amount - deposit

        clamped = False
        if self.clamp_negative and invoice_total < 0:
            invoice_total = ZERO
            clamped = True
        # The tip is collected on top of the bill and never absorbs a credit.
        grand_total = invoice_total + tip_amount

        return BillTotals(
            subtotal=subtotal,
            tax_amount=tax_amount,
            service_charge=service_charge,
            discount_amount=discount_amount,
            promo_discount_amount=promo_amount,
            deposit_credit=deposit,
            tip_amount=tip_amount,
            invoice_total=invoice_total,
            grand_total=grand_total,
            clamped=clamped,
        )

    def committable(self, totals: BillTotals) -> BillTotals:
        """
        Adjusts a preview so it can be stored on an invoice, where the total may
        never be negative.

        With clamping enabled the excess is absorbed by trimming deposit credit
        first, then discount, then promo discount, so the stored components still
        add up. Without clamping the caller must fix the adjustments.
        """
        charges = totals.subtotal + totals.tax_amount + totals.service_charge
        credits = totals.discount_amount + totals.promo_discount_amount + totals.deposit_credit
        if credits <= charges:
            return replace(totals, invoice_total=charges - credits)

        if not self.clamp_negative:
            raise ValidationError(
                "AdjustmentsExceedBill",
                f"Discounts and deposit credit ({credits}) exceed the bill ({charges})",
                excess=credits - charges,
            )

        excess = credits - charges
        deposit = totals.deposit_credit
        discount = totals.discount_amount
        promo = totals.promo_discount_amount

        trimmed = min(deposit, excess)
        deposit -= trimmed
        excess -= trimmed
        trimmed = min(discount, excess)
        discount -= trimmed
        excess -= trimmed
        promo -= min(promo, excess)

        return replace(
            totals,
            deposit_credit=deposit,
            discount_amount=discount,
            promo_discount_amount=promo,
            invoice_total=ZERO,
            grand_total=totals.tip_amount,
            clamped=True,
        )
