"""
Invoice calculator tests.

The calculator is pure, so these run without a database.
"""
import pytest
from decimal import Decimal

from core_backend.exceptions import ValidationError
from discounts.strategies import Adjustment
from orders.calculators import InvoiceCalculator


LINES = [
    {'item_name': 'Nasi Goreng', 'quantity': 2, 'unit_price': '35000'},
    {'item_name': 'Es Teh', 'quantity': 2, 'unit_price': '15000'},
    {'item_name': 'Sate Ayam', 'quantity': 1, 'unit_price': '40000', 'status': 'cancelled'},
]


@pytest.fixture
def calculator():
    return InvoiceCalculator(tax_rate=10, service_charge_rate=5, currency='IDR', clamp_negative=False)


@pytest.fixture
def clamping_calculator():
    return InvoiceCalculator(tax_rate=10, service_charge_rate=5, currency='IDR', clamp_negative=True)


class TestSubtotal:
    def test_cancelled_lines_are_excluded(self):
        assert InvoiceCalculator.subtotal(LINES) == Decimal('100000')

    def test_lines_of_cancelled_orders_are_excluded(self):
        lines = [{'quantity': 1, 'unit_price': '10000', 'order_status': 'cancelled'}]
        assert InvoiceCalculator.subtotal(lines) == Decimal('0')

    def test_empty(self):
        assert InvoiceCalculator.subtotal([]) == Decimal('0')


class TestCalculate:
    def test_tax_and_service_charge(self, calculator):
        """Scenario: subtotal 100,000 at 10% tax and 5% service charge totals 115,000."""
        totals = calculator.calculate(LINES)

        assert totals.subtotal == Decimal('100000')
        assert totals.tax_amount == Decimal('10000')
        assert totals.service_charge == Decimal('5000')
        assert totals.grand_total == Decimal('115000')
        assert totals.invoice_total == Decimal('115000')

    def test_flat_discount(self, calculator):
        """Scenario: a flat 15,000 discount brings the total to 100,000."""
        totals = calculator.calculate(LINES, discount=Adjustment.fixed(15000))

        assert totals.discount_amount == Decimal('15000')
        assert totals.grand_total == Decimal('100000')

    def test_plain_amount_is_a_fixed_discount(self, calculator):
        totals = calculator.calculate(Decimal('100000'), discount=15000)
        assert totals.grand_total == Decimal('100000')

    def test_percent_discount_uses_subtotal_only(self, calculator):
        totals = calculator.calculate(Decimal('100000'), discount=Adjustment.percent(10))

        # 10% of 100,000, not of the taxed 115,000
        assert totals.discount_amount == Decimal('10000')
        assert totals.grand_total == Decimal('105000')

    def test_promo_and_discount_add_up(self, calculator):
        totals = calculator.calculate(
            Decimal('100000'), discount=Adjustment.fixed(5000), promo_discount=Adjustment.percent(10)
        )

        assert totals.promo_discount_amount == Decimal('10000')
        assert totals.total_discount == Decimal('15000')
        assert totals.grand_total == Decimal('100000')

    def test_deposit_credit(self, calculator):
        totals = calculator.calculate(Decimal('100000'), deposit_credit=Decimal('50000'))
        assert totals.grand_total == Decimal('65000')

    def test_tip_is_on_top_of_invoice_total(self, calculator):
        totals = calculator.calculate(Decimal('100000'), tip=Adjustment.percent(5))

        assert totals.tip_amount == Decimal('5000')
        assert totals.invoice_total == Decimal('115000')
        assert totals.grand_total == Decimal('120000')

    def test_repeated_calls_give_the_same_result(self, calculator):
        first = calculator.calculate(LINES, discount=Adjustment.percent(7))
        second = calculator.calculate(LINES, discount=Adjustment.percent(7))
        assert first == second

    def test_rates_are_validated(self):
        with pytest.raises(ValidationError) as exc_info:
            InvoiceCalculator(tax_rate=101, service_charge_rate=5)
        assert exc_info.value.code == 'InvalidRate'

    def test_negative_deposit_rejected(self, calculator):
        with pytest.raises(ValidationError):
            calculator.calculate(Decimal('100000'), deposit_credit=Decimal('-1'))

    def test_negative_adjustment_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            Adjustment.fixed(-500)
        assert exc_info.value.code == 'InvalidAdjustment'


class TestNegativeTotals:
    """Adjustments larger than the taxed subtotal, with clamping off and on."""

    def test_preview_may_go_negative_by_default(self, calculator):
        totals = calculator.calculate(Decimal('10000'), discount=Decimal('8000'), deposit_credit=Decimal('5000'))

        # 10,000 + 1,000 + 500 - 8,000 - 5,000
        assert totals.grand_total == Decimal('-1500')
        assert totals.is_negative
        assert not totals.clamped

    def test_clamping_floors_at_zero(self, clamping_calculator):
        totals = clamping_calculator.calculate(
            Decimal('10000'), discount=Decimal('8000'), deposit_credit=Decimal('5000')
        )

        assert totals.grand_total == Decimal('0')
        assert totals.invoice_total == Decimal('0')
        assert totals.clamped

    def test_clamped_preview_keeps_the_full_tip(self, clamping_calculator):
        totals = clamping_calculator.calculate(
            Decimal('10000'), discount=Decimal('8000'), deposit_credit=Decimal('5000'), tip=Adjustment.fixed(5000)
        )

        assert totals.invoice_total == Decimal('0')
        assert totals.tip_amount == Decimal('5000')
        assert totals.grand_total == totals.invoice_total + totals.tip_amount == Decimal('5000')
        assert totals.clamped

    def test_clamped_preview_matches_the_committed_bill(self, clamping_calculator):
        totals = clamping_calculator.calculate(
            Decimal('10000'), discount=Decimal('8000'), deposit_credit=Decimal('5000'), tip=Adjustment.fixed(5000)
        )
        committed = clamping_calculator.committable(totals)

        assert committed.grand_total == totals.grand_total
        assert committed.invoice_total == totals.invoice_total

    def test_unclamped_tip_does_not_hide_the_excess(self, calculator):
        totals = calculator.calculate(
            Decimal('10000'), discount=Decimal('8000'), deposit_credit=Decimal('5000'), tip=Adjustment.fixed(1000)
        )

        assert totals.invoice_total == Decimal('-1500')
        assert totals.grand_total == Decimal('-500')

    def test_clamp_flag_defaults_to_setting(self, settings):
        settings.BILLING_CLAMP_NEGATIVE_TOTAL = True
        assert InvoiceCalculator(tax_rate=10, service_charge_rate=5).clamp_negative is True


class TestCommittable:
    def test_positive_totals_pass_through(self, calculator):
        totals = calculator.calculate(Decimal('100000'), discount=Decimal('15000'))
        assert calculator.committable(totals).invoice_total == Decimal('100000')

    def test_excess_adjustments_rejected_without_clamping(self, calculator):
        totals = calculator.calculate(Decimal('10000'), discount=Decimal('8000'), deposit_credit=Decimal('5000'))

        with pytest.raises(ValidationError) as exc_info:
            calculator.committable(totals)
        assert exc_info.value.code == 'AdjustmentsExceedBill'

    def test_clamping_trims_deposit_first(self, clamping_calculator):
        totals = clamping_calculator.calculate(
            Decimal('10000'), discount=Decimal('8000'), deposit_credit=Decimal('5000')
        )
        committed = clamping_calculator.committable(totals)

        assert committed.invoice_total == Decimal('0')
        assert committed.discount_amount == Decimal('8000')
        assert committed.deposit_credit == Decimal('3500')
        # Stored components still add up
        assert (
            committed.subtotal + committed.tax_amount + committed.service_charge
            - committed.total_discount - committed.deposit_credit
        ) == committed.invoice_total

    def test_clamping_trims_discount_after_deposit(self, clamping_calculator):
        totals = clamping_calculator.calculate(
            Decimal('10000'), discount=Decimal('12000'), deposit_credit=Decimal('1000')
        )
        committed = clamping_calculator.committable(totals)

        assert committed.deposit_credit == Decimal('0')
        assert committed.discount_amount == Decimal('11500')
        assert committed.invoice_total == Decimal('0')
