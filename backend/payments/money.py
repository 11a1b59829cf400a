"""
Monetary precision helpers for billing calculations.

All invoice math runs through this module so that no rounding leaks between a
bill and its split shares.

Key Principles:
1. NEVER use float for money
2. Always quantize Decimals BEFORE converting to minor units
3. Use ROUND_HALF_EVEN (banker's rounding) to prevent systematic bias
4. Partition in integer minor units and place the remainder deterministically
5. Validate sums match exactly (no drift)
"""

from decimal import Decimal, ROUND_HALF_EVEN, getcontext
from typing import List, Optional, Union

from django.conf import settings

# Set high precision for intermediate calculations
getcontext().prec = 28

# Currency minor unit exponents (how many decimal places)
CURRENCY_EXPONENT = {
    # Zero-decimal currencies
    "IDR": 0,  # Indonesian Rupiah (sen not used in practice)
    "JPY": 0,  # Japanese Yen (no subunit)
    "KRW": 0,  # South Korean Won (no subunit)
    "VND": 0,  # Vietnamese Dong (no subunit)

    # 2-decimal currencies
    "USD": 2,  # United States Dollar (cents)
    "EUR": 2,  # Euro (cents)
    "SGD": 2,  # Singapore Dollar (cents)
    "MYR": 2,  # Malaysian Ringgit (sen)
    "AUD": 2,  # Australian Dollar (cents)

    # 3-decimal currencies
    "KWD": 3,  # Kuwaiti Dinar (fils)
}

Amount = Union[Decimal, str, int, float]


def default_currency() -> str:
    """The single billing currency configured for this deployment."""
    return getattr(settings, "BILLING_CURRENCY", "IDR")


def currency_exponent(currency: Optional[str] = None) -> int:
    """
    Get the number of decimal places for a currency.

    Examples:
        >>> currency_exponent("IDR")
        0
        >>> currency_exponent("USD")
        2
    """
    currency = currency or default_currency()
    return CURRENCY_EXPONENT.get(currency.upper(), 2)


def quantize_decimal(currency: Optional[str] = None) -> Decimal:
    """Smallest unit of the currency, e.g. Decimal('1') for IDR, Decimal('0.01') for USD."""
    return Decimal(10) ** -currency_exponent(currency)


def quantize(currency: Optional[str], amount: Amount) -> Decimal:
    """
    Round to currency decimals using banker's rounding (ROUND_HALF_EVEN).

    Examples:
        >>> quantize("USD", "10.125")
        Decimal('10.12')
        >>> quantize("IDR", "1234.5")
        Decimal('1234')
    """
    if isinstance(amount, float):
        # Convert float to string first to avoid precision issues
        amount = str(amount)

    amount_decimal = Decimal(amount)
    return amount_decimal.quantize(quantize_decimal(currency), rounding=ROUND_HALF_EVEN)


def money(amount: Amount) -> Decimal:
    """Quantize in the configured billing currency."""
    return quantize(default_currency(), amount)


def to_minor(currency: Optional[str], amount: Amount) -> int:
    """
    Convert to minor units after quantization.

    Examples:
        >>> to_minor("USD", "10.127")
        1013
        >>> to_minor("IDR", "33333.4")
        33333
    """
    quantized = quantize(currency, amount)
    exponent = currency_exponent(currency)
    return int((quantized * (10 ** exponent)).to_integral_value())


def from_minor(currency: Optional[str], minor: int) -> Decimal:
    """
    Convert from minor units back to a quantized Decimal.

    Examples:
        >>> from_minor("USD", 1013)
        Decimal('10.13')
        >>> from_minor("IDR", 33334)
        Decimal('33334')
    """
    return quantize(currency, Decimal(minor) / (10 ** currency_exponent(currency)))


def split_evenly(total_minor: int, parts: int) -> List[int]:
    """
    Partition an amount into ``parts`` near-equal shares.

    The remainder goes one unit at a time to the first shares, so the result is
    deterministic and ``sum(result) == total_minor`` exactly. Negative totals are
    partitioned by magnitude with the sign preserved.

    Examples:
        >>> split_evenly(100000, 3)
        [33334, 33333, 33333]
        >>> split_evenly(10, 4)
        [3, 3, 2, 2]
    """
    if parts < 1:
        raise ValueError(f"Cannot split into {parts} parts")

    sign = -1 if total_minor < 0 else 1
    base, remainder = divmod(abs(total_minor), parts)
    shares = [base + 1 if i < remainder else base for i in range(parts)]
    return [sign * share for share in shares]


def validate_minor_sum(
    components: List[int],
    expected_total: int,
    context: str = "",
) -> None:
    """
    Validate that sum of components equals expected total.

    Raises:
        ValueError: If the sum doesn't match exactly

    Examples:
        >>> validate_minor_sum([33334, 33333, 33333], 100000)
        >>> validate_minor_sum([50, 30, 21], 100)
        Traceback (most recent call last):
        ValueError: Minor unit sum mismatch: expected 100, got 101 (diff: +1)
    """
    actual = sum(components)
    diff = actual - expected_total

    if diff != 0:
        sign = "+" if diff > 0 else ""
        raise ValueError(
            f"Minor unit sum mismatch{' ' + context if context else ''}: "
            f"expected {expected_total}, got {actual} "
            f"(diff: {sign}{diff})"
        )


def calculate_percentage(
    currency: Optional[str],
    amount: Amount,
    percentage: Amount,
) -> Decimal:
    """
    Percentage of an amount, quantized to the currency.

    Examples:
        >>> calculate_percentage("IDR", "100000", "10")
        Decimal('10000')
        >>> calculate_percentage("USD", "100.00", "8.5")
        Decimal('8.50')
    """
    amount_decimal = Decimal(str(amount))
    percentage_decimal = Decimal(str(percentage))
    return quantize(currency, amount_decimal * percentage_decimal / Decimal("100"))


def format_money(currency: Optional[str], amount: Amount) -> str:
    """
    Format an amount for human-readable messages.

    Examples:
        >>> format_money("IDR", 115000)
        'Rp115,000'
        >>> format_money("USD", "10.5")
        '$10.50'
    """
    currency = (currency or default_currency()).upper()
    symbols = {
        "IDR": "Rp",
        "USD": "$",
        "EUR": "€",
        "SGD": "S$",
        "JPY": "¥",
    }
    symbol = symbols.get(currency, currency + " ")
    value = quantize(currency, amount)
    exponent = currency_exponent(currency)
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.{exponent}f}"
