"""
Monetary Amount Module

Single-currency amounts with proper Decimal precision for balances and
job prices. NEVER uses float for monetary values.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from typing import Union

# Set global decimal context for financial precision
getcontext().prec = 28  # High precision for financial calculations

PRECISION = 2
ZERO = Decimal('0.00')
CENT = Decimal('0.1') ** PRECISION

AmountLike = Union[Decimal, int, str, float]


def to_amount(value: AmountLike, exact: bool = False) -> Decimal:
    """
    Convert a value to a Decimal amount rounded to cents.

    Floats are converted through their string form so 0.1 stays 0.1.
    With ``exact`` set, values with sub-cent precision are rejected instead
    of rounded.

    Raises:
        ValueError: If the value is not a finite number, or is not a whole
            number of cents when ``exact`` is set
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a monetary amount: {value!r}")
    if not isinstance(value, Decimal):
        try:
            value = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Not a monetary amount: {value!r}")
    if not value.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    amount = value.quantize(CENT, rounding=ROUND_HALF_UP)
    if exact and amount != value:
        raise ValueError(f"Amount has sub-cent precision: {value}")
    return amount


def format_amount(amount: Decimal) -> str:
    """Format for display"""
    return f"{amount:,.{PRECISION}f}"
