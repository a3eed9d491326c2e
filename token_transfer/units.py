"""
Unit conversion helpers

Exact conversions between human-readable token amounts and integer base
units, plus the gas arithmetic used by the transfer executor. Everything is
done with Decimal and int; floats are converted through their string form.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN, localcontext
from typing import Optional, Union

from .models import FeeData

AmountLike = Union[str, int, float, Decimal]

GWEI_DECIMALS = 9
ETHER_DECIMALS = 18

DEFAULT_GAS_PRICE_GWEI = Decimal("20")


def _to_decimal(amount: AmountLike) -> Decimal:
    if isinstance(amount, bool):
        raise ValueError(f"Invalid amount: {amount!r}")
    if isinstance(amount, float):
        # str() keeps the shortest repr, so 0.1 stays 0.1
        amount = str(amount)
    try:
        value = Decimal(amount)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Invalid amount: {amount!r}") from None
    if not value.is_finite():
        raise ValueError(f"Invalid amount: {amount!r}")
    return value


def to_base_units(amount: AmountLike, decimals: int) -> int:
    """
    Convert a human-readable amount into integer base units

    Args:
        amount: Amount such as "1.5", 2, Decimal("0.001")
        decimals: Token decimals (0-255)

    Returns:
        round(amount * 10**decimals) as an int

    Raises:
        ValueError: If the amount is negative or not a finite number
    """
    if not 0 <= decimals <= 255:
        raise ValueError(f"Decimals out of range: {decimals}")

    value = _to_decimal(amount)
    if value < 0:
        raise ValueError(f"Amount must not be negative: {amount!r}")

    # Wide enough for uint256 values at any decimals, so nothing is rounded early
    with localcontext() as ctx:
        ctx.prec = 400
        scaled = value.scaleb(decimals)
        return int(scaled.to_integral_value(rounding=ROUND_HALF_EVEN))


def from_base_units(value: int, decimals: int) -> str:
    """
    Format integer base units as a decimal string

    Trailing zeros are dropped but at least one fractional digit is kept,
    e.g. 150 with 2 decimals -> "1.5", 100 -> "1.0".
    """
    value = int(value)
    sign = "-" if value < 0 else ""
    whole, fraction = divmod(abs(value), 10 ** decimals)

    fraction_str = str(fraction).rjust(decimals, "0").rstrip("0") if decimals else ""
    return f"{sign}{whole}.{fraction_str or '0'}"


def parse_gwei(amount: AmountLike) -> int:
    """Convert a gwei amount to wei"""
    return to_base_units(amount, GWEI_DECIMALS)


def format_gwei(wei: int) -> str:
    return from_base_units(wei, GWEI_DECIMALS)


def format_ether(wei: int) -> str:
    return from_base_units(wei, ETHER_DECIMALS)


def apply_gas_buffer(estimated_gas: int, buffer_percent: int = 120) -> int:
    """Scale an estimate by buffer_percent, rounding down after multiplying"""
    return int(estimated_gas) * buffer_percent // 100


def resolve_gas_price(fee_data: FeeData, default_gwei: Optional[AmountLike] = None) -> int:
    """
    Pick the gas price for a legacy transaction

    Args:
        fee_data: Fee data reported by the network
        default_gwei: Configured fallback in gwei (20 gwei when None)

    Returns:
        Gas price in wei
    """
    if fee_data.gas_price is not None:
        return fee_data.gas_price

    if default_gwei is None:
        default_gwei = DEFAULT_GAS_PRICE_GWEI
    return parse_gwei(default_gwei)
