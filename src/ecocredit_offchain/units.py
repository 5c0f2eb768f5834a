"""
Amount conversion between display decimals and ledger integers.

Credits carry 2 implied decimals on the ledger; prices and payments are in
tinybars (10^-8 HBAR). All conversions go through Decimal.
"""

from decimal import Decimal, InvalidOperation
from typing import Union

from ecocredit_contracts.types import DECIMALS, SCALE
from ecocredit_contracts.util import purchase_cost

from .errors import LedgerValidationError


TINYBARS_PER_HBAR = 100_000_000
CREDIT_QUANTUM = Decimal(1).scaleb(-DECIMALS)  # 0.01

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number, field: str = "amount") -> Decimal:
    """Parse user input into a finite Decimal"""
    try:
        # floats go through str() so 0.1 stays 0.1
        amount = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise LedgerValidationError(f"Invalid {field}: {value!r}")
    if not amount.is_finite():
        raise LedgerValidationError(f"Invalid {field}: {value!r}")
    return amount


def to_scaled(value: Number, field: str = "amount") -> int:
    """
    Convert a credit amount to ledger units.

    Raises:
        LedgerValidationError: amount is not positive or has more than 2 decimals
    """
    amount = to_decimal(value, field)
    if amount <= 0:
        raise LedgerValidationError(f"{field.capitalize()} must be greater than 0")
    scaled = amount * SCALE
    if scaled != scaled.to_integral_value():
        raise LedgerValidationError(f"{field.capitalize()} supports at most {DECIMALS} decimal places")
    return int(scaled)


def from_scaled(value: int) -> Decimal:
    """Ledger units back to credits"""
    return (Decimal(int(value)) / SCALE).quantize(CREDIT_QUANTUM)


def hbar_to_tinybars(value: Number, field: str = "price") -> int:
    amount = to_decimal(value, field)
    if amount < 0:
        raise LedgerValidationError(f"{field.capitalize()} cannot be negative")
    tinybars = amount * TINYBARS_PER_HBAR
    if tinybars != tinybars.to_integral_value():
        raise LedgerValidationError(f"{field.capitalize()} is smaller than one tinybar")
    return int(tinybars)


def tinybars_to_hbar(value: int) -> Decimal:
    return Decimal(int(value)) / TINYBARS_PER_HBAR


def total_price_tinybars(amount: Number, price_per_credit_tinybars: int) -> int:
    """Payment the contract requires for ``amount`` credits"""
    return purchase_cost(to_scaled(amount), price_per_credit_tinybars)
