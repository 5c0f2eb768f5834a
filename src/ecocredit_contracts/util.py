from typing import Optional, Type

from .errors import ContractRevert
from .types import SCALE, ZERO_ADDRESS

################################################
# Generic functions
################################################


def require(condition: bool, error: Type[ContractRevert], reason: str) -> None:
    """Revert with ``error(reason)`` unless ``condition`` holds"""
    if not condition:
        raise error(reason)


def normalize_address(address: Optional[str]) -> str:
    """
    Canonical form of an account identifier.

    Hex (EVM) addresses are lower-cased so the same account always maps to
    the same ledger key; native ids such as ``0.0.1234`` are kept as given.
    """
    if address is None:
        return ZERO_ADDRESS
    address = address.strip()
    if address.lower().startswith("0x"):
        return "0x" + address[2:].lower()
    return address


def is_null_address(address: Optional[str]) -> bool:
    normalized = normalize_address(address)
    return normalized in ("", ZERO_ADDRESS)


def purchase_cost(amount: int, price_per_credit: int) -> int:
    """Cost in tinybars of ``amount`` scaled credits at a whole-credit price"""
    return amount * price_per_credit // SCALE
