from typing import Any

from toolcrib.error import (
    InsufficientInUseError,
    InsufficientStockError,
    InvalidQuantityError,
    NegativeAvailableError,
)


def require_positive_quantity(quantity: Any) -> int:
    # bool is an int subclass; True is not "1 unit"
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantityError(quantity)
    return quantity


def calc_checkout(available: int, in_use: int, quantity: int) -> tuple[int, int]:
    """available -> in_use. Returns (new_available, new_in_use)."""
    quantity = require_positive_quantity(quantity)
    if available < quantity:
        raise InsufficientStockError(available=available, requested=quantity)
    return available - quantity, in_use + quantity


def calc_checkin(available: int, in_use: int, quantity: int) -> tuple[int, int]:
    """in_use -> available. Returns (new_available, new_in_use)."""
    quantity = require_positive_quantity(quantity)
    if in_use < quantity:
        raise InsufficientInUseError(in_use=in_use, requested=quantity)
    return available + quantity, in_use - quantity


def available_after_edit(total_quantity: int, in_use: int, maintenance: int) -> int:
    available = total_quantity - in_use - maintenance
    if available < 0:
        raise NegativeAvailableError(total_quantity, in_use, maintenance)
    return available


def reconciled_quantities(total_quantity: int, checkout_sum: int, checkin_sum: int) -> tuple[int, int]:
    """What the ledger says: (available, in_use). May be negative; caller decides."""
    in_use = checkout_sum - checkin_sum
    return total_quantity - in_use, in_use


def build_note(transaction_type: str, quantity: int, old_available: int, new_available: int) -> str:
    if transaction_type == "checkout":
        return f"checkout {quantity} ({old_available}->{new_available})"
    return f"checkin +{quantity} ({old_available}->{new_available})"
