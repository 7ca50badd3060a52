"""
Movement Executor: the only code path that moves units between the
``available`` and ``in_use`` buckets of a tool.

Each call authenticates the operario by code, locks the tool row, validates,
updates the row and appends the matching ledger entry inside one store
transaction. A rejected or failed call leaves both the row and the ledger as
they were.

Checkout and checkin are not idempotent. A caller whose request timed out
must look at ``get_stock`` or the ledger before retrying, or the movement may
be applied twice.
"""

from typing import Optional

from toolcrib.error import InventoryError, InvalidOperarioError
from toolcrib.logging_config import get_logger
from toolcrib.models import Operario, ToolTransaction, utcnow
from toolcrib.schemas import MovementResult, TransactionType
from toolcrib.services.quantities import build_note, calc_checkin, calc_checkout
from toolcrib.services.stock import load_tool
from toolcrib.store.base import InventoryStore

logger = get_logger("services.movements")


def authenticate(store: InventoryStore, operario_code: str) -> Operario:
    code = (operario_code or "").strip()
    operario = store.find_active_operario(code) if code else None
    if operario is None:
        raise InvalidOperarioError()
    return operario


def _apply(
    store: InventoryStore,
    transaction_type: TransactionType,
    tool_id: int,
    operario_code: str,
    quantity: int,
    project: Optional[str],
) -> MovementResult:
    calc = calc_checkout if transaction_type == TransactionType.checkout else calc_checkin
    project_clean = (project or "").strip() or None

    try:
        with store.transaction():
            operario = authenticate(store, operario_code)
            tool = load_tool(store, tool_id, for_update=True)

            old_available = tool.available_quantity
            new_available, new_in_use = calc(old_available, tool.in_use_quantity, quantity)

            tool.available_quantity = new_available
            tool.in_use_quantity = new_in_use
            tool.updated_at = utcnow()
            store.save_tool(tool)

            entry = store.append_transaction(
                ToolTransaction(
                    tool_id=tool.id,
                    operario_id=operario.id,
                    transaction_type=transaction_type.value,
                    quantity=quantity,
                    previous_available=old_available,
                    new_available=new_available,
                    project=project_clean,
                    notes=build_note(transaction_type.value, quantity, old_available, new_available),
                )
            )

            result = MovementResult(
                transaction_id=entry.id,
                transaction_type=transaction_type,
                tool_id=tool.id,
                tool=tool.name,
                operario=operario.name,
                quantity=quantity,
                available_quantity=new_available,
                in_use_quantity=new_in_use,
            )
    except InventoryError as e:
        logger.info(
            f"{transaction_type.value}_rejected",
            extra={"tool_id": tool_id, "quantity": quantity, "reason": e.code},
        )
        raise

    logger.info(
        f"{transaction_type.value}_applied",
        extra={
            "tool_id": result.tool_id,
            "transaction_id": result.transaction_id,
            "operario": result.operario,
            "quantity": quantity,
            "previous_available": old_available,
            "new_available": new_available,
        },
    )
    return result


def checkout(
    store: InventoryStore,
    tool_id: int,
    operario_code: str,
    quantity: int,
    project: Optional[str] = None,
) -> MovementResult:
    """Move ``quantity`` units of a tool from available to in use."""
    return _apply(store, TransactionType.checkout, tool_id, operario_code, quantity, project)


def checkin(
    store: InventoryStore,
    tool_id: int,
    operario_code: str,
    quantity: int,
    project: Optional[str] = None,
) -> MovementResult:
    """Move ``quantity`` units of a tool from in use back to available."""
    return _apply(store, TransactionType.checkin, tool_id, operario_code, quantity, project)
