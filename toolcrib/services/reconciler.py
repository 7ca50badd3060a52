"""
Reconciler: rebuilds a tool's ``available``/``in_use`` split from its ledger.

    in_use    = sum(checkout) - sum(checkin)
    available = total_quantity - in_use

``maintenance_quantity`` is left alone: no movement writes maintenance
entries, so the ledger has nothing to say about it.

The result depends only on the ledger and ``total_quantity``, so running it
twice in a row writes nothing the second time. The tool row is locked for the
duration, which keeps a concurrent movement from landing between the sums and
the write.
"""

from toolcrib.error import UnreconcilableToolError
from toolcrib.logging_config import get_logger
from toolcrib.models import utcnow
from toolcrib.schemas import QuantityPair, ReconcileResult
from toolcrib.services.quantities import reconciled_quantities
from toolcrib.services.stock import load_tool
from toolcrib.store.base import InventoryStore

logger = get_logger("services.reconciler")


def reconcile(store: InventoryStore, tool_id: int) -> ReconcileResult:
    with store.transaction():
        tool = load_tool(store, tool_id, for_update=True)
        sums = store.sum_quantity_by_type(tool.id)

        available, in_use = reconciled_quantities(tool.total_quantity, sums.checkout, sums.checkin)
        if available < 0 or in_use < 0:
            raise UnreconcilableToolError(tool.id, tool.total_quantity, in_use, available)

        before = QuantityPair(
            available_quantity=tool.available_quantity,
            in_use_quantity=tool.in_use_quantity,
        )
        after = QuantityPair(available_quantity=available, in_use_quantity=in_use)
        changed = before != after

        if changed:
            tool.available_quantity = available
            tool.in_use_quantity = in_use
            tool.updated_at = utcnow()
            store.save_tool(tool)

        result = ReconcileResult(
            tool_id=tool.id,
            tool=tool.name,
            before=before,
            after=after,
            total_checkout=sums.checkout,
            total_checkin=sums.checkin,
            changed=changed,
        )

    log = logger.warning if changed else logger.info
    log(
        "tool_reconciled",
        extra={
            "tool_id": result.tool_id,
            "changed": changed,
            "before": before.model_dump(),
            "after": after.model_dump(),
            "total_checkout": sums.checkout,
            "total_checkin": sums.checkin,
        },
    )
    return result


def reconcile_all(store: InventoryStore) -> list[ReconcileResult]:
    """Reconcile every active tool, one transaction each; return those that changed.

    A tool whose ledger cannot be reconciled is logged and skipped so one bad
    row does not block the rest.
    """
    changed = []
    tool_ids = [tool.id for tool in store.list_tools()]
    for tool_id in tool_ids:
        try:
            result = reconcile(store, tool_id)
        except UnreconcilableToolError as e:
            logger.error("tool_unreconcilable", extra=e.data)
            continue
        if result.changed:
            changed.append(result)
    return changed
