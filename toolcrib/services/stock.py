from toolcrib.error import ToolNotFoundError
from toolcrib.models import Tool
from toolcrib.schemas import StockSnapshot, ToolStatus
from toolcrib.store.base import InventoryStore


def load_tool(store: InventoryStore, tool_id: int, for_update: bool = False) -> Tool:
    """Fetch an active tool or raise ToolNotFoundError.

    Soft-deleted tools count as missing: they keep their row only so that
    ledger entries still resolve a name.
    """
    tool = store.get_tool(tool_id, for_update=for_update)
    if tool is None or tool.status != ToolStatus.active.value:
        raise ToolNotFoundError(tool_id)
    return tool


def snapshot(tool: Tool) -> StockSnapshot:
    return StockSnapshot(
        tool_id=tool.id,
        name=tool.name,
        kind=tool.kind,
        total_quantity=tool.total_quantity,
        available_quantity=tool.available_quantity,
        in_use_quantity=tool.in_use_quantity,
        maintenance_quantity=tool.maintenance_quantity,
        minimum_stock=tool.minimum_stock,
        low_stock=tool.available_quantity <= tool.minimum_stock,
    )


def get_stock(store: InventoryStore, tool_id: int) -> StockSnapshot:
    return snapshot(load_tool(store, tool_id))
