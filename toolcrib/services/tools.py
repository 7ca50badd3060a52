import io
from datetime import datetime, timezone
from typing import Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.worksheet.table import Table, TableStyleInfo

from toolcrib.config import get_settings
from toolcrib.error import (
    CategoryNotFoundError,
    ToolInUseError,
    ValidationError,
)
from toolcrib.logging_config import get_logger
from toolcrib.models import Category, Tool, utcnow
from toolcrib.schemas import (
    InventoryStats,
    ToolCreate,
    ToolDeleteResult,
    ToolKind,
    ToolStatus,
    ToolUpdate,
)
from toolcrib.services.quantities import available_after_edit
from toolcrib.services.stock import load_tool
from toolcrib.store.base import InventoryStore

logger = get_logger("services.tools")


def _clean_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Tool name is required", field="name")
    return name


def _require_count(value, field: str, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise ValidationError(f"{field} must be an integer >= {minimum}", field=field)
    return value


def _active_category(store: InventoryStore, category_id: int, kind: str) -> Category:
    category = store.get_category(category_id)
    if category is None or not category.active:
        raise CategoryNotFoundError(category_id)
    if category.kind != kind:
        raise ValidationError(
            f'Category "{category.name}" is for {category.kind} tools, not {kind}',
            field="category_id",
        )
    return category


def add_tool(store: InventoryStore, data: ToolCreate) -> Tool:
    settings = get_settings()
    name = _clean_name(data.name)
    total = _require_count(data.total_quantity, "total_quantity", 1)
    minimum_stock = settings.default_minimum_stock if data.minimum_stock is None else data.minimum_stock
    _require_count(minimum_stock, "minimum_stock", 0)
    kind = ToolKind(data.kind).value

    with store.transaction():
        _active_category(store, data.category_id, kind)
        tool = store.add_tool(
            Tool(
                name=name,
                description=data.description,
                category_id=data.category_id,
                kind=kind,
                total_quantity=total,
                available_quantity=total,
                in_use_quantity=0,
                maintenance_quantity=0,
                unit_cost=data.unit_cost or 0,
                minimum_stock=minimum_stock,
                location=(data.location or "").strip() or settings.default_location,
                notes=data.notes,
                status=ToolStatus.active.value,
            )
        )
        tool_id = tool.id

    logger.info("tool_added", extra={"tool_id": tool_id, "tool_name": name, "total_quantity": total})
    return tool


def edit_tool(store: InventoryStore, tool_id: int, data: ToolUpdate) -> Tool:
    """Update metadata and total; available is recomputed to keep
    total == available + in_use + maintenance."""
    settings = get_settings()
    name = _clean_name(data.name)
    total = _require_count(data.total_quantity, "total_quantity", 0)

    with store.transaction():
        tool = load_tool(store, tool_id, for_update=True)
        _active_category(store, data.category_id, tool.kind)

        available = available_after_edit(total, tool.in_use_quantity, tool.maintenance_quantity)

        tool.name = name
        tool.description = data.description
        tool.category_id = data.category_id
        tool.total_quantity = total
        tool.available_quantity = available
        tool.location = (data.location or "").strip() or settings.default_location
        if data.unit_cost is not None:
            tool.unit_cost = data.unit_cost
        if data.minimum_stock is not None:
            tool.minimum_stock = _require_count(data.minimum_stock, "minimum_stock", 0)
        tool.notes = data.notes
        tool.updated_at = utcnow()
        store.save_tool(tool)

    logger.info(
        "tool_edited",
        extra={"tool_id": tool_id, "total_quantity": total, "available_quantity": available},
    )
    return tool


def delete_tool(store: InventoryStore, tool_id: int) -> ToolDeleteResult:
    """Remove a tool, or empty and mark it deleted when the ledger references it."""
    with store.transaction():
        tool = load_tool(store, tool_id, for_update=True)
        if tool.in_use_quantity > 0:
            raise ToolInUseError(tool.id, tool.in_use_quantity)

        name = tool.name
        if store.count_transactions_for_tool(tool.id) > 0:
            tool.total_quantity = 0
            tool.available_quantity = 0
            tool.maintenance_quantity = 0
            tool.status = ToolStatus.deleted.value
            tool.updated_at = utcnow()
            store.save_tool(tool)
            mode = "soft"
            message = f"Tool {name} marked as deleted (it has transaction history)"
        else:
            store.remove_tool(tool.id)
            mode = "hard"
            message = f"Tool {name} deleted"

    logger.info(f"tool_{mode}_deleted", extra={"tool_id": tool_id})
    return ToolDeleteResult(tool_id=tool_id, name=name, mode=mode, message=message)


def list_tools(store: InventoryStore, kind: Optional[ToolKind] = None, q: Optional[str] = None) -> list[Tool]:
    return store.list_tools(kind=kind, q=(q or "").strip() or None)


def list_available(store: InventoryStore, kind: Optional[ToolKind] = None) -> list[Tool]:
    return [t for t in store.list_tools(kind=kind) if t.available_quantity > 0]


def list_low_stock(store: InventoryStore) -> list[Tool]:
    return [t for t in store.list_tools() if t.available_quantity <= t.minimum_stock]


def inventory_stats(store: InventoryStore) -> InventoryStats:
    tools = store.list_tools()
    return InventoryStats(
        total_tool_types=len(tools),
        total_quantity=sum(t.total_quantity for t in tools),
        available_quantity=sum(t.available_quantity for t in tools),
        in_use_quantity=sum(t.in_use_quantity for t in tools),
        maintenance_quantity=sum(t.maintenance_quantity for t in tools),
        low_stock_tools=sum(1 for t in tools if t.available_quantity <= t.minimum_stock),
        active_operarios=len(store.list_operarios(active_only=True)),
    )


EXPORT_HEADER = [
    "ID", "Herramienta", "Tipo", "Categoría", "Ubicación", "Total", "Disponible",
    "En uso", "Mantenimiento", "Stock mínimo", "Coste unitario", "Actualizado",
]


def _excel_dt(v: Optional[datetime]) -> Optional[datetime]:
    # Excel cells carry no timezone; values are UTC
    if v is None:
        return None
    if v.tzinfo is not None:
        return v.astimezone(timezone.utc).replace(tzinfo=None)
    return v


def export_inventory_xlsx(store: InventoryStore, kind: Optional[ToolKind] = None) -> bytes:
    tools = store.list_tools(kind=kind)
    categories = {c.id: c.name for c in store.list_categories()}

    wb = Workbook()
    ws = wb.active
    ws.title = "Inventario"

    ws.append(EXPORT_HEADER)
    ws.row_dimensions[1].height = 24
    for col in range(1, len(EXPORT_HEADER) + 1):
        cell = ws.cell(row=1, column=col)
        cell.font = Font(bold=True)
        cell.fill = PatternFill("solid", fgColor="DDDDDD")
        cell.alignment = Alignment(horizontal="center", vertical="center")

    low_fill = PatternFill("solid", fgColor="F8D7DA")
    for t in tools:
        ws.append([
            t.id,
            t.name,
            t.kind,
            categories.get(t.category_id, ""),
            t.location,
            t.total_quantity,
            t.available_quantity,
            t.in_use_quantity,
            t.maintenance_quantity,
            t.minimum_stock,
            t.unit_cost,
            _excel_dt(t.updated_at),
        ])
        if t.available_quantity <= t.minimum_stock:
            ws.cell(row=ws.max_row, column=7).fill = low_fill

    last_row = 1 + len(tools)
    ws.freeze_panes = "A2"
    for r in range(2, last_row + 1):
        ws.cell(row=r, column=11).number_format = "#,##0.00"
        ws.cell(row=r, column=12).number_format = "yyyy-mm-dd hh:mm:ss"

    widths = {
        "A": 8, "B": 28, "C": 12, "D": 18, "E": 18, "F": 8,
        "G": 11, "H": 9, "I": 14, "J": 13, "K": 14, "L": 20,
    }
    for col, width in widths.items():
        ws.column_dimensions[col].width = width

    if tools:
        table = Table(displayName="Inventario", ref=f"A1:L{last_row}")
        table.tableStyleInfo = TableStyleInfo(name="TableStyleMedium9", showRowStripes=True)
        ws.add_table(table)

    ws.append([])
    ws.append(["Exportado", _excel_dt(utcnow()).strftime("%Y-%m-%d %H:%M:%S UTC")])

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()
