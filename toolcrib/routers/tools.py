from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from toolcrib.deps import get_store
from toolcrib.schemas import (
    InventoryStats,
    StockSnapshot,
    ToolCreate,
    ToolDeleteResult,
    ToolKind,
    ToolRead,
    ToolUpdate,
)
from toolcrib.services import tools as tool_service
from toolcrib.services.stock import get_stock
from toolcrib.store.base import InventoryStore

router = APIRouter(prefix="/inventory", tags=["tools"])


@router.get("/tools", response_model=list[ToolRead])
def list_tools(
        kind: Optional[ToolKind] = None,
        q: Optional[str] = None,
        store: InventoryStore = Depends(get_store),
):
    return tool_service.list_tools(store, kind=kind, q=q)


@router.get("/available", response_model=list[ToolRead])
def list_available_tools(
        kind: Optional[ToolKind] = None,
        store: InventoryStore = Depends(get_store),
):
    return tool_service.list_available(store, kind=kind)


@router.get("/low-stock", response_model=list[ToolRead])
def list_low_stock(store: InventoryStore = Depends(get_store)):
    return tool_service.list_low_stock(store)


@router.get("/stats", response_model=InventoryStats)
def inventory_stats(store: InventoryStore = Depends(get_store)):
    return tool_service.inventory_stats(store)


@router.get("/export.xlsx")
def export_inventory(
    kind: Optional[ToolKind] = None,
    store: InventoryStore = Depends(get_store),
):
    content = tool_service.export_inventory_xlsx(store, kind=kind)
    filename = quote("inventario_herramientas.xlsx")
    return Response(
        content=content,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={
            "Content-Disposition": f"attachment; filename=\"inventory.xlsx\"; filename*=UTF-8''{filename}"
        },
    )


@router.post("/tools", response_model=ToolRead)
def add_tool(data: ToolCreate, store: InventoryStore = Depends(get_store)):
    return tool_service.add_tool(store, data)


@router.get("/tools/{tool_id}/stock", response_model=StockSnapshot)
def tool_stock(tool_id: int, store: InventoryStore = Depends(get_store)):
    return get_stock(store, tool_id)


@router.put("/tools/{tool_id}", response_model=ToolRead)
def edit_tool(tool_id: int, data: ToolUpdate, store: InventoryStore = Depends(get_store)):
    return tool_service.edit_tool(store, tool_id, data)


@router.delete("/tools/{tool_id}", response_model=ToolDeleteResult)
def delete_tool(tool_id: int, store: InventoryStore = Depends(get_store)):
    return tool_service.delete_tool(store, tool_id)
