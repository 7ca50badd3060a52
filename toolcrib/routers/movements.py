from typing import Optional

from fastapi import APIRouter, Depends, Query

from toolcrib.config import get_settings
from toolcrib.deps import get_store
from toolcrib.schemas import (
    KindCounter,
    MovementCreate,
    MovementResult,
    OperarioAuth,
    OperarioPublic,
    ReconcileResult,
    TransactionView,
)
from toolcrib.services import movements, reconciler
from toolcrib.services.stock import load_tool
from toolcrib.store.base import InventoryStore

router = APIRouter(prefix="/inventory", tags=["movements"])


@router.post("/auth", response_model=OperarioPublic)
def authenticate_operario(body: OperarioAuth, store: InventoryStore = Depends(get_store)):
    return movements.authenticate(store, body.operario_code)


@router.post("/checkout", response_model=MovementResult)
def checkout(body: MovementCreate, store: InventoryStore = Depends(get_store)):
    return movements.checkout(store, body.tool_id, body.operario_code, body.quantity, body.project)


@router.post("/checkin", response_model=MovementResult)
def checkin(body: MovementCreate, store: InventoryStore = Depends(get_store)):
    return movements.checkin(store, body.tool_id, body.operario_code, body.quantity, body.project)


@router.get("/transactions", response_model=list[TransactionView])
def recent_transactions(
    limit: Optional[int] = Query(None, ge=1, le=200),
    store: InventoryStore = Depends(get_store),
):
    return store.recent_transactions(limit or get_settings().recent_transactions_limit)


@router.get("/tools/{tool_id}/transactions", response_model=list[TransactionView])
def tool_transactions(
    tool_id: int,
    limit: int = Query(50, ge=1, le=200),
    store: InventoryStore = Depends(get_store),
):
    load_tool(store, tool_id)
    return store.tool_history(tool_id, limit)


@router.get("/type-counters", response_model=list[KindCounter])
def type_counters(store: InventoryStore = Depends(get_store)):
    return store.type_counters()


@router.post("/fix/{tool_id}", response_model=ReconcileResult)
def reconcile_tool(tool_id: int, store: InventoryStore = Depends(get_store)):
    return reconciler.reconcile(store, tool_id)


@router.post("/fix", response_model=list[ReconcileResult])
def reconcile_all_tools(store: InventoryStore = Depends(get_store)):
    return reconciler.reconcile_all(store)
