from fastapi import APIRouter, Depends

from toolcrib.deps import get_store
from toolcrib.schemas import OperarioCreate, OperarioDeleteResult, OperarioRead, OperarioUpdate
from toolcrib.services import operarios as operario_service
from toolcrib.store.base import InventoryStore

router = APIRouter(prefix="/operarios", tags=["operarios"])


@router.get("", response_model=list[OperarioRead])
def list_operarios(store: InventoryStore = Depends(get_store)):
    return operario_service.list_operarios(store)


@router.post("", response_model=OperarioRead)
def create_operario(data: OperarioCreate, store: InventoryStore = Depends(get_store)):
    return operario_service.create_operario(store, data)


@router.put("/{operario_id}", response_model=OperarioRead)
def update_operario(operario_id: int, data: OperarioUpdate, store: InventoryStore = Depends(get_store)):
    return operario_service.update_operario(store, operario_id, data)


@router.delete("/{operario_id}", response_model=OperarioDeleteResult)
def delete_operario(operario_id: int, store: InventoryStore = Depends(get_store)):
    return operario_service.delete_operario(store, operario_id)


@router.post("/{operario_id}/regenerate-code", response_model=OperarioRead)
def regenerate_code(operario_id: int, store: InventoryStore = Depends(get_store)):
    return operario_service.regenerate_code(store, operario_id)
