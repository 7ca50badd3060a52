from typing import Optional

from fastapi import APIRouter, Depends

from toolcrib.deps import get_store
from toolcrib.schemas import CategoryCreate, CategoryRead, CategoryStats, CategoryUpdate, ToolKind
from toolcrib.services import categories as category_service
from toolcrib.store.base import InventoryStore

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=list[CategoryRead])
def list_categories(kind: Optional[ToolKind] = None, store: InventoryStore = Depends(get_store)):
    return category_service.list_categories(store, kind=kind)


# before /{category_id}
@router.get("/stats", response_model=list[CategoryStats])
def category_stats(store: InventoryStore = Depends(get_store)):
    return category_service.category_stats(store)


@router.post("", response_model=CategoryRead)
def create_category(data: CategoryCreate, store: InventoryStore = Depends(get_store)):
    return category_service.create_category(store, data)


@router.put("/{category_id}", response_model=CategoryRead)
def update_category(category_id: int, data: CategoryUpdate, store: InventoryStore = Depends(get_store)):
    return category_service.update_category(store, category_id, data)


@router.delete("/{category_id}", response_model=CategoryRead)
def delete_category(category_id: int, store: InventoryStore = Depends(get_store)):
    return category_service.delete_category(store, category_id)
