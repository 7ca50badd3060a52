from typing import Optional

from toolcrib.config import get_settings
from toolcrib.error import (
    CategoryInUseError,
    CategoryNotFoundError,
    DuplicateCategoryError,
    ValidationError,
)
from toolcrib.logging_config import get_logger
from toolcrib.models import Category, utcnow
from toolcrib.schemas import CategoryCreate, CategoryStats, CategoryUpdate, ToolKind
from toolcrib.store.base import InventoryStore

logger = get_logger("services.categories")


def _clean_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Category name is required", field="name")
    return name


def _get_active(store: InventoryStore, category_id: int) -> Category:
    category = store.get_category(category_id)
    if category is None or not category.active:
        raise CategoryNotFoundError(category_id)
    return category


def list_categories(store: InventoryStore, kind: Optional[ToolKind] = None) -> list[Category]:
    return store.list_categories(kind=kind)


def create_category(store: InventoryStore, data: CategoryCreate) -> Category:
    name = _clean_name(data.name)
    kind = ToolKind(data.kind)
    with store.transaction():
        if store.find_active_category(name, kind) is not None:
            raise DuplicateCategoryError(f'A {kind.value} category named "{name}" already exists')
        category = store.add_category(
            Category(
                name=name,
                kind=kind.value,
                description=data.description,
                color=data.color or get_settings().default_category_color,
                active=True,
            )
        )
        category_id = category.id
    logger.info("category_created", extra={"category_id": category_id})
    return category


def update_category(store: InventoryStore, category_id: int, data: CategoryUpdate) -> Category:
    name = _clean_name(data.name)
    kind = ToolKind(data.kind)
    with store.transaction():
        category = store.get_category(category_id)
        if category is None:
            raise CategoryNotFoundError(category_id)

        duplicate = store.find_active_category(name, kind)
        if duplicate is not None and duplicate.id != category.id:
            raise DuplicateCategoryError(f'Another {kind.value} category named "{name}" exists')

        in_use = store.count_tools_in_category(category.id)
        if in_use and kind.value != category.kind:
            raise CategoryInUseError(category.name, in_use)
        if in_use and not data.active:
            raise CategoryInUseError(category.name, in_use)

        category.name = name
        category.kind = kind.value
        category.description = data.description
        category.color = data.color or get_settings().default_category_color
        category.active = data.active
        category.updated_at = utcnow()
        store.save_category(category)
    return category


def delete_category(store: InventoryStore, category_id: int) -> Category:
    """Soft delete; refused while active tools still use the category."""
    with store.transaction():
        category = _get_active(store, category_id)
        in_use = store.count_tools_in_category(category.id)
        if in_use:
            raise CategoryInUseError(category.name, in_use)
        category.active = False
        category.updated_at = utcnow()
        store.save_category(category)
    logger.info("category_deactivated", extra={"category_id": category_id})
    return category


def category_stats(store: InventoryStore) -> list[CategoryStats]:
    tools = store.list_tools()
    stats = []
    for category in store.list_categories():
        mine = [t for t in tools if t.category_id == category.id]
        stats.append(
            CategoryStats(
                id=category.id,
                name=category.name,
                kind=category.kind,
                color=category.color,
                tool_count=len(mine),
                total_quantity=sum(t.total_quantity for t in mine),
                available_quantity=sum(t.available_quantity for t in mine),
                in_use_quantity=sum(t.in_use_quantity for t in mine),
            )
        )
    return stats
