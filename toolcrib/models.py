from typing import Optional
from sqlmodel import SQLModel, Field
from sqlalchemy import CheckConstraint, DateTime, Index, text
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _timestamp(**kwargs):
    # aware UTC in, timezone-aware column type
    return Field(default_factory=utcnow, sa_type=DateTime(timezone=True), **kwargs)


class Category(SQLModel, table=True):
    __tablename__ = "tool_categories"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    kind: str = Field(index=True)  # individual / common
    description: Optional[str] = None
    color: str = Field(default="#E2372B")
    active: bool = Field(default=True, index=True)
    created_at: datetime = _timestamp()
    updated_at: datetime = _timestamp()


class Tool(SQLModel, table=True):
    __tablename__ = "tools"
    __table_args__ = (
        CheckConstraint("total_quantity >= 0", name="ck_tools_total_nonneg"),
        CheckConstraint("available_quantity >= 0", name="ck_tools_available_nonneg"),
        CheckConstraint("in_use_quantity >= 0", name="ck_tools_in_use_nonneg"),
        CheckConstraint("maintenance_quantity >= 0", name="ck_tools_maintenance_nonneg"),
        CheckConstraint("unit_cost >= 0", name="ck_tools_unit_cost_nonneg"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    description: Optional[str] = None
    category_id: Optional[int] = Field(default=None, foreign_key="tool_categories.id", index=True)
    kind: str = Field(index=True)  # individual / common

    total_quantity: int = Field(default=0)
    available_quantity: int = Field(default=0)
    in_use_quantity: int = Field(default=0)
    maintenance_quantity: int = Field(default=0)

    unit_cost: float = Field(default=0)
    minimum_stock: int = Field(default=1)
    location: str = Field(default="Almacén Central")
    notes: Optional[str] = None
    status: str = Field(default="active", index=True)  # active / deleted

    created_at: datetime = _timestamp()
    updated_at: datetime = _timestamp()


class Operario(SQLModel, table=True):
    __tablename__ = "operarios"
    __table_args__ = (
        # one active holder per code; inactive rows may keep a reissued code.
        # MySQL has no partial indexes, there the code check in the service is all there is
        Index(
            "ux_operarios_active_access_code",
            "access_code",
            unique=True,
            sqlite_where=text("active = 1"),
            postgresql_where=text("active"),
        ).ddl_if(dialect=("sqlite", "postgresql")),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: Optional[str] = Field(default=None, unique=True)
    access_code: str = Field(index=True)
    active: bool = Field(default=True, index=True)
    created_at: datetime = _timestamp()
    updated_at: datetime = _timestamp()


class ToolTransaction(SQLModel, table=True):
    """One ledger row. Written once, never updated or deleted."""

    __tablename__ = "tool_transactions"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_tool_transactions_quantity_pos"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    tool_id: int = Field(foreign_key="tools.id", index=True)
    operario_id: int = Field(foreign_key="operarios.id", index=True)

    transaction_type: str = Field(index=True)  # checkout / checkin / ...
    quantity: int

    previous_available: int
    new_available: int

    project: Optional[str] = None
    notes: Optional[str] = None

    created_at: datetime = _timestamp(index=True)
