from typing import Optional, Literal
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime


class ToolKind(str, Enum):
    individual = "individual"
    common = "common"


class ToolStatus(str, Enum):
    active = "active"
    deleted = "deleted"


class TransactionType(str, Enum):
    checkout = "checkout"
    checkin = "checkin"
    # declared for the ledger schema, never written by this system
    maintenance = "maintenance"
    add_stock = "add_stock"
    remove_stock = "remove_stock"


# --- tools ------------------------------------------------------------------

class ToolCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    category_id: int
    kind: ToolKind
    total_quantity: int = Field(..., ge=1, strict=True)
    description: Optional[str] = None
    location: Optional[str] = None
    unit_cost: Optional[float] = Field(None, ge=0)
    minimum_stock: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None


class ToolUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    category_id: int
    total_quantity: int = Field(..., ge=0, strict=True)
    description: Optional[str] = None
    location: Optional[str] = None
    unit_cost: Optional[float] = Field(None, ge=0)
    minimum_stock: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None


class ToolRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    category_id: Optional[int] = None
    kind: ToolKind
    total_quantity: int
    available_quantity: int
    in_use_quantity: int
    maintenance_quantity: int
    unit_cost: float = 0
    minimum_stock: int
    location: str
    notes: Optional[str] = None
    status: ToolStatus
    created_at: datetime
    updated_at: datetime


class StockSnapshot(BaseModel):
    tool_id: int
    name: str
    kind: ToolKind
    total_quantity: int
    available_quantity: int
    in_use_quantity: int
    maintenance_quantity: int
    minimum_stock: int
    low_stock: bool


class ToolDeleteResult(BaseModel):
    tool_id: int
    name: str
    mode: Literal["hard", "soft"]
    message: str


class InventoryStats(BaseModel):
    total_tool_types: int
    total_quantity: int
    available_quantity: int
    in_use_quantity: int
    maintenance_quantity: int
    low_stock_tools: int
    active_operarios: int


# --- movements --------------------------------------------------------------

class MovementCreate(BaseModel):
    tool_id: int
    operario_code: str = Field(..., min_length=1, max_length=20)
    quantity: int = Field(..., gt=0, strict=True)
    project: Optional[str] = Field(None, max_length=255)


class MovementResult(BaseModel):
    transaction_id: int
    transaction_type: TransactionType
    tool_id: int
    tool: str
    operario: str
    quantity: int
    available_quantity: int
    in_use_quantity: int


class OperarioAuth(BaseModel):
    operario_code: str = Field(..., min_length=1, max_length=20)


class TransactionView(BaseModel):
    """Ledger entry joined with the display fields of its tool and operario."""

    id: int
    tool_id: int
    operario_id: int
    transaction_type: TransactionType
    quantity: int
    previous_available: int
    new_available: int
    project: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    tool_name: Optional[str] = None
    tool_location: Optional[str] = None
    operario_name: Optional[str] = None


class LedgerSums(BaseModel):
    checkout: int = 0
    checkin: int = 0


class KindCounter(BaseModel):
    kind: ToolKind
    in_use: int = 0
    returned: int = 0


class QuantityPair(BaseModel):
    available_quantity: int
    in_use_quantity: int


class ReconcileResult(BaseModel):
    tool_id: int
    tool: str
    before: QuantityPair
    after: QuantityPair
    total_checkout: int
    total_checkin: int
    changed: bool


# --- operarios --------------------------------------------------------------

class OperarioCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=255)


class OperarioUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    active: bool = True


class OperarioRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: Optional[str] = None
    access_code: str
    active: bool
    created_at: datetime


class OperarioPublic(BaseModel):
    """What the PIN pad gets back: no code echoed."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class OperarioDeleteResult(BaseModel):
    operario_id: int
    mode: Literal["hard", "soft"]
    message: str


# --- categories -------------------------------------------------------------

class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    kind: ToolKind
    description: Optional[str] = None
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")


class CategoryUpdate(CategoryCreate):
    active: bool = True


class CategoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    kind: ToolKind
    description: Optional[str] = None
    color: str
    active: bool


class CategoryStats(BaseModel):
    id: int
    name: str
    kind: ToolKind
    color: str
    tool_count: int
    total_quantity: int
    available_quantity: int
    in_use_quantity: int
