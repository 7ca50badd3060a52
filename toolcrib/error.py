"""
Error taxonomy for the inventory engine.

Every error carries a machine-readable ``code``, the HTTP status the API layer
answers with, and structured data that ends up next to ``code`` and
``message`` in the response body::

    {"detail": {"code": "INSUFFICIENT_STOCK", "message": "...", "available": 9}}

Services raise these before touching any row, so a rejected call never leaves
partial state behind.
"""

from typing import Any


class InventoryError(Exception):
    code = "INVENTORY_ERROR"
    status_code = 400

    def __init__(self, message: str, **data: Any):
        super().__init__(message)
        self.message = message
        self.data = data

    def to_detail(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.data}


# --- validation -------------------------------------------------------------

class ValidationError(InventoryError):
    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str, field: str | None = None, **data: Any):
        if field is not None:
            data["field"] = field
        super().__init__(message, **data)


class InvalidQuantityError(ValidationError):
    code = "INVALID_QUANTITY"

    def __init__(self, quantity: Any):
        super().__init__(
            f"Quantity must be a positive integer, got {quantity!r}",
            field="quantity",
            quantity=quantity if isinstance(quantity, (int, float)) else str(quantity),
        )


# --- lookups ----------------------------------------------------------------

class NotFoundError(InventoryError):
    code = "NOT_FOUND"
    status_code = 404


class ToolNotFoundError(NotFoundError):
    code = "TOOL_NOT_FOUND"

    def __init__(self, tool_id: int):
        super().__init__(f"Tool {tool_id} not found", tool_id=tool_id)


class OperarioNotFoundError(NotFoundError):
    code = "OPERARIO_NOT_FOUND"

    def __init__(self, operario_id: int):
        super().__init__(f"Operario {operario_id} not found", operario_id=operario_id)


class CategoryNotFoundError(NotFoundError):
    code = "CATEGORY_NOT_FOUND"

    def __init__(self, category_id: int):
        super().__init__(f"Category {category_id} not found", category_id=category_id)


class InvalidOperarioError(InventoryError):
    code = "INVALID_OPERARIO"
    status_code = 401

    def __init__(self):
        super().__init__("Unknown or inactive operario code")


# --- state conflicts --------------------------------------------------------

class InsufficientStockError(InventoryError):
    code = "INSUFFICIENT_STOCK"
    status_code = 400

    def __init__(self, available: int, requested: int):
        super().__init__(
            f"Insufficient stock: only {available} available",
            available=available,
            requested=requested,
        )
        self.available = available


class InsufficientInUseError(InventoryError):
    code = "INSUFFICIENT_IN_USE"
    status_code = 400

    def __init__(self, in_use: int, requested: int):
        super().__init__(
            f"Cannot check in {requested}: only {in_use} in use",
            in_use=in_use,
            requested=requested,
        )
        self.in_use = in_use


# --- integrity prevention ---------------------------------------------------

class NegativeAvailableError(InventoryError):
    code = "NEGATIVE_AVAILABLE"
    status_code = 409

    def __init__(self, total_quantity: int, in_use: int, maintenance: int):
        super().__init__(
            f"Total quantity {total_quantity} is below the {in_use + maintenance} "
            "units in use or in maintenance",
            total_quantity=total_quantity,
            in_use=in_use,
            maintenance=maintenance,
        )


class ToolInUseError(InventoryError):
    code = "TOOL_IN_USE"
    status_code = 409

    def __init__(self, tool_id: int, in_use: int):
        super().__init__(
            f"Tool {tool_id} cannot be deleted while {in_use} unit(s) are in use",
            tool_id=tool_id,
            in_use=in_use,
        )


class CategoryInUseError(InventoryError):
    code = "CATEGORY_IN_USE"
    status_code = 409

    def __init__(self, name: str, tool_count: int):
        super().__init__(
            f'Category "{name}" still has {tool_count} tool(s) assigned',
            tool_count=tool_count,
        )


class DuplicateCategoryError(InventoryError):
    code = "DUPLICATE_CATEGORY"
    status_code = 409


class DuplicateEmailError(InventoryError):
    code = "DUPLICATE_EMAIL"
    status_code = 409

    def __init__(self, email: str):
        super().__init__(f"Email {email} is already in use", field="email")


class CodeSpaceExhaustedError(InventoryError):
    code = "CODE_SPACE_EXHAUSTED"
    status_code = 503

    def __init__(self, attempts: int):
        super().__init__(
            f"No free operario code found after {attempts} attempts",
            attempts=attempts,
        )


class UnreconcilableToolError(InventoryError):
    code = "UNRECONCILABLE_TOOL"
    status_code = 409

    def __init__(self, tool_id: int, total_quantity: int, in_use: int, available: int):
        super().__init__(
            f"Ledger for tool {tool_id} implies in_use={in_use}, "
            f"available={available} against total {total_quantity}",
            tool_id=tool_id,
            total_quantity=total_quantity,
            computed_in_use=in_use,
            computed_available=available,
        )


# --- storage ----------------------------------------------------------------

class ConflictError(InventoryError):
    """A unique or check constraint rejected the write; another request got there first."""

    code = "CONFLICT"
    status_code = 409

    def __init__(self):
        super().__init__("The record was changed by another request, try again")


class LedgerImmutableError(InventoryError):
    code = "LEDGER_IMMUTABLE"
    status_code = 500

    def __init__(self, transaction_id: int | None, operation: str):
        super().__init__(
            f"Ledger entry {transaction_id} cannot be {operation}",
            transaction_id=transaction_id,
        )


class StorageError(InventoryError):
    code = "STORAGE_ERROR"
    status_code = 500

    def __init__(self):
        super().__init__("Internal storage error")
