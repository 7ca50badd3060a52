"""
Repository interface shared by every backing store.

Services only ever talk to an ``InventoryStore``. Records are the SQLModel
classes from ``toolcrib.models``; the SQL store hands out session-bound rows,
the memory store hands out detached copies, and in both cases a changed
record is persisted by passing it back to the matching ``save_*`` method.

All writes that belong together run inside ``transaction()``: either every
change made in the block is kept or none is.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional

from toolcrib.models import Category, Operario, Tool, ToolTransaction
from toolcrib.schemas import KindCounter, LedgerSums, ToolKind, TransactionView


class InventoryStore(ABC):

    @abstractmethod
    def transaction(self) -> AbstractContextManager["InventoryStore"]:
        """Unit of work. Commits on normal exit, rolls back on any exception."""

    # --- tools ------------------------------------------------------------

    @abstractmethod
    def get_tool(self, tool_id: int, for_update: bool = False) -> Optional[Tool]:
        """Return the tool row, locking it for the rest of the transaction
        when ``for_update`` is set."""

    @abstractmethod
    def list_tools(
        self,
        kind: Optional[ToolKind] = None,
        q: Optional[str] = None,
        include_deleted: bool = False,
    ) -> list[Tool]: ...

    @abstractmethod
    def add_tool(self, tool: Tool) -> Tool: ...

    @abstractmethod
    def save_tool(self, tool: Tool) -> Tool: ...

    @abstractmethod
    def remove_tool(self, tool_id: int) -> None: ...

    @abstractmethod
    def count_tools_in_category(self, category_id: int) -> int:
        """Active tools pointing at the category."""

    # --- operarios --------------------------------------------------------

    @abstractmethod
    def get_operario(self, operario_id: int) -> Optional[Operario]: ...

    @abstractmethod
    def find_active_operario(self, access_code: str) -> Optional[Operario]: ...

    @abstractmethod
    def access_code_taken(self, access_code: str, exclude_id: Optional[int] = None) -> bool:
        """True when an active operario other than ``exclude_id`` holds the code."""

    @abstractmethod
    def email_taken(self, email: str, exclude_id: Optional[int] = None) -> bool: ...

    @abstractmethod
    def list_operarios(self, active_only: bool = False) -> list[Operario]: ...

    @abstractmethod
    def add_operario(self, operario: Operario) -> Operario: ...

    @abstractmethod
    def save_operario(self, operario: Operario) -> Operario: ...

    @abstractmethod
    def remove_operario(self, operario_id: int) -> None: ...

    # --- categories -------------------------------------------------------

    @abstractmethod
    def get_category(self, category_id: int) -> Optional[Category]: ...

    @abstractmethod
    def find_active_category(self, name: str, kind: ToolKind) -> Optional[Category]: ...

    @abstractmethod
    def list_categories(self, kind: Optional[ToolKind] = None) -> list[Category]:
        """Active categories ordered by kind, then name."""

    @abstractmethod
    def add_category(self, category: Category) -> Category: ...

    @abstractmethod
    def save_category(self, category: Category) -> Category: ...

    # --- ledger -----------------------------------------------------------

    @abstractmethod
    def append_transaction(self, entry: ToolTransaction) -> ToolTransaction:
        """Add one ledger row. There is no update or delete counterpart."""

    @abstractmethod
    def recent_transactions(self, limit: int) -> list[TransactionView]:
        """Newest first across all tools, with display fields joined in."""

    @abstractmethod
    def tool_history(self, tool_id: int, limit: int) -> list[TransactionView]: ...

    @abstractmethod
    def sum_quantity_by_type(self, tool_id: int) -> LedgerSums: ...

    @abstractmethod
    def type_counters(self) -> list[KindCounter]:
        """In-use and cumulative returned quantity per tool kind."""

    @abstractmethod
    def count_transactions_for_tool(self, tool_id: int) -> int: ...

    @abstractmethod
    def count_transactions_for_operario(self, operario_id: int) -> int: ...
