import threading
from collections import defaultdict
from contextlib import contextmanager
from itertools import count
from typing import Any, Iterator, Optional

from toolcrib.models import Category, Operario, Tool, ToolTransaction
from toolcrib.schemas import (
    KindCounter,
    LedgerSums,
    ToolKind,
    ToolStatus,
    TransactionType,
    TransactionView,
)
from toolcrib.store.base import InventoryStore

Row = dict[str, Any]


class MemoryStore(InventoryStore):
    """InventoryStore kept in process memory.

    Rows are stored as plain dicts and every read returns a fresh model
    instance, so nothing a caller mutates is visible until it is saved.
    One re-entrant lock serializes transactions; a transaction snapshots all
    tables on entry and puts the snapshot back if the block raises.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._tools: dict[int, Row] = {}
        self._operarios: dict[int, Row] = {}
        self._categories: dict[int, Row] = {}
        self._ledger: list[Row] = []
        self._ids = defaultdict(lambda: count(1))

    @contextmanager
    def transaction(self) -> Iterator["MemoryStore"]:
        with self._lock:
            snapshot = (
                {k: dict(v) for k, v in self._tools.items()},
                {k: dict(v) for k, v in self._operarios.items()},
                {k: dict(v) for k, v in self._categories.items()},
                len(self._ledger),
            )
            try:
                yield self
            except BaseException:
                self._tools, self._operarios, self._categories = snapshot[:3]
                del self._ledger[snapshot[3]:]
                raise

    def _next_id(self, table: str) -> int:
        return next(self._ids[table])

    # --- tools ------------------------------------------------------------

    def get_tool(self, tool_id: int, for_update: bool = False) -> Optional[Tool]:
        # for_update needs nothing extra: transactions already hold the lock
        with self._lock:
            row = self._tools.get(tool_id)
            return Tool(**row) if row is not None else None

    def list_tools(
        self,
        kind: Optional[ToolKind] = None,
        q: Optional[str] = None,
        include_deleted: bool = False,
    ) -> list[Tool]:
        with self._lock:
            rows = list(self._tools.values())
        if not include_deleted:
            rows = [r for r in rows if r["status"] == ToolStatus.active.value]
        if kind is not None:
            rows = [r for r in rows if r["kind"] == kind.value]
        if q:
            rows = [r for r in rows if q in r["name"] or q in (r["location"] or "")]
        rows.sort(key=lambda r: (r["name"], r["id"]))
        return [Tool(**r) for r in rows]

    def add_tool(self, tool: Tool) -> Tool:
        with self._lock:
            tool.id = self._next_id("tools")
            self._tools[tool.id] = tool.model_dump()
        return tool

    def save_tool(self, tool: Tool) -> Tool:
        with self._lock:
            self._tools[tool.id] = tool.model_dump()
        return tool

    def remove_tool(self, tool_id: int) -> None:
        with self._lock:
            self._tools.pop(tool_id, None)

    def count_tools_in_category(self, category_id: int) -> int:
        with self._lock:
            return sum(
                1
                for r in self._tools.values()
                if r["category_id"] == category_id and r["status"] == ToolStatus.active.value
            )

    # --- operarios --------------------------------------------------------

    def get_operario(self, operario_id: int) -> Optional[Operario]:
        with self._lock:
            row = self._operarios.get(operario_id)
            return Operario(**row) if row is not None else None

    def find_active_operario(self, access_code: str) -> Optional[Operario]:
        with self._lock:
            for row in self._operarios.values():
                if row["active"] and row["access_code"] == access_code:
                    return Operario(**row)
        return None

    def access_code_taken(self, access_code: str, exclude_id: Optional[int] = None) -> bool:
        with self._lock:
            return any(
                r["active"] and r["access_code"] == access_code and r["id"] != exclude_id
                for r in self._operarios.values()
            )

    def email_taken(self, email: str, exclude_id: Optional[int] = None) -> bool:
        with self._lock:
            return any(
                r["email"] == email and r["id"] != exclude_id for r in self._operarios.values()
            )

    def list_operarios(self, active_only: bool = False) -> list[Operario]:
        with self._lock:
            rows = [r for r in self._operarios.values() if r["active"] or not active_only]
        rows.sort(key=lambda r: (r["created_at"], r["id"]), reverse=True)
        return [Operario(**r) for r in rows]

    def add_operario(self, operario: Operario) -> Operario:
        with self._lock:
            operario.id = self._next_id("operarios")
            self._operarios[operario.id] = operario.model_dump()
        return operario

    def save_operario(self, operario: Operario) -> Operario:
        with self._lock:
            self._operarios[operario.id] = operario.model_dump()
        return operario

    def remove_operario(self, operario_id: int) -> None:
        with self._lock:
            self._operarios.pop(operario_id, None)

    # --- categories -------------------------------------------------------

    def get_category(self, category_id: int) -> Optional[Category]:
        with self._lock:
            row = self._categories.get(category_id)
            return Category(**row) if row is not None else None

    def find_active_category(self, name: str, kind: ToolKind) -> Optional[Category]:
        with self._lock:
            for row in self._categories.values():
                if row["active"] and row["name"] == name and row["kind"] == kind.value:
                    return Category(**row)
        return None

    def list_categories(self, kind: Optional[ToolKind] = None) -> list[Category]:
        with self._lock:
            rows = [r for r in self._categories.values() if r["active"]]
        if kind is not None:
            rows = [r for r in rows if r["kind"] == kind.value]
        rows.sort(key=lambda r: (r["kind"], r["name"]))
        return [Category(**r) for r in rows]

    def add_category(self, category: Category) -> Category:
        with self._lock:
            category.id = self._next_id("categories")
            self._categories[category.id] = category.model_dump()
        return category

    def save_category(self, category: Category) -> Category:
        with self._lock:
            self._categories[category.id] = category.model_dump()
        return category

    # --- ledger -----------------------------------------------------------

    def append_transaction(self, entry: ToolTransaction) -> ToolTransaction:
        with self._lock:
            entry.id = self._next_id("transactions")
            self._ledger.append(entry.model_dump())
        return entry

    def _view(self, row: Row) -> TransactionView:
        tool = self._tools.get(row["tool_id"]) or {}
        operario = self._operarios.get(row["operario_id"]) or {}
        return TransactionView(
            **row,
            tool_name=tool.get("name"),
            tool_location=tool.get("location"),
            operario_name=operario.get("name"),
        )

    def _newest_first(self, rows: list[Row]) -> list[Row]:
        return sorted(rows, key=lambda r: (r["created_at"], r["id"]), reverse=True)

    def recent_transactions(self, limit: int) -> list[TransactionView]:
        with self._lock:
            return [self._view(r) for r in self._newest_first(self._ledger)[:limit]]

    def tool_history(self, tool_id: int, limit: int) -> list[TransactionView]:
        with self._lock:
            rows = [r for r in self._ledger if r["tool_id"] == tool_id]
            return [self._view(r) for r in self._newest_first(rows)[:limit]]

    def sum_quantity_by_type(self, tool_id: int) -> LedgerSums:
        sums = LedgerSums()
        with self._lock:
            for row in self._ledger:
                if row["tool_id"] != tool_id:
                    continue
                if row["transaction_type"] == TransactionType.checkout.value:
                    sums.checkout += row["quantity"]
                elif row["transaction_type"] == TransactionType.checkin.value:
                    sums.checkin += row["quantity"]
        return sums

    def type_counters(self) -> list[KindCounter]:
        counters = {kind.value: KindCounter(kind=kind) for kind in ToolKind}
        with self._lock:
            for row in self._ledger:
                tool = self._tools.get(row["tool_id"])
                if tool is None:
                    continue
                counter = counters[tool["kind"]]
                if row["transaction_type"] == TransactionType.checkout.value:
                    counter.in_use += row["quantity"]
                elif row["transaction_type"] == TransactionType.checkin.value:
                    counter.in_use -= row["quantity"]
                    counter.returned += row["quantity"]
        return list(counters.values())

    def count_transactions_for_tool(self, tool_id: int) -> int:
        with self._lock:
            return sum(1 for r in self._ledger if r["tool_id"] == tool_id)

    def count_transactions_for_operario(self, operario_id: int) -> int:
        with self._lock:
            return sum(1 for r in self._ledger if r["operario_id"] == operario_id)
