from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from toolcrib.error import ConflictError, InventoryError, StorageError
from toolcrib.logging_config import get_logger
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

logger = get_logger("store.sql")


class SqlStore(InventoryStore):
    """InventoryStore over a SQLModel session.

    The session is owned by the caller (one per request); this class only
    decides where transactions start and end.
    """

    def __init__(self, session: Session):
        self.session = session

    @contextmanager
    def transaction(self) -> Iterator["SqlStore"]:
        try:
            yield self
            self.session.commit()
        except InventoryError:
            self.session.rollback()
            raise
        except IntegrityError as e:
            self.session.rollback()
            logger.info("integrity_conflict", extra={"error": str(e.orig)})
            raise ConflictError() from e
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("storage_error", exc_info=True)
            raise StorageError() from e
        except Exception:
            self.session.rollback()
            raise

    # --- tools ------------------------------------------------------------

    def get_tool(self, tool_id: int, for_update: bool = False) -> Optional[Tool]:
        if not for_update:
            return self.session.get(Tool, tool_id)
        # FOR UPDATE: the row stays locked until commit/rollback
        stmt = (
            select(Tool)
            .where(Tool.id == tool_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.session.exec(stmt).first()

    def list_tools(
        self,
        kind: Optional[ToolKind] = None,
        q: Optional[str] = None,
        include_deleted: bool = False,
    ) -> list[Tool]:
        stmt = select(Tool)
        if not include_deleted:
            stmt = stmt.where(Tool.status == ToolStatus.active.value)
        if kind is not None:
            stmt = stmt.where(Tool.kind == kind.value)
        if q:
            stmt = stmt.where(or_(Tool.name.contains(q), Tool.location.contains(q)))
        return list(self.session.exec(stmt.order_by(Tool.name.asc(), Tool.id.asc())).all())

    def add_tool(self, tool: Tool) -> Tool:
        self.session.add(tool)
        self.session.flush()  # assigns tool.id
        return tool

    def save_tool(self, tool: Tool) -> Tool:
        self.session.add(tool)
        self.session.flush()
        return tool

    def remove_tool(self, tool_id: int) -> None:
        tool = self.session.get(Tool, tool_id)
        if tool is not None:
            self.session.delete(tool)
            self.session.flush()

    def count_tools_in_category(self, category_id: int) -> int:
        stmt = (
            select(func.count())
            .select_from(Tool)
            .where(Tool.category_id == category_id, Tool.status == ToolStatus.active.value)
        )
        return self.session.exec(stmt).one()

    # --- operarios --------------------------------------------------------

    def get_operario(self, operario_id: int) -> Optional[Operario]:
        return self.session.get(Operario, operario_id)

    def find_active_operario(self, access_code: str) -> Optional[Operario]:
        stmt = select(Operario).where(
            Operario.access_code == access_code, Operario.active == True  # noqa: E712
        )
        return self.session.exec(stmt).first()

    def access_code_taken(self, access_code: str, exclude_id: Optional[int] = None) -> bool:
        stmt = (
            select(func.count())
            .select_from(Operario)
            .where(Operario.access_code == access_code, Operario.active == True)  # noqa: E712
        )
        if exclude_id is not None:
            stmt = stmt.where(Operario.id != exclude_id)
        return self.session.exec(stmt).one() > 0

    def email_taken(self, email: str, exclude_id: Optional[int] = None) -> bool:
        stmt = select(func.count()).select_from(Operario).where(Operario.email == email)
        if exclude_id is not None:
            stmt = stmt.where(Operario.id != exclude_id)
        return self.session.exec(stmt).one() > 0

    def list_operarios(self, active_only: bool = False) -> list[Operario]:
        stmt = select(Operario)
        if active_only:
            stmt = stmt.where(Operario.active == True)  # noqa: E712
        stmt = stmt.order_by(Operario.created_at.desc(), Operario.id.desc())
        return list(self.session.exec(stmt).all())

    def add_operario(self, operario: Operario) -> Operario:
        self.session.add(operario)
        self.session.flush()
        return operario

    def save_operario(self, operario: Operario) -> Operario:
        self.session.add(operario)
        self.session.flush()
        return operario

    def remove_operario(self, operario_id: int) -> None:
        operario = self.session.get(Operario, operario_id)
        if operario is not None:
            self.session.delete(operario)
            self.session.flush()

    # --- categories -------------------------------------------------------

    def get_category(self, category_id: int) -> Optional[Category]:
        return self.session.get(Category, category_id)

    def find_active_category(self, name: str, kind: ToolKind) -> Optional[Category]:
        stmt = select(Category).where(
            Category.name == name,
            Category.kind == kind.value,
            Category.active == True,  # noqa: E712
        )
        return self.session.exec(stmt).first()

    def list_categories(self, kind: Optional[ToolKind] = None) -> list[Category]:
        stmt = select(Category).where(Category.active == True)  # noqa: E712
        if kind is not None:
            stmt = stmt.where(Category.kind == kind.value)
        stmt = stmt.order_by(Category.kind.asc(), Category.name.asc())
        return list(self.session.exec(stmt).all())

    def add_category(self, category: Category) -> Category:
        self.session.add(category)
        self.session.flush()
        return category

    def save_category(self, category: Category) -> Category:
        self.session.add(category)
        self.session.flush()
        return category

    # --- ledger -----------------------------------------------------------

    def append_transaction(self, entry: ToolTransaction) -> ToolTransaction:
        self.session.add(entry)
        self.session.flush()
        return entry

    def _view_stmt(self):
        return (
            select(
                ToolTransaction,
                Tool.name.label("tool_name"),
                Tool.location.label("tool_location"),
                Operario.name.label("operario_name"),
            )
            .join(Tool, Tool.id == ToolTransaction.tool_id, isouter=True)
            .join(Operario, Operario.id == ToolTransaction.operario_id, isouter=True)
            .order_by(ToolTransaction.created_at.desc(), ToolTransaction.id.desc())
        )

    @staticmethod
    def _to_view(row) -> TransactionView:
        entry, tool_name, tool_location, operario_name = row
        return TransactionView(
            **entry.model_dump(),
            tool_name=tool_name,
            tool_location=tool_location,
            operario_name=operario_name,
        )

    def recent_transactions(self, limit: int) -> list[TransactionView]:
        rows = self.session.exec(self._view_stmt().limit(limit)).all()
        return [self._to_view(r) for r in rows]

    def tool_history(self, tool_id: int, limit: int) -> list[TransactionView]:
        stmt = self._view_stmt().where(ToolTransaction.tool_id == tool_id).limit(limit)
        return [self._to_view(r) for r in self.session.exec(stmt).all()]

    def sum_quantity_by_type(self, tool_id: int) -> LedgerSums:
        stmt = (
            select(ToolTransaction.transaction_type, func.sum(ToolTransaction.quantity))
            .where(ToolTransaction.tool_id == tool_id)
            .group_by(ToolTransaction.transaction_type)
        )
        totals = {t: int(s or 0) for t, s in self.session.exec(stmt).all()}
        return LedgerSums(
            checkout=totals.get(TransactionType.checkout.value, 0),
            checkin=totals.get(TransactionType.checkin.value, 0),
        )

    def type_counters(self) -> list[KindCounter]:
        stmt = (
            select(Tool.kind, ToolTransaction.transaction_type, func.sum(ToolTransaction.quantity))
            .join(Tool, Tool.id == ToolTransaction.tool_id)
            .group_by(Tool.kind, ToolTransaction.transaction_type)
        )
        sums: dict[tuple[str, str], int] = {
            (kind, t): int(s or 0) for kind, t, s in self.session.exec(stmt).all()
        }
        counters = []
        for kind in ToolKind:
            out = sums.get((kind.value, TransactionType.checkout.value), 0)
            back = sums.get((kind.value, TransactionType.checkin.value), 0)
            counters.append(KindCounter(kind=kind, in_use=out - back, returned=back))
        return counters

    def count_transactions_for_tool(self, tool_id: int) -> int:
        stmt = (
            select(func.count())
            .select_from(ToolTransaction)
            .where(ToolTransaction.tool_id == tool_id)
        )
        return self.session.exec(stmt).one()

    def count_transactions_for_operario(self, operario_id: int) -> int:
        stmt = (
            select(func.count())
            .select_from(ToolTransaction)
            .where(ToolTransaction.operario_id == operario_id)
        )
        return self.session.exec(stmt).one()
