"""
ORM listeners that keep ``tool_transactions`` append-only.

Any flush that would UPDATE or DELETE a ledger row raises
``LedgerImmutableError`` before SQL reaches the database, and the enclosing
store transaction rolls back. Raw SQL bypasses these listeners; nothing in
toolcrib issues raw SQL against the ledger.
"""

from sqlalchemy import event

from toolcrib.error import LedgerImmutableError
from toolcrib.models import ToolTransaction


def _reject_update(mapper, connection, target):
    raise LedgerImmutableError(target.id, "updated")


def _reject_delete(mapper, connection, target):
    raise LedgerImmutableError(target.id, "deleted")


_LISTENERS = (
    ("before_update", _reject_update),
    ("before_delete", _reject_delete),
)


def register_ledger_guards() -> None:
    for name, fn in _LISTENERS:
        if not event.contains(ToolTransaction, name, fn):
            event.listen(ToolTransaction, name, fn)
