import random

import pytest

from conftest import make_operario, make_tool
from toolcrib.error import (
    InsufficientInUseError,
    InsufficientStockError,
    InvalidOperarioError,
    InvalidQuantityError,
    LedgerImmutableError,
    ToolNotFoundError,
    UnreconcilableToolError,
)
from toolcrib.models import ToolTransaction
from toolcrib.schemas import OperarioUpdate, ToolKind
from toolcrib.services import movements, operarios, reconciler, tools
from toolcrib.services.stock import get_stock


def _entry(tool, operario, kind, quantity):
    return ToolTransaction(
        tool_id=tool.id,
        operario_id=operario.id,
        transaction_type=kind,
        quantity=quantity,
        previous_available=0,
        new_available=0,
    )


def _drift(store, tool_id, available, in_use):
    tool = store.get_tool(tool_id)
    tool.available_quantity = available
    tool.in_use_quantity = in_use
    with store.transaction():
        store.save_tool(tool)


def test_checkout_checkin_walkthrough(store):
    tool = make_tool(store, total=10)
    op = make_operario(store)

    r = movements.checkout(store, tool.id, op.access_code, 3, project="Obra Norte")
    assert (r.available_quantity, r.in_use_quantity) == (7, 3)
    assert r.operario == "Ana Pérez"

    r = movements.checkin(store, tool.id, op.access_code, 2)
    assert (r.available_quantity, r.in_use_quantity) == (9, 1)

    with pytest.raises(InsufficientStockError) as exc:
        movements.checkout(store, tool.id, op.access_code, 10)
    assert exc.value.available == 9
    assert exc.value.to_detail()["code"] == "INSUFFICIENT_STOCK"

    stock = get_stock(store, tool.id)
    assert (stock.total_quantity, stock.available_quantity, stock.in_use_quantity) == (10, 9, 1)

    history = store.tool_history(tool.id, 10)
    assert [h.transaction_type.value for h in history] == ["checkin", "checkout"]
    assert (history[1].previous_available, history[1].new_available) == (10, 7)
    assert (history[0].previous_available, history[0].new_available) == (7, 9)
    assert history[1].project == "Obra Norte"
    assert history[1].tool_name == "Taladro percutor"
    assert history[1].operario_name == "Ana Pérez"


def test_checkin_more_than_in_use_changes_nothing(store):
    tool = make_tool(store, total=5)
    op = make_operario(store)
    movements.checkout(store, tool.id, op.access_code, 2)

    with pytest.raises(InsufficientInUseError) as exc:
        movements.checkin(store, tool.id, op.access_code, 3)
    assert exc.value.in_use == 2

    stock = get_stock(store, tool.id)
    assert (stock.available_quantity, stock.in_use_quantity) == (3, 2)
    assert store.count_transactions_for_tool(tool.id) == 1


@pytest.mark.parametrize("quantity", [0, -1, 1.5, True])
def test_invalid_quantity_rejected(store, quantity):
    tool = make_tool(store, total=5)
    op = make_operario(store)

    with pytest.raises(InvalidQuantityError):
        movements.checkout(store, tool.id, op.access_code, quantity)

    assert get_stock(store, tool.id).available_quantity == 5
    assert store.count_transactions_for_tool(tool.id) == 0


def test_unknown_or_inactive_operario_rejected(store):
    tool = make_tool(store, total=5)
    op = make_operario(store)

    with pytest.raises(InvalidOperarioError):
        movements.checkout(store, tool.id, "0000", 1)
    with pytest.raises(InvalidOperarioError):
        movements.checkout(store, tool.id, "   ", 1)

    operarios.update_operario(store, op.id, OperarioUpdate(name=op.name, active=False))
    with pytest.raises(InvalidOperarioError):
        movements.checkout(store, tool.id, op.access_code, 1)

    assert get_stock(store, tool.id).available_quantity == 5


def test_authenticate_strips_code(store):
    op = make_operario(store)
    assert movements.authenticate(store, f"  {op.access_code} ").id == op.id


def test_unknown_tool_rejected(store):
    op = make_operario(store)
    with pytest.raises(ToolNotFoundError):
        movements.checkout(store, 999, op.access_code, 1)
    with pytest.raises(ToolNotFoundError):
        get_stock(store, 999)


def test_soft_deleted_tool_behaves_as_missing(store):
    tool = make_tool(store, total=4)
    op = make_operario(store)
    movements.checkout(store, tool.id, op.access_code, 1)
    movements.checkin(store, tool.id, op.access_code, 1)

    result = tools.delete_tool(store, tool.id)
    assert result.mode == "soft"

    with pytest.raises(ToolNotFoundError):
        get_stock(store, tool.id)
    with pytest.raises(ToolNotFoundError):
        movements.checkout(store, tool.id, op.access_code, 1)
    with pytest.raises(ToolNotFoundError):
        reconciler.reconcile(store, tool.id)

    # history still resolves the tool name
    assert store.tool_history(tool.id, 10)[0].tool_name == tool.name


def test_failed_ledger_write_rolls_back_stock(store, monkeypatch):
    tool = make_tool(store, total=6)
    op = make_operario(store)

    def boom(entry):
        raise RuntimeError("disk full")

    monkeypatch.setattr(store, "append_transaction", boom)
    with pytest.raises(RuntimeError):
        movements.checkout(store, tool.id, op.access_code, 2)
    monkeypatch.undo()

    stock = get_stock(store, tool.id)
    assert (stock.available_quantity, stock.in_use_quantity) == (6, 0)
    assert store.count_transactions_for_tool(tool.id) == 0


def test_random_movements_keep_invariants(store):
    rng = random.Random(20240611)
    tool = make_tool(store, total=12)
    op = make_operario(store)
    available, in_use = 12, 0

    for _ in range(150):
        quantity = rng.randint(1, 5)
        if rng.random() < 0.55:
            if quantity <= available:
                movements.checkout(store, tool.id, op.access_code, quantity)
                available, in_use = available - quantity, in_use + quantity
            else:
                with pytest.raises(InsufficientStockError):
                    movements.checkout(store, tool.id, op.access_code, quantity)
        else:
            if quantity <= in_use:
                movements.checkin(store, tool.id, op.access_code, quantity)
                available, in_use = available + quantity, in_use - quantity
            else:
                with pytest.raises(InsufficientInUseError):
                    movements.checkin(store, tool.id, op.access_code, quantity)

        stock = get_stock(store, tool.id)
        assert (stock.available_quantity, stock.in_use_quantity) == (available, in_use)
        assert stock.total_quantity == stock.available_quantity + stock.in_use_quantity + stock.maintenance_quantity

    sums = store.sum_quantity_by_type(tool.id)
    assert sums.checkout - sums.checkin == in_use
    assert reconciler.reconcile(store, tool.id).changed is False


def test_reconcile_repairs_drift(store):
    tool = make_tool(store, total=20)
    op = make_operario(store)
    with store.transaction():
        store.append_transaction(_entry(tool, op, "checkout", 5))
        store.append_transaction(_entry(tool, op, "checkout", 7))
        store.append_transaction(_entry(tool, op, "checkin", 4))
    _drift(store, tool.id, available=15, in_use=5)

    result = reconciler.reconcile(store, tool.id)
    assert result.changed is True
    assert (result.before.available_quantity, result.before.in_use_quantity) == (15, 5)
    assert (result.after.available_quantity, result.after.in_use_quantity) == (12, 8)
    assert (result.total_checkout, result.total_checkin) == (12, 4)

    stock = get_stock(store, tool.id)
    assert (stock.available_quantity, stock.in_use_quantity) == (12, 8)

    again = reconciler.reconcile(store, tool.id)
    assert again.changed is False
    assert again.before == again.after


def test_reconcile_refuses_negative_result(store):
    tool = make_tool(store, total=5)
    op = make_operario(store)
    with store.transaction():
        store.append_transaction(_entry(tool, op, "checkout", 8))

    with pytest.raises(UnreconcilableToolError) as exc:
        reconciler.reconcile(store, tool.id)
    assert exc.value.data["computed_available"] == -3

    stock = get_stock(store, tool.id)
    assert (stock.available_quantity, stock.in_use_quantity) == (5, 0)


def test_reconcile_all_skips_unreconcilable(store):
    bad = make_tool(store, total=2, name="Amoladora")
    drifted = make_tool(store, total=6, name="Sierra")
    clean = make_tool(store, total=3, name="Nivel")
    op = make_operario(store)
    with store.transaction():
        store.append_transaction(_entry(bad, op, "checkout", 5))
        store.append_transaction(_entry(drifted, op, "checkout", 2))
    _drift(store, drifted.id, available=6, in_use=0)

    results = reconciler.reconcile_all(store)
    assert [r.tool_id for r in results] == [drifted.id]
    assert get_stock(store, drifted.id).in_use_quantity == 2
    assert get_stock(store, clean.id).available_quantity == 3


def test_type_counters(store):
    op = make_operario(store)
    drill = make_tool(store, total=5, name="Taladro")
    gloves = make_tool(store, total=50, name="Guantes", kind="common")

    movements.checkout(store, drill.id, op.access_code, 3)
    movements.checkin(store, drill.id, op.access_code, 1)
    movements.checkout(store, gloves.id, op.access_code, 2)

    counters = {c.kind: c for c in store.type_counters()}
    assert (counters[ToolKind.individual].in_use, counters[ToolKind.individual].returned) == (2, 1)
    assert (counters[ToolKind.common].in_use, counters[ToolKind.common].returned) == (2, 0)


def test_recent_transactions_newest_first(store):
    tool = make_tool(store, total=5)
    op = make_operario(store)
    first = movements.checkout(store, tool.id, op.access_code, 1)
    second = movements.checkout(store, tool.id, op.access_code, 1)
    third = movements.checkin(store, tool.id, op.access_code, 1)

    recent = store.recent_transactions(2)
    assert [r.id for r in recent] == [third.transaction_id, second.transaction_id]
    assert first.transaction_id not in [r.id for r in recent]


def test_ledger_rows_cannot_be_changed(sql_store):
    tool = make_tool(sql_store, total=5)
    op = make_operario(sql_store)
    result = movements.checkout(sql_store, tool.id, op.access_code, 2)

    entry = sql_store.session.get(ToolTransaction, result.transaction_id)
    entry.quantity = 1
    with pytest.raises(LedgerImmutableError):
        with sql_store.transaction():
            sql_store.session.add(entry)

    entry = sql_store.session.get(ToolTransaction, result.transaction_id)
    assert entry.quantity == 2
    with pytest.raises(LedgerImmutableError):
        with sql_store.transaction():
            sql_store.session.delete(entry)

    assert sql_store.count_transactions_for_tool(tool.id) == 1
