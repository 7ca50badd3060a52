import threading
import time

import pytest
from sqlmodel import SQLModel, Session

from conftest import make_operario, make_tool
from toolcrib.db import _make_engine
from toolcrib.services import movements, reconciler
from toolcrib.services.stock import get_stock
from toolcrib.store.memory import MemoryStore
from toolcrib.store.sql import SqlStore

WORKERS = 2
CHECKOUTS_EACH = 4
TOTAL = 10


@pytest.fixture
def file_engine(tmp_path):
    engine = _make_engine(f"sqlite:///{tmp_path / 'toolcrib.db'}")
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


def _slow_calc(monkeypatch):
    # hold the read-compute-write window open so an unserialized writer would interleave
    original = movements.calc_checkout

    def slow(available, in_use, quantity):
        time.sleep(0.02)
        return original(available, in_use, quantity)

    monkeypatch.setattr(movements, "calc_checkout", slow)


def _run_concurrently(open_store, tool_id, code):
    """Checkout workers plus one reconciler, all started together."""
    errors = []
    reconcile_changed = []
    start = threading.Barrier(WORKERS + 1)

    def checkout_worker():
        try:
            with open_store() as store:
                start.wait()
                for _ in range(CHECKOUTS_EACH):
                    movements.checkout(store, tool_id, code, 1)
        except Exception as e:
            errors.append(e)

    def reconcile_worker():
        try:
            with open_store() as store:
                start.wait()
                for _ in range(CHECKOUTS_EACH):
                    reconcile_changed.append(reconciler.reconcile(store, tool_id).changed)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=checkout_worker) for _ in range(WORKERS)]
    threads.append(threading.Thread(target=reconcile_worker))
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert errors == []
    # a reconcile that saw half a movement would have "repaired" the row
    assert reconcile_changed == [False] * CHECKOUTS_EACH


def _assert_consistent(store, tool_id):
    stock = get_stock(store, tool_id)
    sums = store.sum_quantity_by_type(tool_id)
    assert stock.in_use_quantity == WORKERS * CHECKOUTS_EACH
    assert stock.available_quantity == TOTAL - WORKERS * CHECKOUTS_EACH
    assert stock.available_quantity + stock.in_use_quantity == stock.total_quantity
    assert stock.in_use_quantity == sums.checkout - sums.checkin


class _SessionStore:
    def __init__(self, engine):
        self.session = Session(engine, expire_on_commit=False)

    def __enter__(self):
        return SqlStore(self.session)

    def __exit__(self, *exc):
        self.session.close()


class _SharedStore:
    def __init__(self, store):
        self.store = store

    def __enter__(self):
        return self.store

    def __exit__(self, *exc):
        return None


def test_concurrent_checkouts_serialize_on_sqlite_file(file_engine, monkeypatch):
    with _SessionStore(file_engine) as seed:
        tool = make_tool(seed, total=TOTAL)
        op = make_operario(seed)
        tool_id, code = tool.id, op.access_code

    _slow_calc(monkeypatch)
    _run_concurrently(lambda: _SessionStore(file_engine), tool_id, code)

    with _SessionStore(file_engine) as store:
        _assert_consistent(store, tool_id)


def test_concurrent_checkouts_serialize_in_memory(monkeypatch):
    store = MemoryStore()
    tool = make_tool(store, total=TOTAL)
    op = make_operario(store)

    _slow_calc(monkeypatch)
    _run_concurrently(lambda: _SharedStore(store), tool.id, op.access_code)

    _assert_consistent(store, tool.id)
