import os

# keep the module-level engine off the filesystem
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session, create_engine
from sqlalchemy.pool import StaticPool

from toolcrib.main import app
from toolcrib.db import get_session
from toolcrib.immutability import register_ledger_guards
from toolcrib.schemas import CategoryCreate, OperarioCreate, ToolCreate
from toolcrib.services import categories, operarios, tools
from toolcrib.store.memory import MemoryStore
from toolcrib.store.sql import SqlStore


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def client(engine):
    def override_get_session():
        with Session(engine, expire_on_commit=False) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(params=["memory", "sql"])
def store(request, engine):
    if request.param == "memory":
        yield MemoryStore()
        return
    register_ledger_guards()
    session = Session(engine, expire_on_commit=False)
    try:
        yield SqlStore(session)
    finally:
        session.close()


@pytest.fixture
def sql_store(engine):
    register_ledger_guards()
    with Session(engine, expire_on_commit=False) as session:
        yield SqlStore(session)


def make_category(store, name="Taladros", kind="individual"):
    return categories.create_category(store, CategoryCreate(name=name, kind=kind))


def make_tool(store, total=10, name="Taladro percutor", kind="individual", category=None, **extra):
    category = category or make_category(store, name=f"Cat {name}", kind=kind)
    return tools.add_tool(
        store,
        ToolCreate(name=name, category_id=category.id, kind=kind, total_quantity=total, **extra),
    )


def make_operario(store, name="Ana Pérez", email=None):
    return operarios.create_operario(store, OperarioCreate(name=name, email=email))
