from fastapi import Depends
from sqlmodel import Session

from toolcrib.db import get_session
from toolcrib.store.base import InventoryStore
from toolcrib.store.sql import SqlStore


def get_store(session: Session = Depends(get_session)) -> InventoryStore:
    return SqlStore(session)
