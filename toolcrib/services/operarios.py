import secrets
from typing import Callable, Optional, TypeVar

from toolcrib.config import get_settings
from toolcrib.error import (
    CodeSpaceExhaustedError,
    ConflictError,
    DuplicateEmailError,
    OperarioNotFoundError,
    ValidationError,
)
from toolcrib.logging_config import get_logger
from toolcrib.models import Operario, utcnow
from toolcrib.schemas import OperarioCreate, OperarioDeleteResult, OperarioUpdate
from toolcrib.store.base import InventoryStore

logger = get_logger("services.operarios")

T = TypeVar("T")

# a code that passed access_code_taken can still lose to a concurrent insert
CONFLICT_ATTEMPTS = 3


def random_code(length: int) -> str:
    # no leading zero: 4 digits -> 1000..9999
    low = 10 ** (length - 1)
    return str(low + secrets.randbelow(9 * low))


def generate_unique_code(store: InventoryStore, exclude_id: Optional[int] = None) -> str:
    """Draw random codes until one is free among active operarios."""
    settings = get_settings()
    for _ in range(settings.code_generation_attempts):
        code = random_code(settings.operario_code_length)
        if not store.access_code_taken(code, exclude_id=exclude_id):
            return code
    raise CodeSpaceExhaustedError(settings.code_generation_attempts)


def _retry_on_conflict(work: Callable[[], T]) -> T:
    attempt = 1
    while True:
        try:
            return work()
        except ConflictError:
            if attempt >= CONFLICT_ATTEMPTS:
                raise
            logger.info("operario_write_conflict", extra={"attempt": attempt})
            attempt += 1


def _clean(name: str, email: Optional[str]) -> tuple[str, Optional[str]]:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Operario name is required", field="name")
    email = (email or "").strip().lower() or None
    if email is not None and "@" not in email:
        raise ValidationError(f"Invalid email: {email}", field="email")
    return name, email


def _get(store: InventoryStore, operario_id: int) -> Operario:
    operario = store.get_operario(operario_id)
    if operario is None:
        raise OperarioNotFoundError(operario_id)
    return operario


def list_operarios(store: InventoryStore) -> list[Operario]:
    return store.list_operarios()


def create_operario(store: InventoryStore, data: OperarioCreate) -> Operario:
    name, email = _clean(data.name, data.email)

    def work() -> Operario:
        with store.transaction():
            if email is not None and store.email_taken(email):
                raise DuplicateEmailError(email)
            return store.add_operario(
                Operario(name=name, email=email, access_code=generate_unique_code(store), active=True)
            )

    operario = _retry_on_conflict(work)
    operario_id = operario.id
    logger.info("operario_created", extra={"operario_id": operario_id})
    return operario


def update_operario(store: InventoryStore, operario_id: int, data: OperarioUpdate) -> Operario:
    name, email = _clean(data.name, data.email)

    def work() -> Operario:
        with store.transaction():
            operario = _get(store, operario_id)
            if email is not None and store.email_taken(email, exclude_id=operario.id):
                raise DuplicateEmailError(email)

            reactivated = data.active and not operario.active
            operario.name = name
            operario.email = email
            operario.active = data.active
            if reactivated and store.access_code_taken(operario.access_code, exclude_id=operario.id):
                # someone got this code while the operario was inactive
                operario.access_code = generate_unique_code(store, exclude_id=operario.id)
                logger.info("operario_code_regenerated", extra={"operario_id": operario_id, "reason": "reactivated"})
            operario.updated_at = utcnow()
            store.save_operario(operario)
        return operario

    return _retry_on_conflict(work)


def delete_operario(store: InventoryStore, operario_id: int) -> OperarioDeleteResult:
    """Delete an operario, or only deactivate it when the ledger references it."""
    with store.transaction():
        operario = _get(store, operario_id)
        if store.count_transactions_for_operario(operario.id) > 0:
            operario.active = False
            operario.updated_at = utcnow()
            store.save_operario(operario)
            mode = "soft"
            message = "Operario deactivated (it has transaction history)"
        else:
            store.remove_operario(operario.id)
            mode = "hard"
            message = "Operario deleted"
    logger.info(f"operario_{mode}_deleted", extra={"operario_id": operario_id})
    return OperarioDeleteResult(operario_id=operario_id, mode=mode, message=message)


def regenerate_code(store: InventoryStore, operario_id: int) -> Operario:
    def work() -> Operario:
        with store.transaction():
            operario = _get(store, operario_id)
            operario.access_code = generate_unique_code(store, exclude_id=operario.id)
            operario.updated_at = utcnow()
            store.save_operario(operario)
        return operario

    operario = _retry_on_conflict(work)
    logger.info("operario_code_regenerated", extra={"operario_id": operario_id})
    return operario
