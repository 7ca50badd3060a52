import json
import logging

from toolcrib.error import StorageError
from toolcrib.logging_config import StructuredFormatter, get_logger


def _record(msg, exc_info=None, **extra):
    record = logging.LogRecord("toolcrib.test", logging.INFO, __file__, 1, msg, (), exc_info)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_get_logger_namespace():
    assert get_logger("services.movements").name == "toolcrib.services.movements"


def test_structured_formatter_merges_extra():
    line = StructuredFormatter().format(_record("checkout_applied", tool_id=3, quantity=2))
    payload = json.loads(line)
    assert payload["message"] == "checkout_applied"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "toolcrib.test"
    assert (payload["tool_id"], payload["quantity"]) == (3, 2)


def test_structured_formatter_exception_code():
    try:
        raise StorageError()
    except StorageError as e:
        record = _record("storage_error", exc_info=(type(e), e, e.__traceback__))
    payload = json.loads(StructuredFormatter().format(record))
    assert payload["exc_type"] == "StorageError"
    assert payload["exc_code"] == "STORAGE_ERROR"
    assert "Traceback" in payload["traceback"]
