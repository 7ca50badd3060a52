from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from toolcrib.config import get_settings
from toolcrib.db import create_db_and_tables
from toolcrib.error import InventoryError, StorageError
from toolcrib.logging_config import configure_logging, get_logger
from toolcrib.routers import categories, movements, operarios, tools

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)
    create_db_and_tables()
    logger.info("startup")
    yield
    logger.info("shutdown")


app = FastAPI(title="toolcrib - Tool Inventory Ledger", lifespan=lifespan)

app.include_router(tools.router)
app.include_router(movements.router)
app.include_router(operarios.router)
app.include_router(categories.router)


@app.get("/health")
def health():
    return {"ok": True}


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={"code": "VALIDATION_ERROR", "message": "Request validation failed", "errors": exc.errors()},
    )


@app.exception_handler(InventoryError)
async def inventory_exception_handler(request: Request, exc: InventoryError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})


@app.exception_handler(SQLAlchemyError)
async def storage_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("unhandled_storage_error", extra={"path": request.url.path})
    err = StorageError()
    return JSONResponse(status_code=err.status_code, content={"detail": err.to_detail()})
