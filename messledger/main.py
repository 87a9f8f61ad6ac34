from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from messledger.core.errors import (
    LedgerError,
    NotFoundError,
    PermissionDeniedError,
    PersistenceError,
    ReconciliationError,
    StateError,
    ValidationError,
)
from messledger.core.logging import configure_logging
from messledger.models import (  # noqa: F401
    inventory,
    meal_contract,
    remittance,
    requests,
    staff_ledger,
)
from messledger.routers.auth import router as auth_router
from messledger.routers.budget import router as budget_router
from messledger.routers.contracts import router as contracts_router
from messledger.routers.dashboard import router as dashboard_router
from messledger.routers.fund_requests import router as fund_requests_router
from messledger.routers.inventory import router as inventory_router
from messledger.routers.remittances import router as remittances_router
from messledger.routers.reset import router as reset_router
from messledger.routers.staff import router as staff_router

logger = logging.getLogger(__name__)

# Most specific first; LedgerError catches anything unmapped.
STATUS_BY_ERROR = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (StateError, 409),
    (PermissionDeniedError, 403),
    (PersistenceError, 503),
    (ReconciliationError, 500),
    (LedgerError, 500),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    yield


app = FastAPI(
    title="Mess Ledger",
    lifespan=lifespan,
)


@app.middleware("http")
async def catch_unhandled_exceptions(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception:
        logger.exception("Unhandled exception")
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    status_code = next(code for cls, code in STATUS_BY_ERROR if isinstance(exc, cls))
    log = logger.error if status_code >= 500 else logger.info
    log(
        "ledger error",
        extra={"path": request.url.path, "error_code": exc.code, "status_code": status_code},
    )
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@app.exception_handler(OperationalError)
async def operational_error_handler(request: Request, exc: OperationalError):
    logger.error("ledger store unavailable", extra={"path": request.url.path}, exc_info=exc)
    return JSONResponse(
        status_code=503,
        content=PersistenceError("Ledger store unavailable").to_dict(),
    )


app.include_router(auth_router)
app.include_router(dashboard_router)
app.include_router(budget_router)
app.include_router(inventory_router)
app.include_router(remittances_router)
app.include_router(staff_router)
app.include_router(fund_requests_router)
app.include_router(contracts_router)
app.include_router(reset_router)


@app.get("/")
def root():
    return {"status": "Mess Ledger running"}


@app.get("/health")
def health():
    return {
        "status": "ok",
        "version": "1.0.0",
    }
