import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import models  # noqa: F401 - register models with Base
from .config import ALLOWED_ORIGINS
from .database import Base, engine
from .domain.accounts.router import router as accounts_router
from .domain.contacts.router import router as contacts_router
from .domain.contract_templates.router import router as contract_templates_router
from .domain.invoices.router import router as invoices_router
from .domain.scheduler.router import calendar_router
from .domain.scheduler.router import public_router as scheduler_public_router
from .domain.scheduler.router import router as scheduler_router
from .domain.slas.router import public_router as contracts_public_router
from .domain.slas.router import router as slas_router
from .shared.responses import error_body

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("multipart").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    try:
        from .rate_limiter import get_redis_client

        if get_redis_client() is not None:
            logger.info("Redis connection established")
    except Exception as e:
        logger.warning(f"Redis connection failed - rate limiting will use in-memory windows: {e}")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Backoffice API", version="1.0.0", lifespan=lifespan)


# ============================================================================
# ERROR ENVELOPES
# ============================================================================


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Every HTTP error leaves as {"data": null, "error": <code>}"""
    if isinstance(exc.detail, dict):
        body = error_body(str(exc.detail.get("error", "error")))
        body.update({k: v for k, v in exc.detail.items() if k != "error"})
    elif exc.status_code == 404 and exc.detail == "Not Found":
        body = error_body("not_found")
    elif exc.status_code == 405:
        body = error_body("method_not_allowed")
    else:
        body = error_body(str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Validation failures become 400s. A malformed path id is reported as
    invalid_id, anything else as invalid_payload with the pydantic details.
    """
    errors = exc.errors()
    if any(error.get("loc") and error["loc"][0] == "path" for error in errors):
        return JSONResponse(status_code=400, content=error_body("invalid_id"))

    logger.warning(f"Validation error for {request.url.path}: {errors}")
    return JSONResponse(
        status_code=400,
        content=error_body("invalid_payload", details=jsonable_encoder(errors)),
    )


@app.exception_handler(OperationalError)
@app.exception_handler(InterfaceError)
async def database_exception_handler(request: Request, exc: Exception):
    logger.error(f"❌ Database unavailable for {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content=error_body("db_unavailable"))


@app.middleware("http")
async def log_requests(request: Request, call_next):
    try:
        response = await call_next(request)
        return response
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise


# CORS Configuration
logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["Retry-After", "Content-Disposition"],
)

# Routes
app.include_router(contacts_router)
app.include_router(accounts_router)
app.include_router(invoices_router)
app.include_router(slas_router)
app.include_router(contract_templates_router)
app.include_router(contracts_public_router)
app.include_router(scheduler_router)
app.include_router(scheduler_public_router)
app.include_router(calendar_router)


@app.get("/")
def root():
    return {"message": "Backoffice API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}
