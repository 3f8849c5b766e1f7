import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

# registers every table on Base.metadata
from . import (
    models,  # noqa: F401
    models_xero,  # noqa: F401
)
from .config import ALLOWED_ORIGINS
from .database import Base, engine
from .domain.customers.router import router as customers_router
from .domain.integrations.xero.exceptions import XeroError
from .domain.integrations.xero.router import router as xero_router
from .domain.jobs.router import router as jobs_router
from .domain.suppliers.router import router as suppliers_router
from .routes.profile import router as profile_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Trades API starting")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
    except SQLAlchemyError as e:
        # several workers can race on first boot
        if "already exists" not in str(e) and "duplicate key" not in str(e):
            logger.error(f"❌ Schema setup failed: {e}")
            raise
        logger.info("Schema already present")
    else:
        logger.info("✅ Schema ready")

    yield

    logger.info("Trades API stopped")


app = FastAPI(title="Trades API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(XeroError)
async def xero_exception_handler(request: Request, exc: XeroError):
    """Uniform JSON body for every Xero integration failure"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} - {exc.code}: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} - {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})


logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(profile_router, prefix="/api")
app.include_router(customers_router, prefix="/api")
app.include_router(suppliers_router, prefix="/api")
app.include_router(jobs_router, prefix="/api")
app.include_router(xero_router, prefix="/api")


@app.get("/health")
async def health():
    return {"status": "healthy"}
