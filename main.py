"""
Silai POS - Application Entry Point
=====================================
FastAPI app initialization, logging, error handling, and router registration.
"""

import logging
import time as _time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config import settings
from config.database import Base, engine
from common.exceptions import SilaiError

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("silai.app")


# ==========================================
# Import ALL models so Base can see them
# ==========================================
from modules.user.models import User  # noqa: F401
from modules.customer.models import Customer  # noqa: F401
from modules.catalog.models import Product  # noqa: F401
from modules.inventory.models import StockLevel, StockMovement  # noqa: F401
from modules.bill.models import Bill, BillItem, Payment, BillSequence  # noqa: F401

# ==========================================
# Import routers
# ==========================================
from modules.bill.routes import router as bill_router
from modules.report.routes import router as report_router
from modules.inventory.routes import router as inventory_router
from modules.customer.routes import router as customer_router
from modules.catalog.routes import router as catalog_router


@asynccontextmanager
async def lifespan(app):
    # Auto-create any missing tables (safe for existing tables)
    Base.metadata.create_all(bind=engine)
    logger.info(f"{settings.BUSINESS_NAME} POS started")
    yield


# ==========================================
# Create App
# ==========================================
app = FastAPI(
    title="Silai POS",
    description="Billing engine for a clothing and tailoring store",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
    lifespan=lifespan,
)


# ==========================================
# Exception handler: business errors → JSON
# ==========================================
@app.exception_handler(SilaiError)
async def silai_error_handler(request: Request, exc: SilaiError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


# ==========================================
# Middleware: Request Log
# ==========================================
@app.middleware("http")
async def request_log(request: Request, call_next):
    start = _time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (_time.perf_counter() - start) * 1000
    if request.url.path != "/health":
        logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.0f}ms)")
    return response


# ==========================================
# Register routers
# ==========================================
app.include_router(bill_router)
app.include_router(report_router)
app.include_router(inventory_router)
app.include_router(customer_router)
app.include_router(catalog_router)


# ==========================================
# Health check
# ==========================================
@app.get("/health")
async def health():
    return {"status": "ok", "version": "1.0.0"}
