"""
shopbill backend: invoicing for small businesses and their shops.

ARCHITECTURE:
- FastAPI routers: thin request/response wrappers
- services/: calculator (line and invoice totals), numbering (per-business
  invoice counter), invoice_service (lifecycle), records (reference data)
- SQLAlchemy: source of truth; row locks serialise the invoice counter and
  concurrent edits of the same invoice

No auth, no PDF rendering; those live outside this service.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shopbill import __version__
from shopbill.api.routes import businesses, customers, invoices, products, shops
from shopbill.core.config import settings
from shopbill.core.exceptions import BillingError, BusinessError
from shopbill.db.init_db import init_db

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup: create database tables if missing.
    """
    logger.info("[*] Initializing database...")
    init_db()
    logger.info("[OK] Database initialized")
    yield


app = FastAPI(
    title="shopbill API",
    description="Businesses, shops, products, customers and invoices.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Accept",
        "Origin",
        "Idempotency-Key",
    ],  # Explicit headers only
    max_age=600,  # Cache preflight for 10 minutes
)


@app.exception_handler(BillingError)
async def handle_billing_error(request: Request, exc: BillingError):
    http_exc = BusinessError.from_domain(exc)
    return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})


@app.exception_handler(RequestValidationError)
async def handle_request_validation(request: Request, exc: RequestValidationError):
    # Malformed bodies are client errors like any other validation failure
    logger.info(f"Bad request on {request.method} {request.url.path}: {len(exc.errors())} issues")
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request body", "issues": jsonable_encoder(exc.errors())},
    )


app.include_router(businesses.router, prefix="/businesses", tags=["businesses"])
app.include_router(shops.router, prefix="/shops", tags=["shops"])
app.include_router(customers.router, prefix="/customers", tags=["customers"])
app.include_router(products.router, prefix="/products", tags=["products"])
app.include_router(invoices.router, prefix="/invoices", tags=["invoices"])


@app.get("/health")
def health():
    return {"status": "ok"}
