# storefront/main.py
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

import structlog
import uvicorn
from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException

from .config import Settings
from .core import HealthOut, OrderCreated, OrderIn, OrderOut, ProductOut
from .database import create_database
from .errors import InvalidPayload, StorefrontError
from .log import configure_logging
from .notifications import Mailer
from .seed import seed_catalog
from .services import CatalogService, OrderService

logger = structlog.get_logger(__name__)

ENDPOINTS = [
    "GET /api/products",
    "GET /api/products/:id",
    "POST /api/orders",
    "GET /api/orders/:id",
    "GET /api/health",
    "GET /api/ping",
    "GET /api/test-email",
]


def create_app(settings: Optional[Settings] = None, mailer: Optional[Mailer] = None) -> FastAPI:
    settings = settings or Settings()
    db = create_database(settings.database_url())
    mailer = mailer or Mailer(settings.mail())
    catalog = CatalogService(db)
    orders = OrderService(db, mailer)
    started = time.monotonic()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await db.create_all()
        if settings.SEED_ON_STARTUP and await catalog.count_products() == 0:
            logger.info("No products found, running seed")
            await seed_catalog(db)
        await mailer.start()
        logger.info("Storefront API ready", port=settings.PORT, email_configured=mailer.configured)
        try:
            yield
        finally:
            try:
                await mailer.close()
            finally:
                await db.dispose()

    app = FastAPI(title=f"{settings.STORE_NAME} API", version=settings.VERSION, lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db
    app.state.mailer = mailer
    app.state.catalog = catalog
    app.state.orders = orders

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(method=request.method, path=request.url.path)
        t0 = time.perf_counter()
        response = await call_next(request)
        logger.info("Request handled", status=response.status_code,
                    duration_ms=round((time.perf_counter() - t0) * 1000, 1))
        return response

    # ---------------------------
    # Error mapping
    # ---------------------------
    @app.exception_handler(StorefrontError)
    async def storefront_error(request: Request, exc: StorefrontError):
        if exc.status_code >= 500:
            logger.error("Request failed", error=exc.message)
        else:
            logger.info("Request rejected", status=exc.status_code, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        logger.info("Request body rejected", errors=len(exc.errors()))
        return JSONResponse(status_code=400, content={"error": InvalidPayload.message})

    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error")
        return JSONResponse(status_code=500, content={"error": "Server error"})

    # ---------------------------
    # Service endpoints
    # ---------------------------
    @app.get("/api/ping", response_class=PlainTextResponse)
    async def ping():
        return "pong"

    @app.get("/api/health", response_model=HealthOut)
    async def health():
        return HealthOut(
            status="ok",
            message="API is running",
            timestamp=datetime.now(timezone.utc),
            version=settings.VERSION,
            uptime=round(time.monotonic() - started, 3),
            email_configured=mailer.configured,
            email_provider=mailer.provider_name,
        )

    @app.get("/api")
    async def api_info():
        return {
            "message": f"{settings.STORE_NAME} API Server",
            "version": settings.VERSION,
            "endpoints": ENDPOINTS,
            "emailConfigured": mailer.configured,
        }

    @app.get("/api/test-email")
    async def test_email():
        if not mailer.configured:
            return JSONResponse(status_code=500, content={
                "error": "Email service not configured",
                "emailConfigured": False,
            })
        # NotificationError maps to 500 through the StorefrontError handler
        message_id = await mailer.send_test_email()
        return {"success": True, "message": "Test email sent successfully", "emailId": message_id}

    # ---------------------------
    # Product endpoints
    # ---------------------------
    @app.get("/api/products", response_model=List[ProductOut])
    async def list_products(category: Optional[str] = None, limit: Optional[str] = None,
                            offset: Optional[str] = None):
        return await catalog.list_products(category, limit, offset)

    @app.get("/api/products/{product_id}", response_model=ProductOut)
    async def get_product(product_id: str):
        return await catalog.get_product(product_id)

    # ---------------------------
    # Order endpoints
    # ---------------------------
    @app.post("/api/orders", response_model=OrderCreated)
    async def create_order(payload: OrderIn, background_tasks: BackgroundTasks):
        order = await orders.create_order(payload, background_tasks)
        return OrderCreated(order_id=order.id)

    @app.get("/api/orders/{order_id}", response_model=OrderOut)
    async def get_order(order_id: str):
        return await orders.get_order(order_id)

    return app


def build_app(settings: Optional[Settings] = None) -> FastAPI:
    """Process entry point: configure logging, then create the app."""
    settings = settings or Settings()
    configure_logging(settings.ENVIRONMENT, settings.LOG_LEVEL)
    return create_app(settings)


def run() -> None:
    settings = Settings()
    uvicorn.run(build_app(settings), host="0.0.0.0", port=settings.PORT, log_level="info")


# `uvicorn storefront.main:app` serves this instance
app = build_app()

if __name__ == "__main__":
    run()
