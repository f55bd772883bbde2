"""
storefront/main.py

Purpose: Application entry point

- Initializes FastAPI app
- Loads configuration and logging
- Registers API routes (content, account, auth, orders, cart, payments, admin, assets)
- No business logic should be written here
- Manages application lifecycle (startup/shutdown)
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import time
import uuid

from storefront.core.config import settings, validate_settings
from storefront.core.logging import setup_logging, get_logger, LogContext
from storefront.core.errors import add_exception_handlers
from storefront.db.mongo import connect_to_mongo, close_mongo_connection, check_database_health
from storefront.db.indexes import create_indexes
from storefront.services.payment_service import close_payment_service
from storefront.services.email_service import email_service
from storefront.api import account, admin, assets, auth, cart, content, orders, payments

# Initialize logging first
setup_logging()
logger = get_logger(__name__)

APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info("Starting storefront API...")

    try:
        validate_settings()
        logger.info("Configuration validated")

        await connect_to_mongo()
        await create_indexes()

        is_healthy = await check_database_health()
        if not is_healthy:
            logger.warning("Database health check failed during startup")

        if not email_service.is_configured():
            logger.warning("E-mail API not configured; transactional e-mail is disabled")

        logger.info(f"Storefront API started (environment={settings.ENVIRONMENT}, debug={settings.DEBUG})")

    except Exception as e:
        logger.critical(f"Failed to start application: {str(e)}", exc_info=True)
        raise

    yield

    logger.info("Shutting down storefront API...")

    try:
        await close_payment_service()
        await close_mongo_connection()
        logger.info("Storefront API shut down")

    except Exception as e:
        logger.error(f"Error during shutdown: {str(e)}", exc_info=True)


app = FastAPI(
    title="Storefront API",
    description="Auth, cart, orders, payments and catalog content for the storefront",
    version=APP_VERSION,
    lifespan=lifespan,
    debug=settings.DEBUG,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_headers(request: Request, call_next):
    """Tag each response with a request id and its processing time."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
    start_time = time.time()
    with LogContext(request_id=request_id):
        response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = str(process_time)

    if process_time > 5.0:
        logger.warning(
            f"Slow request detected: {request.method} {request.url.path}",
            extra={"process_time": process_time, "request_id": request_id}
        )

    return response


add_exception_handlers(app)

app.include_router(content.router, prefix=settings.API_PREFIX, tags=["Content"])
app.include_router(account.router, prefix=settings.API_PREFIX, tags=["Account"])
app.include_router(auth.router, prefix=settings.API_PREFIX, tags=["Auth"])
app.include_router(orders.router, prefix=settings.API_PREFIX, tags=["Orders"])
app.include_router(cart.router, prefix=settings.API_PREFIX, tags=["Cart"])
app.include_router(payments.router, prefix=settings.API_PREFIX, tags=["Payments"])
app.include_router(admin.router, prefix=settings.API_PREFIX, tags=["Admin"])
app.include_router(assets.router, tags=["Assets"])


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - basic info."""
    return {
        "name": "Storefront API",
        "version": APP_VERSION,
        "status": "running",
        "environment": settings.ENVIRONMENT
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.
    Checks database connectivity and which integrations are configured.
    """
    health_status = {
        "status": "healthy",
        "timestamp": time.time(),
        "environment": settings.ENVIRONMENT,
        "version": APP_VERSION,
        "checks": {}
    }

    try:
        db_healthy = await check_database_health()
        health_status["checks"]["database"] = "healthy" if db_healthy else "unhealthy"

        if not db_healthy:
            health_status["status"] = "degraded"
    except Exception as e:
        logger.error(f"Database health check failed: {str(e)}")
        health_status["checks"]["database"] = "unhealthy"
        health_status["status"] = "unhealthy"

    health_status["checks"]["payments"] = "configured" if settings.STRIPE_SECRET_KEY else "not_configured"
    health_status["checks"]["email"] = "configured" if email_service.is_configured() else "not_configured"

    status_code = 200 if health_status["status"] == "healthy" else 503
    return JSONResponse(content=health_status, status_code=status_code)


@app.get("/ready", tags=["Health"])
async def readiness_check():
    """
    Readiness probe - indicates if app is ready to receive traffic.
    """
    try:
        db_healthy = await check_database_health()
        if db_healthy:
            return {"status": "ready"}
        else:
            return JSONResponse(
                status_code=503,
                content={"status": "not_ready", "reason": "database_unavailable"}
            )
    except Exception as e:
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "reason": str(e)}
        )


@app.get("/live", tags=["Health"])
async def liveness_check():
    return {"status": "alive"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "storefront.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower()
    )
