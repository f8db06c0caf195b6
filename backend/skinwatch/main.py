import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from skinwatch.api.alerts_routes import router as alerts_router
from skinwatch.api.cron_routes import router as cron_router
from skinwatch.api.deps import close_clients
from skinwatch.api.events_routes import router as events_router
from skinwatch.core.exceptions import RateLimitError, SkinWatchError
from skinwatch.core.logger import configure_logging

logger = structlog.get_logger(__name__)

app = FastAPI(
    title="SkinWatch API",
    description="Steam market price checks and price alerts",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(GZipMiddleware, minimum_size=1000)

app.include_router(cron_router)
app.include_router(events_router)
app.include_router(alerts_router)


@app.exception_handler(SkinWatchError)
async def skinwatch_error_handler(request: Request, exc: SkinWatchError):
    content = {"error": exc.message}
    if isinstance(exc, RateLimitError):
        content["remaining"] = exc.remaining
        content["reset_time"] = exc.reset_time.isoformat() if exc.reset_time else None

    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "request.failed",
        path=request.url.path,
        status=exc.status_code,
        error_type=type(exc).__name__,
        error=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=content)


@app.api_route("/health", methods=["GET", "HEAD"])
def health_check():
    try:
        from skinwatch.db.session import engine

        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))

        return {
            "status": "healthy",
            "service": "skinwatch-api",
            "database": "connected",
        }
    except Exception as e:
        return {
            "status": "degraded",
            "service": "skinwatch-api",
            "database": "disconnected",
            "error": str(e),
        }


@app.on_event("startup")
async def startup_event():
    configure_logging()
    logger.info("app.started")


@app.on_event("shutdown")
async def shutdown_event():
    await close_clients()
