"""
Pattern Insights API entry point.

Wires logging, optional Sentry, CORS, request timing and the insights /
community routers onto one FastAPI app.
"""
from typing import List
import logging
import time

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import settings
from core.database import check_db_connection
from core.logging import setup_logging
from routers import community, insights

setup_logging()
logger = logging.getLogger(__name__)

LOCAL_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


def _init_sentry() -> None:
    """Report unhandled errors to Sentry when a DSN is configured."""
    if not settings.SENTRY_DSN:
        return
    try:
        import sentry_sdk
        from sentry_sdk.integrations.fastapi import FastApiIntegration
        from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
    except ImportError:
        logger.warning("SENTRY_DSN is set but sentry-sdk is not installed; error tracking disabled")
        return

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        integrations=[FastApiIntegration(transaction_style="endpoint"), SqlalchemyIntegration()],
        send_default_pii=False,
    )
    logger.info(f"Sentry enabled ({settings.ENVIRONMENT})")


def _cors_origins() -> List[str]:
    if settings.DEBUG:
        return ["*"]
    if settings.CORS_ORIGINS:
        return [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
    return LOCAL_ORIGINS


_init_sentry()

show_docs = settings.DEBUG or settings.EXPOSE_API_DOCS
app = FastAPI(
    title="Pattern Insights API",
    description="Pattern, trigger and timeline insights with community comparison",
    version="1.0.0",
    docs_url="/docs" if show_docs else None,
    redoc_url="/redoc" if show_docs else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Time every request; failures are logged and re-raised."""
    started = time.perf_counter()
    request_fields = {"method": request.method, "path": request.url.path}

    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(
            f"{request.method} {request.url.path} raised {type(e).__name__}",
            exc_info=True,
            extra={"extra_fields": {**request_fields, "error": str(e)}},
        )
        raise

    elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms} ms)",
        extra={"extra_fields": {**request_fields, "status_code": response.status_code,
                                "process_time_ms": elapsed_ms}},
    )
    response.headers["X-Process-Time-Ms"] = str(elapsed_ms)
    return response


@app.exception_handler(Exception)
async def unhandled_exception(request: Request, exc: Exception):
    """Anything a router did not translate becomes an opaque 500."""
    logger.error(
        f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}",
        exc_info=exc,
        extra={"extra_fields": {"method": request.method, "path": request.url.path}},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


@app.get("/health")
async def health():
    """200 when the database answers, 503 otherwise."""
    if check_db_connection():
        return {"status": "healthy", "database": "ok", "timestamp": time.time()}
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "unhealthy", "database": "unavailable"},
    )


@app.get("/ping")
async def ping():
    return {"pong": True}


app.include_router(insights.router)
app.include_router(community.router)
