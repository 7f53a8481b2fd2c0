"""
FastAPI application entry point for the plan engine.

Sets up logging and Sentry, tags every request with a request id (taken
from X-Request-Id when the caller sends one), renders engine errors as
{detail, error_code} and mounts the training plans router.
"""
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.integrations.redis import RedisIntegration
from routers import training_plans
from core.config import settings
from core.database import check_db_connection
from core.logging import setup_logging
from core.exceptions import APIException
from core.privacy import client_ip, hash_ip
import logging
import time
import uuid

setup_logging()
logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"
SCRUBBED_HEADERS = ("authorization", "cookie", "x-forwarded-for", "x-real-ip", "x-user-id")


def _filter_sensitive_data(event):
    """Drop credentials, client addresses and user ids from Sentry events."""
    request = event.get("request") or {}
    headers = request.get("headers")
    if isinstance(headers, dict):
        for name in list(headers):
            if name.lower() in SCRUBBED_HEADERS:
                headers.pop(name)
    request.pop("env", None)
    return event


if settings.SENTRY_DSN:
    try:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.ENVIRONMENT,
            traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
            integrations=[
                FastApiIntegration(transaction_style="endpoint"),
                SqlalchemyIntegration(),
                RedisIntegration(),
            ],
            send_default_pii=False,
            before_send=lambda event, hint: _filter_sensitive_data(event),
        )
        logger.info(f"Sentry initialized for environment: {settings.ENVIRONMENT}")
    except Exception as e:
        logger.error(f"Failed to initialize Sentry: {e}")


app = FastAPI(
    title="Kairos Plan Engine API",
    description="Periodized training plan generation and progression",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)


def _request_fields(request: Request, **fields):
    return {
        "extra_fields": {
            "request_id": getattr(request.state, "request_id", None),
            "method": request.method,
            "path": request.url.path,
            **fields,
        }
    }


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Timing and outcome per request. Only the hashed client IP is logged."""
    request.state.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    started = time.perf_counter()

    logger.info(
        f"Request: {request.method} {request.url.path}",
        extra=_request_fields(request, ip_hash=hash_ip(client_ip(request), settings.IP_HASH_SALT)),
    )

    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(
            f"Request failed: {request.method} {request.url.path}",
            exc_info=True,
            extra=_request_fields(request, error=type(e).__name__),
        )
        raise

    elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
    logger.info(
        f"Response: {request.method} {request.url.path} - {response.status_code}",
        extra=_request_fields(request, status_code=response.status_code, process_time_ms=elapsed_ms),
    )
    response.headers[REQUEST_ID_HEADER] = request.state.request_id
    response.headers["X-Process-Time"] = str(elapsed_ms / 1000)
    return response


@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException):
    """Engine errors: {detail, error_code} plus any headers (Retry-After)."""
    if exc.status_code >= 500:
        logger.error(
            f"{exc.error_code}: {exc.detail}",
            exc_info=exc.__cause__,
            extra=_request_fields(request, error_code=exc.error_code),
        )
    else:
        logger.info(
            f"{exc.error_code}: {exc.detail}",
            extra=_request_fields(request, error_code=exc.error_code, status_code=exc.status_code),
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error_code": exc.error_code},
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Anything unexpected is a generic 500; details stay in the logs."""
    logger.error(f"Unhandled exception: {exc!r}", exc_info=True, extra=_request_fields(request))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


@app.get("/health")
def health():
    """
    Liveness for load balancers.

    Returns:
        - 200: store reachable
        - 503: store unavailable (the cache is optional and not checked)
    """
    if not check_db_connection():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": "unavailable"},
        )
    return {"status": "healthy", "timestamp": time.time()}


app.include_router(training_plans.router)
