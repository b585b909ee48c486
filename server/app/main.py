import logging
import time
import uuid

import app.models  # noqa: F401
from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.errors import error_response, register_exception_handlers
from app.core.logging import configure_logging
from app.routers import addresses as addresses_router
from app.routers import admin as admin_router
from app.routers import auth as auth_router
from app.routers import dashboard as dashboard_router
from app.routers import households as households_router
from app.routers import occupations as occupations_router
from app.routers import residents as residents_router
from app.routers import users as users_router
from app.routers import whoami as whoami_router
from app.services.consistency import run_scheduled_check

configure_logging()

app = FastAPI(title="RBI Registry API", version="0.1.0")

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(timezone="UTC")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)

app.include_router(auth_router.router)
app.include_router(whoami_router.router)
app.include_router(residents_router.router)
app.include_router(households_router.router)
app.include_router(addresses_router.router)
app.include_router(addresses_router.psgc_router)
app.include_router(occupations_router.router)
app.include_router(dashboard_router.router)
app.include_router(users_router.router)
app.include_router(admin_router.router)

BODY_METHODS = {"POST", "PUT", "PATCH"}


@app.middleware("http")
async def limit_request_size(request: Request, call_next):
    if request.method in BODY_METHODS:
        length = request.headers.get("content-length")
        if length is not None and length.isdigit():
            size = int(length)
        else:
            # Chunked uploads carry no length; the body is cached for the route.
            size = len(await request.body())
        if size > settings.MAX_REQUEST_BYTES:
            return error_response(
                status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                "Request body too large",
                {"max_bytes": settings.MAX_REQUEST_BYTES},
            )
    return await call_next(request)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = round((time.perf_counter() - started) * 1000, 1)
    response.headers["X-Request-ID"] = request_id
    logger.info(
        "%s %s -> %s",
        request.method,
        request.url.path,
        response.status_code,
        extra={"request_id": request_id, "duration_ms": duration_ms},
    )
    return response


@app.get("/health", tags=["health"])
def health() -> dict:
    return {"data": {"status": "ok", "environment": settings.ENVIRONMENT}, "message": "Service is healthy"}


def _run_consistency_check() -> None:
    run_scheduled_check(repair=settings.CONSISTENCY_CHECK_REPAIR)


@app.on_event("startup")
def start_scheduled_jobs() -> None:
    if not settings.CONSISTENCY_CHECK_ENABLED:
        logger.info("geographic consistency job disabled")
        return
    if not scheduler.running:
        scheduler.start()
    scheduler.add_job(
        _run_consistency_check,
        trigger="cron",
        hour=settings.CONSISTENCY_CHECK_HOUR,
        minute=0,
        id="geographic_consistency_check",
        replace_existing=True,
    )


@app.on_event("shutdown")
def shutdown_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
