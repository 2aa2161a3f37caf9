from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
import time

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.api.routes import api_router
from app.core.config import get_settings
from app.core.rate_limit import SlidingWindowRateLimiter
from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.services.seed import seed_demo_data


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

settings = get_settings()
logger = logging.getLogger("factorybooks.api")

rate_limiter = SlidingWindowRateLimiter(settings.rate_limit_requests, settings.rate_limit_window_seconds)


def _prepare_database() -> None:
    if settings.auto_create_schema:
        Base.metadata.create_all(bind=engine)
    if not settings.seed_demo_data:
        return
    with SessionLocal() as db:
        try:
            seed_demo_data(db)
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Demo ledger seed failed; starting with the existing data.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    _prepare_database()
    logger.info("%s serving analytics under %s.", settings.app_name, settings.api_prefix)
    yield
    engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Forecasts, anomaly checks, health scores and financial statements over a factory ledger.",
    debug=settings.debug,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
    expose_headers=["X-Report-Checksum", "Content-Disposition"],
)


def _caller_key(request: Request) -> str:
    # one budget per user across all endpoints; anonymous callers are keyed by address
    user_id = request.headers.get("x-user-id")
    if user_id:
        return f"user:{user_id}"
    return f"client:{request.client.host if request.client else 'unknown'}"


@app.middleware("http")
async def throttle_and_log(request: Request, call_next):
    caller = _caller_key(request)
    if not rate_limiter.allow(caller, time.monotonic()):
        logger.warning("Throttled %s on %s %s.", caller, request.method, request.url.path)
        return JSONResponse(
            status_code=429,
            content={"detail": "Too many analytics requests. Please retry later."},
            headers={"Retry-After": str(int(settings.rate_limit_window_seconds))},
        )

    started = time.monotonic()
    try:
        response = await call_next(request)
    except Exception:  # pragma: no cover
        logger.exception("Unhandled error for %s %s (%s)", request.method, request.url.path, caller)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    logger.info(
        "%s %s [%s] -> %s %.2fms",
        request.method,
        request.url.path,
        caller,
        response.status_code,
        (time.monotonic() - started) * 1000,
    )
    return response


@app.get("/healthz", include_in_schema=False)
def liveness() -> dict:
    return {"ok": True, "timestamp": datetime.now(timezone.utc).isoformat()}


@app.get("/", include_in_schema=False)
def index() -> dict[str, str]:
    prefix = settings.api_prefix
    return {
        "service": settings.app_name,
        "currency": settings.currency_code,
        "forecast": f"{prefix}/analytics/forecast/sales",
        "anomalies": f"{prefix}/analytics/anomalies",
        "health_score": f"{prefix}/dashboard/health-score",
        "docs": "/docs",
    }


@app.get("/favicon.ico", include_in_schema=False)
def favicon() -> Response:
    return Response(status_code=204)


app.include_router(api_router, prefix=settings.api_prefix)
