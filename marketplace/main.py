"""FastAPI application entrypoint."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from secure import Secure
from asgi_correlation_id import CorrelationIdMiddleware
from fastapi_limiter import FastAPILimiter
import redis.asyncio as redis  # type: ignore[import-untyped]

from marketplace.api import api_router
from marketplace.core.config import get_settings
from marketplace.db.session import dispose_engine
from marketplace.security.logging_filters import SensitiveFilter

logger = logging.getLogger(__name__)

settings = get_settings()

_REDACTED_LOGGERS = ("", "uvicorn", "uvicorn.access", "uvicorn.error", "marketplace")


def _install_log_redaction() -> None:
    for name in _REDACTED_LOGGERS:
        target = logging.getLogger(name)
        if not any(isinstance(flt, SensitiveFilter) for flt in target.filters):
            target.addFilter(SensitiveFilter())


async def _start_rate_limiter() -> redis.Redis | None:
    """Connect the promo and checkout limiter; pricing keeps working without it."""

    if not settings.redis_url:
        logger.info("REDIS_URL not set; promo and checkout rate limits disabled")
        return None
    try:
        pool = redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
        await FastAPILimiter.init(pool)
    except Exception:  # pragma: no cover - limiter startup is best effort
        logger.exception("Failed to initialize rate limiter")
        return None
    return pool


@asynccontextmanager
async def lifespan(_: FastAPI):
    redis_pool = await _start_rate_limiter()
    try:
        yield
    finally:
        if FastAPILimiter.redis is not None:
            try:
                await FastAPILimiter.close()
            except Exception:  # pragma: no cover - limiter shutdown
                logger.exception("Failed to close rate limiter")
        if redis_pool is not None:
            await redis_pool.aclose()
        await dispose_engine()


_install_log_redaction()

app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowlist or ["http://localhost:3000"],
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)
app.add_middleware(CorrelationIdMiddleware, header_name="X-Request-ID")

_secure_headers = Secure.with_default_headers()


@app.middleware("http")
async def _apply_security_headers(request, call_next):
    response = await call_next(request)
    _secure_headers.set_headers(response)
    return response


app.include_router(api_router)


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    return {"message": settings.app_name, "currency": settings.currency}
