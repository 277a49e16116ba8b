import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from market_chat.api import chats, health, notifications, offers, ws
from market_chat.core.config import settings
from market_chat.core.errors import AppError
from market_chat.core.logging_config import setup_logging
from market_chat.core.middleware import RequestLoggingMiddleware
from market_chat.core.rate_limit import limiter
from market_chat.db.session import async_session_factory, engine
from market_chat.realtime.gateway import ChatGateway
from market_chat.realtime.publisher import ConnectionManager
from market_chat.realtime.redis_broker import RedisEventPublisher

# Configure structured JSON logging before anything else
setup_logging(logging.DEBUG if settings.debug else logging.INFO)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the realtime fan-out once and verify the database connection."""
    manager = ConnectionManager()
    redis_publisher: RedisEventPublisher | None = None
    if settings.realtime_broker == "redis":
        redis_publisher = RedisEventPublisher(
            manager, settings.redis_url, settings.realtime_redis_channel
        )
        await redis_publisher.start()
        app.state.publisher = redis_publisher
    else:
        app.state.publisher = manager
    app.state.gateway = ChatGateway(manager, app.state.publisher, async_session_factory)
    logger.info("Realtime broker ready", extra={"broker": settings.realtime_broker})

    try:
        async with engine.begin():
            pass  # connection pool is initialised
        logger.info("Database connection established")
    except Exception as exc:
        logger.warning("Database connection not available at startup: %s", exc)
    yield
    if redis_publisher is not None:
        await redis_publisher.stop()
    await engine.dispose()


app = FastAPI(
    title="Market Chat API",
    description="Chat rooms, messages and price offers for the second-hand marketplace.",
    version="1.0.0",
    openapi_url="/api/openapi.json",
    docs_url="/api/docs",
    debug=settings.debug,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Rate limiter
# ---------------------------------------------------------------------------
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------
app.add_middleware(RequestLoggingMiddleware)


# ---------------------------------------------------------------------------
# Global exception handlers
# ---------------------------------------------------------------------------
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request", "errors": jsonable_errors(exc)},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
app.include_router(health.router, prefix="/api")
app.include_router(chats.router, prefix="/api")
app.include_router(offers.router, prefix="/api")
app.include_router(notifications.router, prefix="/api")
app.include_router(ws.router, prefix="/api")
