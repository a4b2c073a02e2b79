"""
OnionPost FastAPI Application

Multi-profile social API with communities, posts and threaded comments,
built around onion-layered profile visibility. Each profile chooses which of
its fields are shown to the public, to followers and to close friends; viewers
see the layers their relationship unlocks, on profiles and on authored content.

Environment Configuration:
    All settings loaded from the environment / .env via pydantic-settings.
    See onionpost/app/config.py for available options.

API Endpoints:
    - /v1/healthz: Health check
    - /v1/auth/*: Registration and login
    - /v1/profiles/*: Profile views, personas, editing and switching
    - /v1/friends/*: Follow and close-friend relationships
    - /v1/communities: Community creation and listing
    - /v1/posts/*: Posts, votes and comment threads
    - /metrics: Prometheus metrics
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .db.postgres_async import close_pool, init_pool
from .exceptions import OnionPostError
from .middleware.auth import JWTAuthMiddleware
from .middleware.request_logging import RequestLoggingMiddleware
from .routers import auth, communities, friends, health, posts, profiles
from .utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the PostgreSQL pool on startup and close it on shutdown."""
    await init_pool()
    try:
        yield
    finally:
        await close_pool()


configure_logging(settings.LOG_LEVEL, service_name=settings.SERVICE_NAME)

app = FastAPI(
    title="OnionPost API",
    description="Multi-profile social API with onion-layered profile visibility",
    version="0.1.0",
    lifespan=lifespan,
    default_response_class=JSONResponse,
)


@app.exception_handler(OnionPostError)
async def handle_domain_error(request: Request, exc: OnionPostError) -> JSONResponse:
    """Map domain error kinds to HTTP status codes."""
    logger.info(
        "domain_error",
        extra={"kind": type(exc).__name__, "detail": exc.detail, "path": request.url.path},
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix=settings.API_PREFIX)
app.include_router(auth.router, prefix=settings.API_PREFIX)
app.include_router(profiles.router, prefix=settings.API_PREFIX)
app.include_router(friends.router, prefix=settings.API_PREFIX)
app.include_router(communities.router, prefix=settings.API_PREFIX)
app.include_router(posts.router, prefix=settings.API_PREFIX)
app.include_router(health.monitoring_router)  # No prefix - uses /metrics directly

exempt_paths = {
    "/",
    "/docs",
    "/openapi.json",
    "/redoc",
    "/metrics",
    f"{settings.API_PREFIX}/healthz",
    f"{settings.API_PREFIX}/auth/register",
    f"{settings.API_PREFIX}/auth/login",
}

app.add_middleware(
    RequestLoggingMiddleware,
    exempt_paths={"/metrics", f"{settings.API_PREFIX}/healthz"},
    metrics_enabled=settings.METRICS_ENABLED,
)
app.add_middleware(
    JWTAuthMiddleware,
    secret_key=settings.JWT_SECRET_KEY,
    algorithm=settings.JWT_ALGORITHM,
    audience=settings.JWT_AUDIENCE,
    issuer=settings.JWT_ISSUER,
    exempt_paths=exempt_paths,
)
