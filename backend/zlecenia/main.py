# backend/zlecenia/main.py
"""
FastAPI application for the zlecenia backend.

REST routes live under /api/v1, the chat WebSocket at /api/v1/chat/ws and
Prometheus metrics at /metrics.
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import is_running_tests, settings
from .core.request_context import attach_request_id_filter
from .database import init_db
from .errors import register_error_handlers
from .middleware.prometheus_middleware import PrometheusMiddleware
from .middleware.request_id import RequestIdMiddleware
from .routes import prometheus
from .routes.v1 import (
    auth as auth_v1,
    chat as chat_v1,
    health as health_v1,
    posts as posts_v1,
    reviews as reviews_v1,
    threads as threads_v1,
    users as users_v1,
)
from .services.messaging.connection_registry import get_connection_registry

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s",
)
attach_request_id_filter()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown."""
    logger.info(f"zlecenia API starting up (environment={settings.environment})")
    if is_running_tests():
        logger.info("Running under pytest (test mode active)")
    init_db()
    if settings.chat_notifications_enabled and not settings.is_postgres:
        logger.warning("[NOTIFY] Chat notifications need PostgreSQL; listeners will fail to connect")

    yield

    logger.info(f"zlecenia API shutting down ({get_connection_registry().stats()})")


app = FastAPI(
    title="zlecenia API",
    description="Tutoring marketplace backend with real-time chat",
    version="1.0.0",
    lifespan=app_lifespan,
)

register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)
app.add_middleware(PrometheusMiddleware)
# Outermost, so log lines from the other middleware carry the id too
app.add_middleware(RequestIdMiddleware)

# Create API v1 router
api_v1 = APIRouter(prefix="/api/v1")

api_v1.include_router(auth_v1.router, prefix="/auth")
api_v1.include_router(users_v1.router, prefix="/users")
api_v1.include_router(posts_v1.router, prefix="/posts")
api_v1.include_router(reviews_v1.router, prefix="/reviews")
api_v1.include_router(threads_v1.router, prefix="/threads")
api_v1.include_router(chat_v1.router, prefix="/chat")
api_v1.include_router(health_v1.router)

app.include_router(api_v1)
app.include_router(prometheus.router)
