# backend/zlecenia/routes/v1/health.py
"""
Health check endpoint for monitoring and load balancer probes.
"""

from datetime import datetime, timezone
import logging
from typing import Any, Dict

from fastapi import APIRouter

from ...core.config import settings
from ...database import get_db_pool_status
from ...services.messaging.connection_registry import get_connection_registry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
def health() -> Dict[str, Any]:
    return {
        "status": "healthy",
        "environment": settings.environment,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "chat": get_connection_registry().stats(),
        "database_pool": get_db_pool_status(),
    }
