"""
Health check endpoints for deployment.

Provides:
- /health - Basic liveness check (is the app running?)
- /ready - Readiness check (is the table available?)
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter

from room import Room

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

# Table reference (set during app initialization)
_room: Optional[Room] = None


def set_health_dependencies(room: Optional[Room] = None) -> None:
    """Set dependencies for health checks."""
    global _room
    _room = room


@router.get("/health")
async def health_check():
    """
    Basic liveness check - is the app running?

    This endpoint should always return 200 if the process is alive.
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/ready")
async def readiness_check():
    """
    Readiness check - reports the table's phase and seating.
    """
    table = {"status": "not_configured"}
    if _room is not None:
        table = {
            "status": "ok",
            "phase": _room.game.phase.value,
            "seats": len(_room.seats),
            "connected": sum(1 for s in _room.seats if s.connected),
        }

    return {
        "status": "ok",
        "checks": {"table": table},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
