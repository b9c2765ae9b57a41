"""
Login API router.

Players log in with a display name and the shared table credential: the
password must be one of the allow-listed player names (case-insensitive).
There are no sessions; the client keeps the returned username and sends it
in its WebSocket join message.
"""

import logging
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

import config as server_config

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])


class LoginRequest(BaseModel):
    """Login request."""
    username: Optional[str] = None
    password: Optional[str] = None


class LoginResponse(BaseModel):
    """Login response."""
    success: bool
    username: Optional[str] = None
    message: Optional[str] = None


def is_allowed(password: Optional[str]) -> bool:
    """Check a password against the player allow-list."""
    return bool(password) and password.lower() in server_config.config.ALLOWED_PLAYERS


@router.post("/login", response_model=LoginResponse)
async def login(request_body: LoginRequest):
    """Check the shared credential and echo the username back."""
    if is_allowed(request_body.password) and request_body.username:
        logger.info(f"Login accepted for {request_body.username}")
        return LoginResponse(success=True, username=request_body.username)

    logger.info("Login rejected")
    return JSONResponse(
        status_code=401,
        content={"success": False, "message": "Invalid player name"},
    )
