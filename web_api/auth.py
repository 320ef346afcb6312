"""
JWT authentication utilities for the web API.

Session tokens are issued by the platform's identity service and signed
with the shared JWT_SECRET (HS256). The token is read from the "session"
cookie (web) or an "Authorization: Bearer" header (mobile apps).

Claims used here:
- sub: the user's numeric id
- role: "admin" for staff, anything else is a student
"""

import os
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends, HTTPException, Request

JWT_ALGORITHM = "HS256"
JWT_EXPIRATION_HOURS = 24
ADMIN_ROLE = "admin"


def _get_secret() -> str:
    secret = os.environ.get("JWT_SECRET")
    if not secret:
        raise ValueError("JWT_SECRET environment variable not set")
    return secret


def create_jwt(user_id: int, role: str = "student") -> str:
    """
    Create a signed JWT token for a user.

    Used by scripts and tests; production tokens come from the identity service.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": now + timedelta(hours=JWT_EXPIRATION_HOURS),
    }
    return jwt.encode(payload, _get_secret(), algorithm=JWT_ALGORITHM)


def verify_jwt(token: str) -> dict | None:
    """
    Verify and decode a JWT token.

    Returns:
        Decoded payload dict if valid, None if invalid
    """
    try:
        return jwt.decode(token, _get_secret(), algorithms=[JWT_ALGORITHM])
    except jwt.InvalidTokenError:
        return None


def _extract_token(request: Request) -> str | None:
    token = request.cookies.get("session")
    if token:
        return token
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return None


async def get_current_user(request: Request) -> dict:
    """
    FastAPI dependency to get the current authenticated user.

    Returns:
        {"user_id": int, "role": str}

    Raises:
        HTTPException: 401 if not authenticated or invalid token
    """
    token = _extract_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    payload = verify_jwt(token)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    return {"user_id": user_id, "role": payload.get("role", "student")}


async def require_admin(user: dict = Depends(get_current_user)) -> dict:
    """FastAPI dependency that only lets admins through (403 otherwise)."""
    if user["role"] != ADMIN_ROLE:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
