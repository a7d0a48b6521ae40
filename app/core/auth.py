"""
Authentication Utility - verifies tokens issued by the identity provider.

Sign-up, sign-in and sessions live with the external provider. This module
only checks the bearer token it issued and exposes FastAPI dependencies
for protected routes.
"""

import logging
from typing import Optional
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

# Bearer token extractor; missing headers are handled below so auth can be switched off
bearer_scheme = HTTPBearer(auto_error=False)


def _verification_key() -> str:
    if settings.jwt_algorithm.startswith(("RS", "ES")):
        return settings.jwt_public_key
    return settings.jwt_secret_key


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    options = {"verify_aud": bool(settings.jwt_audience)}
    try:
        return jwt.decode(
            token,
            _verification_key(),
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience or None,
            options=options
        )
    except JWTError as e:
        logger.info("Rejected token: %s", e)
        return None


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Optional[dict]:
    """
    FastAPI dependency - Get current authenticated user.
    Returns None when auth is disabled.

    Usage:
        @app.get("/protected")
        async def route(user: dict = Depends(get_current_user)):
            return user
    """
    if not settings.auth_enabled:
        return None

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    payload = decode_token(credentials.credentials)
    if not payload:
        raise credentials_exception

    user_id = payload.get("sub")
    if not user_id:
        raise credentials_exception

    role = payload.get(settings.jwt_role_claim)
    # Providers often nest custom claims under metadata
    if role is None and isinstance(payload.get("metadata"), dict):
        role = payload["metadata"].get("role")

    return {"user_id": str(user_id), "role": role}


async def get_current_recruiter(user: Optional[dict] = Depends(get_current_user)) -> Optional[dict]:
    """Dependency - Require recruiter role."""
    if user is not None and user["role"] != "recruiter":
        raise HTTPException(status_code=403, detail="Recruiters only")
    return user


async def get_current_candidate(user: Optional[dict] = Depends(get_current_user)) -> Optional[dict]:
    """Dependency - Require candidate role."""
    if user is not None and user["role"] != "candidate":
        raise HTTPException(status_code=403, detail="Candidates only")
    return user


def ensure_same_user(user: Optional[dict], user_id: Optional[str]):
    """Raise 403 unless the token belongs to user_id. No-op when auth is off."""
    if user is None:
        return
    if user_id is None or user["user_id"] != str(user_id):
        raise HTTPException(status_code=403, detail="Access denied")
