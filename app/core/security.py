"""
Security and Authentication Module

This module provides password hashing, JWT access tokens, caller identity
resolution and the FastAPI dependencies that enforce the access policy.
"""

from datetime import datetime, timezone, timedelta
from typing import Any, Dict, Optional, Union

import jwt
import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext

from app.core.access_policy import Action, check_access
from app.core.config import Settings, settings as default_settings
from app.core.exceptions import AuthenticationError
from app.models.schemas import UserRecord

# =============================================================================
# Logger Setup
# =============================================================================

logger = structlog.get_logger(__name__)

# =============================================================================
# Security Configuration
# =============================================================================

# Password hashing context
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# JWT settings
ALGORITHM = "HS256"

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)

# =============================================================================
# Password Operations
# =============================================================================

def create_password_hash(password: str) -> str:
    """
    Create password hash using PBKDF2-SHA256.

    Args:
        password: Plain text password

    Returns:
        Hashed password string
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify password against hash.

    Args:
        plain_password: Plain text password to check
        hashed_password: Stored password hash

    Returns:
        True if password matches; False for malformed hashes
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        logger.warning("Unrecognized password hash format")
        return False


# =============================================================================
# JWT Token Operations
# =============================================================================

def create_access_token(
    subject: Union[str, int],
    expires_delta: Optional[timedelta] = None,
    additional_claims: Optional[Dict[str, Any]] = None,
    config: Optional[Settings] = None,
) -> str:
    """
    Create JWT access token.

    Args:
        subject: Token subject (user ID)
        expires_delta: Token expiration time delta
        additional_claims: Additional claims to include
        config: Settings providing the signing key and default lifetime

    Returns:
        JWT token string
    """
    config = config or default_settings
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))

    to_encode = {
        "exp": expire,
        "sub": str(subject),
        "iat": now,
        "type": "access",
    }

    if additional_claims:
        to_encode.update(additional_claims)

    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str, config: Optional[Settings] = None) -> Dict[str, Any]:
    """
    Decode and validate JWT token.

    Args:
        token: JWT token string
        config: Settings providing the signing key

    Returns:
        Decoded token payload

    Raises:
        AuthenticationError: If token is invalid, expired or not an access token
    """
    config = config or default_settings
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.PyJWTError as e:
        logger.debug("JWT decode error", error=str(e))
        raise AuthenticationError("Invalid token")

    if not payload.get("sub") or payload.get("type") != "access":
        raise AuthenticationError("Invalid token")

    return payload


# =============================================================================
# Caller Identity
# =============================================================================

def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", default_settings)


def get_store(request: Request):
    """Entity store attached to the running application."""
    return request.app.state.store


def parse_user_id(raw: Union[str, int]) -> Optional[int]:
    try:
        return int(str(raw).strip())
    except ValueError:
        return None


def resolve_caller_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = None,
) -> Optional[str]:
    """
    Determine who is calling.

    A bearer token wins over the identity header. Returns the raw identity
    (a token subject or header value), or None when the request carries
    neither.
    """
    config = get_app_settings(request)

    if credentials is not None:
        payload = decode_token(credentials.credentials, config)
        return str(payload["sub"])

    if config.ALLOW_HEADER_IDENTITY:
        raw = request.headers.get(config.IDENTITY_HEADER)
        if raw is not None and raw.strip():
            return raw.strip()

    return None


async def authenticate_user(store, username: str, password: str) -> Optional[UserRecord]:
    """Look up ``username`` and verify ``password``; None on any mismatch."""
    user = await store.get_user_by_username(username)
    if user is None or not verify_password(password, user.password):
        return None
    return user


# =============================================================================
# User Authentication Dependencies
# =============================================================================

async def require_authentication(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> UserRecord:
    """
    Require a resolvable caller - raises 401 otherwise.

    The user is looked up on every request; roles are never cached.

    Raises:
        AuthenticationError: no identity, or the identity matches no user
    """
    caller_id = resolve_caller_id(request, credentials)
    if caller_id is None:
        raise AuthenticationError("Authentication required")

    user_id = parse_user_id(caller_id)
    user = await get_store(request).get_user(user_id) if user_id is not None else None

    if user is None:
        logger.info("Unknown caller identity", caller_id=caller_id)
        raise AuthenticationError("User not found")

    return user


# =============================================================================
# Role-Based Access Control
# =============================================================================

def require_action(action: Action):
    """
    Create dependency that resolves the caller and checks ``action``.

    Args:
        action: Policy action guarded by the endpoint

    Returns:
        FastAPI dependency function yielding the caller
    """
    async def action_checker(
        current_user: UserRecord = Depends(require_authentication),
    ) -> UserRecord:
        check_access(action, current_user)
        return current_user

    return action_checker


# =============================================================================
# Export Public Interface
# =============================================================================

__all__ = [
    # Password functions
    "create_password_hash",
    "verify_password",

    # JWT functions
    "create_access_token",
    "decode_token",

    # Identity
    "get_store",
    "get_app_settings",
    "resolve_caller_id",
    "authenticate_user",

    # Dependencies
    "require_authentication",
    "require_action",
]
