from datetime import datetime, timezone, timedelta

import jwt

from lms.auth.constants import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGORITHM, TOKEN_TYPE
from lms.auth.models import TokenClaims, TokenResponse
from lms.errors import ConfigurationError, Unauthenticated
from lms.settings import get_settings


def _get_secret() -> str:
    secret = get_settings().jwt_secret
    if not secret:
        raise ConfigurationError("JWT secret not configured")
    return secret


def create_access_token(
    user_id: int, role: str, expires_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES
) -> TokenResponse:
    now = datetime.now(timezone.utc)
    expires = now + timedelta(minutes=expires_minutes)

    payload = {
        "sub": str(user_id),
        "role": role,
        "type": TOKEN_TYPE,
        "iat": now,
        "exp": expires,
    }

    token = jwt.encode(payload, _get_secret(), algorithm=JWT_ALGORITHM)

    return TokenResponse(
        access_token=token,
        expires_in=expires_minutes * 60,
    )


def decode_access_token(token: str) -> TokenClaims:
    """Decode and verify a JWT access token.

    Raises Unauthenticated on a bad signature, a malformed token, an expired
    token or a payload without identity and role.
    """
    try:
        payload = jwt.decode(token, _get_secret(), algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Invalid or expired token", error="Token has expired")
    except jwt.InvalidTokenError:
        raise Unauthenticated("Invalid or expired token", error="Invalid token")

    if payload.get("type") != TOKEN_TYPE:
        raise Unauthenticated("Invalid or expired token", error="Invalid token type")

    sub = payload.get("sub")
    role = payload.get("role")
    if not sub or not role:
        raise Unauthenticated("Invalid or expired token", error="Invalid token payload")

    try:
        user_id = int(sub)
    except ValueError:
        raise Unauthenticated("Invalid or expired token", error="Invalid token payload")

    return TokenClaims(user_id=user_id, role=role)
