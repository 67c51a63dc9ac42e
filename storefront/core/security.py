import uuid
from datetime import datetime, timedelta, timezone

import jwt

from storefront.core.config import settings


ALGORITHM = "HS256"
ADMIN_ROLE = "admin"


def create_access_token(
    subject: str,
    role: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Issue an access token.

    Tokens normally come from the identity provider; this exists for
    operational scripts and tests that need a signed token.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "role": role,
        "exp": now + (expires_delta or timedelta(minutes=15)),
        "iat": now,
        "nbf": now,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "jti": str(uuid.uuid4()),
        "type": "access",
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and verify a JWT token. Raises jwt.PyJWTError on failure."""
    return jwt.decode(
        token,
        settings.jwt_secret_key,
        algorithms=[ALGORITHM],
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
    )


def verify_access_token(token: str) -> dict | None:
    """Verify an access token and return its payload, or None if invalid."""
    try:
        payload = decode_token(token)
        if payload.get("type") != "access":
            return None
        return payload
    except jwt.PyJWTError:
        return None


def is_privileged(payload: dict) -> bool:
    return payload.get("role") == ADMIN_ROLE
