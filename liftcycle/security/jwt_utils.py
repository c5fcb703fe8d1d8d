"""Bearer token utilities.

Tokens are issued by the external identity provider; this service only
verifies them. create_access_token exists for local development and tests.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt

from liftcycle.config.settings import get_settings
from liftcycle.core.exceptions import AuthenticationError


def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a signed JWT.

    Args:
        data: Claims to encode (e.g., {"sub": user_id})
        expires_delta: Lifetime of the token, one hour by default

    Returns:
        Encoded JWT token string
    """
    settings = get_settings()
    claims = {**data, "exp": datetime.now(timezone.utc) + (expires_delta or timedelta(hours=1))}
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def get_token_subject(token: str) -> str:
    """Caller identity ("sub" claim) of a token.

    Raises AuthenticationError with AUTH_TOKEN_EXPIRED for an expired token and
    AUTH_001 for anything else that does not verify.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except ExpiredSignatureError:
        raise AuthenticationError("Token expired", code="AUTH_TOKEN_EXPIRED")
    except JWTError:
        raise AuthenticationError("Invalid token")

    subject = payload.get("sub")
    if not subject:
        raise AuthenticationError("Token has no subject")
    return str(subject)
