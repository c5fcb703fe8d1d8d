"""Shared dependencies for API routes."""
from fastapi import Depends, Header, Request

from liftcycle.core.exceptions import AuthenticationError
from liftcycle.security import get_token_subject
from liftcycle.services.container import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def _user_from_header(authorization: str) -> str:
    try:
        scheme, token = authorization.split()
    except ValueError:
        raise AuthenticationError("Invalid authorization header format")
    if scheme.lower() != "bearer":
        raise AuthenticationError("Invalid authentication scheme")

    return get_token_subject(token)


async def get_current_user_id(
    authorization: str | None = Header(None, alias="Authorization"),
    container: ServiceContainer = Depends(get_container),
) -> str:
    """Caller identity for read endpoints.

    Falls back to the configured single user when no token is sent.

    Raises:
        AuthenticationError: If a token is sent but is invalid
    """
    if not authorization:
        return container.settings.default_user_id
    return _user_from_header(authorization)


async def require_user_id(
    authorization: str | None = Header(None, alias="Authorization"),
    container: ServiceContainer = Depends(get_container),
) -> str:
    """Caller identity for endpoints that change cycle or workout state.

    Raises:
        AuthenticationError: If no valid bearer token is sent while
            auth_required_for_writes is on
    """
    if not authorization:
        if container.settings.auth_required_for_writes:
            raise AuthenticationError("No authorization header provided")
        return container.settings.default_user_id
    return _user_from_header(authorization)
