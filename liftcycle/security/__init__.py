"""Security utilities."""
from liftcycle.security.jwt_utils import create_access_token, get_token_subject

__all__ = [
    "create_access_token",
    "get_token_subject",
]
