"""Bearer-token authentication."""

from tubely.modules.auth.jwt import (
    TokenPayload,
    create_access_token,
    get_bearer_token,
    validate_jwt,
    get_current_user_id,
)

__all__ = [
    "TokenPayload",
    "create_access_token",
    "get_bearer_token",
    "validate_jwt",
    "get_current_user_id",
]
