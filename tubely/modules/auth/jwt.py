"""JWT token management for authentication."""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Mapping, Optional

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt
from pydantic import BaseModel

from tubely.core.config import settings
from tubely.core.exceptions import Unauthenticated

ALGORITHM = "HS256"
TOKEN_ISSUER = "tubely-access"


class TokenPayload(BaseModel):
    """JWT token payload structure."""

    sub: str  # User ID
    exp: datetime
    iat: datetime
    iss: str
    jti: str


def create_access_token(
    user_id: str,
    secret_key: str,
    expires_delta: timedelta = timedelta(minutes=60),
) -> str:
    """Create a signed access token for ``user_id``.

    Args:
        user_id: Opaque user identifier, stored as the ``sub`` claim
        secret_key: HMAC signing secret
        expires_delta: Token lifetime

    Returns:
        str: The encoded token
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "exp": now + expires_delta,
        "iat": now,
        "iss": TOKEN_ISSUER,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, secret_key, algorithm=ALGORITHM)


def decode_token(token: str, secret_key: str) -> Optional[TokenPayload]:
    """Decode and verify a JWT token.

    Signature, expiry and issuer are checked by the JOSE library.

    Returns:
        TokenPayload | None: Decoded payload if valid, None otherwise
    """
    try:
        payload = jwt.decode(
            token,
            secret_key,
            algorithms=[ALGORITHM],
            issuer=TOKEN_ISSUER,
        )
        return TokenPayload(
            sub=payload["sub"],
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            iss=payload["iss"],
            jti=payload["jti"],
        )
    except (JWTError, KeyError):
        return None


def get_bearer_token(headers: Mapping[str, str]) -> str:
    """Extract the bearer credential from an ``Authorization`` header.

    Raises:
        Unauthenticated: If the header is missing or not a bearer credential
    """
    authorization = headers.get("authorization") or headers.get("Authorization")
    if not authorization:
        raise Unauthenticated("Authorization header is missing")

    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise Unauthenticated("Authorization header must be a bearer token")
    return token


def validate_jwt(token: str, secret_key: str) -> str:
    """Validate ``token`` and return the caller's user identifier.

    Raises:
        Unauthenticated: If the token is invalid, expired or has no subject
    """
    payload = decode_token(token, secret_key)
    if payload is None or not payload.sub:
        raise Unauthenticated("Invalid or expired token")
    return payload.sub


def get_secret_key() -> str:
    """Dependency returning the signing secret, overridable in tests."""
    return settings.SECRET_KEY


async def get_current_user_id(
    request: Request,
    secret_key: str = Depends(get_secret_key),
) -> str:
    """FastAPI dependency resolving the authenticated caller.

    Raises:
        HTTPException: 401 if the request carries no valid bearer token
    """
    try:
        token = get_bearer_token(request.headers)
        return validate_jwt(token, secret_key)
    except Unauthenticated as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )
