"""Request authentication.

Users sign in with an external identity provider, which issues a signed
JWT. Every data endpoint depends on :func:`get_current_user_id`, which
verifies that token and returns its subject as the user id.
"""

import logging

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from config import settings

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=401,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_identity_token(token: str) -> dict:
    """Verify an identity-provider token and return its claims.

    Raises:
        JWTError: If the signature, expiry, issuer or audience is invalid.
        ValueError: If no verification key is configured.
    """
    if not settings.AUTH_JWT_KEY:
        raise ValueError("AUTH_JWT_KEY is not configured")

    options = {"verify_aud": bool(settings.AUTH_JWT_AUDIENCE)}
    return jwt.decode(
        token,
        settings.AUTH_JWT_KEY,
        algorithms=settings.auth_jwt_algorithms,
        audience=settings.AUTH_JWT_AUDIENCE or None,
        issuer=settings.AUTH_JWT_ISSUER or None,
        options=options,
    )


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> str:
    """Dependency returning the verified user id (overridable in tests)."""
    if credentials is None or not credentials.credentials:
        raise _unauthorized()

    try:
        claims = decode_identity_token(credentials.credentials)
    except ValueError as e:
        logger.error("Cannot verify identity token: %s", e)
        raise _unauthorized()
    except JWTError as e:
        logger.info("Rejected identity token: %s", e)
        raise _unauthorized()

    user_id = claims.get("sub")
    if not user_id:
        raise _unauthorized()
    return str(user_id)
