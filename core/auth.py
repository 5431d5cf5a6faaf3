"""Bearer token authentication for FastAPI routes"""
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.config import Settings, get_settings
from core.exceptions import AuthenticationError
from core.logging import get_logger

logger = get_logger(__name__)
security = HTTPBearer(auto_error=False)


def decode_user_token(token: str, settings: Settings) -> str:
    """Decode a JWT and return the user id held in its ``sub`` claim

    Args:
        token: Encoded JWT
        settings: Application settings holding the signing secret

    Returns:
        str: User id

    Raises:
        AuthenticationError: If the token is expired, malformed or has no subject
    """
    if not settings.jwt_secret:
        logger.warning("Bearer token presented but JWT_SECRET is not configured")
        raise AuthenticationError()

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret.get_secret_value(),
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        logger.warning("Token expired")
        raise AuthenticationError()
    except jwt.InvalidTokenError as e:
        logger.warning(f"Invalid token: {e}")
        raise AuthenticationError()

    user_id = payload.get("sub")
    if not isinstance(user_id, str) or not user_id:
        logger.warning("Token missing user ID")
        raise AuthenticationError()

    return user_id


def get_bearer_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
) -> Optional[str]:
    """FastAPI dependency returning the authenticated user id, or None without a bearer header"""
    if credentials is None:
        return None
    return decode_user_token(credentials.credentials, settings)
