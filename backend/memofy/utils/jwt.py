"""JWT Session Tokens (HS256)"""
from datetime import timedelta
from typing import Any, Dict, Optional

import jwt

from ..config.settings import settings
from ..domain.errors import AuthenticationError
from .logger import get_logger
from .time import utc_now

logger = get_logger(__name__)


def create_access_token(
    user_id: str,
    expires_in: timedelta = timedelta(hours=8),
    extra_claims: Optional[Dict[str, Any]] = None
) -> str:
    """Issue a signed session token for user_id"""
    now = utc_now()
    claims: Dict[str, Any] = {
        "sub": user_id,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_in).timestamp()),
    }
    if extra_claims:
        claims.update(extra_claims)
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Dict[str, Any]:
    """
    Validate a session token

    Args:
        token: Token, with or without the 'Bearer ' prefix

    Returns:
        Decoded claims

    Raises:
        AuthenticationError: If token is missing, expired or invalid
    """
    if not token:
        raise AuthenticationError("Token is missing")

    if token.startswith("Bearer "):
        token = token[7:]

    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]}
        )
    except jwt.ExpiredSignatureError:
        logger.warning("Token expired")
        raise AuthenticationError("Token has expired")
    except jwt.PyJWTError as e:
        logger.warning(f"JWT validation error: {e}")
        raise AuthenticationError(f"Invalid token: {str(e)}")

    return claims


def get_user_id(authorization: Optional[str]) -> str:
    """User id (sub claim) from an Authorization header value"""
    if not authorization:
        raise AuthenticationError("Authorization header is missing")
    return str(decode_token(authorization)["sub"])
