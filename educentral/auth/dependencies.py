"""
Authentication dependencies for the EduCentral API.
"""

from typing import Optional

from fastapi import Header

from educentral.auth.jwt import InvalidTokenError, validate_token
from educentral.common.error_handling import AuthenticationError
from educentral.common.logger import app_logger

logger = app_logger.getChild("auth")


async def get_current_user_id(authorization: Optional[str] = Header(None)) -> int:
    """
    Resolve the calling user from a ``Bearer`` access token.

    Args:
        authorization: Authorization header value

    Returns:
        The user id carried in the token subject

    Raises:
        AuthenticationError: If the header is missing or the token is invalid
    """
    if not authorization:
        raise AuthenticationError("Missing authorization header")

    try:
        scheme, token = authorization.split()
    except ValueError:
        raise AuthenticationError("Invalid authorization header format")

    if scheme.lower() != "bearer":
        raise AuthenticationError("Invalid authentication scheme")

    payload = validate_token(token)
    try:
        return int(payload["sub"])
    except ValueError:
        logger.warning(f"Token subject is not a user id: {payload['sub']}")
        raise InvalidTokenError("Token subject is not a user id")
