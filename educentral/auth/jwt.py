"""
JWT Authentication Module

Creates and validates signed access tokens. The signing key, algorithm and
lifetime come from the application settings.
"""

import datetime
import enum
from typing import Any, Dict, Optional, Union

import jwt

from educentral.common.error_handling import AuthenticationError
from educentral.config import get_settings

TOKEN_ISSUER = "educentral-api"


class TokenType(enum.Enum):
    """Types of JWT tokens issued by the service."""

    ACCESS = "access"


class InvalidTokenError(AuthenticationError):
    """Raised when a token is malformed, tampered with or of the wrong type."""

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)


class ExpiredTokenError(AuthenticationError):
    """Raised when a token's ``exp`` has passed."""

    def __init__(self, message: str = "Token has expired"):
        super().__init__(message)


def create_access_token(
    subject: Union[str, int],
    additional_claims: Optional[Dict[str, Any]] = None,
    expires_in: Optional[int] = None
) -> str:
    """
    Create a new JWT access token.

    Args:
        subject: The subject of the token (the user id)
        additional_claims: Additional claims to include in the token
        expires_in: Token expiration time in minutes (overrides settings)

    Returns:
        The JWT access token as a string
    """
    settings = get_settings()

    now = datetime.datetime.now(datetime.timezone.utc)
    exp = now + datetime.timedelta(
        minutes=expires_in if expires_in is not None else settings.ACCESS_TOKEN_EXPIRE_MINUTES
    )

    payload = {
        "sub": str(subject),
        "exp": exp,
        "iat": now,
        "iss": TOKEN_ISSUER,
        "type": TokenType.ACCESS.value
    }

    if additional_claims:
        payload.update(additional_claims)

    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def validate_token(token: str, expected_type: TokenType = TokenType.ACCESS) -> Dict[str, Any]:
    """
    Validate a JWT token and return its payload.

    Args:
        token: The JWT token to validate
        expected_type: The token type the caller accepts

    Returns:
        The decoded and validated token payload

    Raises:
        InvalidTokenError: If the token is invalid or of the wrong type
        ExpiredTokenError: If the token has expired
    """
    settings = get_settings()

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            options={
                "verify_signature": True,
                "verify_exp": True,
                "verify_iat": True,
                "require": ["exp", "iat", "sub", "type"]
            }
        )
    except jwt.ExpiredSignatureError:
        raise ExpiredTokenError("Token has expired")
    except jwt.PyJWTError as e:
        raise InvalidTokenError(f"Invalid token: {str(e)}")

    token_type = payload.get("type")
    if token_type != expected_type.value:
        raise InvalidTokenError(
            f"Invalid token type: expected {expected_type.value}, got {token_type}"
        )

    return payload
