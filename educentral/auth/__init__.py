"""
Authentication

JWT access tokens, PBKDF2 password hashing and the FastAPI dependencies that
resolve the calling user.
"""

from educentral.auth.jwt import (
    ExpiredTokenError,
    InvalidTokenError,
    TokenType,
    create_access_token,
    validate_token,
)
from educentral.auth.password import check_password, encode_password, hash_password, verify_password
from educentral.auth.dependencies import get_current_user_id

__all__ = [
    'create_access_token',
    'validate_token',
    'TokenType',
    'InvalidTokenError',
    'ExpiredTokenError',
    'hash_password',
    'verify_password',
    'encode_password',
    'check_password',
    'get_current_user_id',
]
