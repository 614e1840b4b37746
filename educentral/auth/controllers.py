"""
Authentication Controllers

Account registration, password login and the current-user lookup. Both
registration and login answer with a bearer access token.
"""

from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field

from educentral.api import APIResponse
from educentral.auth.dependencies import get_current_user_id
from educentral.auth.jwt import create_access_token
from educentral.auth.password import check_password, encode_password
from educentral.common.error_handling import AuthenticationError, ConflictError, NotFoundError
from educentral.common.logger import app_logger
from educentral.database.models import User
from educentral.storage.repository import DatabaseStorage, get_storage
from educentral.storage.schemas import SchemaBase, UserCreate

logger = app_logger.getChild("auth.controllers")

router = APIRouter(prefix="/auth")


class RegisterRequest(SchemaBase):
    username: str = Field(..., min_length=3, max_length=100)
    password: str = Field(..., min_length=6)
    email: Optional[str] = None
    # Administrators are provisioned out of band
    role: Literal["student", "educator"] = "student"


class LoginRequest(SchemaBase):
    username: str
    password: str


def token_response(user: User) -> Dict[str, Any]:
    token = create_access_token(user.id, {"username": user.username, "role": user.role, "email": user.email})
    return {
        "user": user.to_dict(),
        "access_token": token,
        "token_type": "bearer",
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest, storage: DatabaseStorage = Depends(get_storage)) -> Dict[str, Any]:
    """
    Create an account and sign it in.

    Raises:
        ConflictError: If the username or email is already taken
    """
    if await storage.get_user_by_username(request.username) is not None:
        raise ConflictError("Username already exists", details={"username": request.username})
    if request.email and await storage.get_user_by_email(request.email) is not None:
        raise ConflictError("Email already registered", details={"email": request.email})

    user = await storage.create_user(UserCreate(
        username=request.username,
        email=request.email,
        password=encode_password(request.password),
        role=request.role,
    ))
    logger.info(f"Registered user {user.id} ({user.username})")
    return APIResponse.success(token_response(user), message="User registered")


@router.post("/login")
async def login(request: LoginRequest, storage: DatabaseStorage = Depends(get_storage)) -> Dict[str, Any]:
    user = await storage.get_user_by_username(request.username)
    if user is None or not check_password(request.password, user.password):
        logger.warning(f"Failed login for {request.username}")
        raise AuthenticationError("Invalid username or password")
    return APIResponse.success(token_response(user), message="Login successful")


@router.get("/me")
async def me(
    user_id: int = Depends(get_current_user_id),
    storage: DatabaseStorage = Depends(get_storage)
) -> Dict[str, Any]:
    user = await storage.get_user(user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user.to_dict()
