"""
User routes: registration and account management.
"""

import asyncio
import uuid
from typing import List

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status

from api.auth import (
    TokenClaims,
    TokenManager,
    authorize,
    ensure_role,
    get_token_manager,
    hash_password,
    require_administrator,
)
from api.config import APIConfig
from api.dependencies import get_api_config, get_user_repository
from api.models import (
    CreatedResponse,
    MessageResponse,
    UserCreate,
    UserResponse,
    UserRole,
    UserUpdate,
    parse_role,
)
from storage.users import UserRepository

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


@router.get("", response_model=List[UserResponse])
async def list_users(
    claims: TokenClaims = Depends(require_administrator),
    users: UserRepository = Depends(get_user_repository),
):
    """List all users. Password digests are never returned."""
    records = await users.list_users()
    return [UserResponse.model_validate(record) for record in records]


@router.post("", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user: UserCreate,
    request: Request,
    tokens: TokenManager = Depends(get_token_manager),
    users: UserRepository = Depends(get_user_repository),
    api_config: APIConfig = Depends(get_api_config),
):
    """
    Register a user.

    Anyone may register a **reader**. Creating an **administrator** requires
    an administrator token; a reader registration ignores any token sent.
    """
    role = parse_role(user.role)
    if role is None:
        raise _bad_request("wrong user role")
    if not user.username.strip():
        raise _bad_request("username is required")
    if not user.password:
        raise _bad_request("password is required")

    if role == UserRole.ADMINISTRATOR:
        claims = await authorize(request, tokens)
        ensure_role(claims, UserRole.ADMINISTRATOR)

    password_hash = await asyncio.to_thread(hash_password, user.password, api_config.bcrypt_rounds)
    user_id = await users.create_user(user.username.strip(), password_hash, role.value)

    return CreatedResponse(message=f"user created with id: {user_id}", id=user_id)


@router.get("/{user_id:uuid}", response_model=UserResponse)
async def get_user(
    user_id: uuid.UUID,
    claims: TokenClaims = Depends(require_administrator),
    users: UserRepository = Depends(get_user_repository),
):
    """Get one user."""
    record = await users.get_user_by_id(str(user_id))
    return UserResponse.model_validate(record)


@router.put("/{user_id:uuid}", response_model=MessageResponse)
async def update_user(
    user_id: uuid.UUID,
    update: UserUpdate,
    claims: TokenClaims = Depends(require_administrator),
    users: UserRepository = Depends(get_user_repository),
    api_config: APIConfig = Depends(get_api_config),
):
    """
    Update a user. Only non-empty fields overwrite stored values; a new
    password is hashed before it is stored.
    """
    changes = update.changes()

    if "role" in changes:
        role = parse_role(changes["role"])
        if role is None:
            raise _bad_request("wrong user role")
        changes["role"] = role.value
    if "username" in changes:
        changes["username"] = changes["username"].strip()
        if not changes["username"]:
            del changes["username"]
    if "password" in changes:
        changes["password"] = await asyncio.to_thread(
            hash_password, changes["password"], api_config.bcrypt_rounds
        )

    await users.update_user(str(user_id), changes)
    return MessageResponse(message="user updated")


@router.delete("/{user_id:uuid}", response_model=MessageResponse)
async def delete_user(
    user_id: uuid.UUID,
    claims: TokenClaims = Depends(require_administrator),
    users: UserRepository = Depends(get_user_repository),
):
    """Delete a user."""
    await users.delete_user(str(user_id))
    return MessageResponse(message="user deleted")
