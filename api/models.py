"""
API models and schemas for the FastAPI application.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class UserRole(str, Enum):
    """User role enumeration."""
    READER = "reader"
    ADMINISTRATOR = "administrator"


class BookResponse(BaseModel):
    """Book response model for API."""
    id: str = Field(..., description="Unique book identifier (UUID)")
    title: str = Field("", description="Book title")
    author: str = Field("", description="Book author")
    subject: str = Field("", description="Book subject")

    model_config = ConfigDict(from_attributes=True)


class BookUpdate(BaseModel):
    """Merge-patch body for a book; empty or missing fields are left untouched."""
    title: Optional[str] = Field(None, description="New title")
    author: Optional[str] = Field(None, description="New author")
    subject: Optional[str] = Field(None, description="New subject")

    def changes(self) -> Dict[str, str]:
        """Fields that should overwrite the stored values."""
        return {
            field: value
            for field, value in self.model_dump().items()
            if value
        }


class UserResponse(BaseModel):
    """User response model; the password hash is never part of it."""
    id: str = Field(..., description="Unique user identifier (UUID)")
    username: str = Field(..., description="Login name")
    role: UserRole = Field(..., description="Access role")

    model_config = ConfigDict(from_attributes=True)


class UserCreate(BaseModel):
    """Registration body."""
    username: str = Field("", description="Unique login name")
    password: str = Field("", description="Plain-text password, hashed before storage")
    role: str = Field("", description="reader or administrator")


class UserUpdate(BaseModel):
    """Merge-patch body for a user; empty or missing fields are left untouched."""
    username: Optional[str] = Field(None, description="New login name")
    password: Optional[str] = Field(None, description="New plain-text password")
    role: Optional[str] = Field(None, description="New role")

    def changes(self) -> Dict[str, str]:
        """Fields that should overwrite the stored values."""
        return {
            field: value
            for field, value in self.model_dump().items()
            if value
        }


class SignInRequest(BaseModel):
    """Credentials submitted to /signin."""
    username: str = Field("", description="Login name")
    password: str = Field("", description="Plain-text password")


class SignInResponse(BaseModel):
    """Issued access token."""
    username: str = Field(..., description="Authenticated user")
    role: UserRole = Field(..., description="Role carried by the token")
    token: str = Field(..., description="Signed bearer token")


class MessageResponse(BaseModel):
    """Acknowledgement and error body."""
    message: str = Field(..., description="Human-readable message")


class CreatedResponse(MessageResponse):
    """Acknowledgement of a created resource."""
    id: str = Field(..., description="Identifier of the new resource")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")


def parse_role(value: str) -> Optional[UserRole]:
    """Return the matching role, or None for anything unrecognised."""
    try:
        return UserRole(value)
    except ValueError:
        return None
