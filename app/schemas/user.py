"""
User schemas.
"""
from pydantic import Field, EmailStr
from typing import Optional
from datetime import datetime

from .common import CamelModel


class User(CamelModel):
    """User response schema."""
    id: int = Field(..., description="User ID")
    username: str = Field(..., description="Unique username")
    email: EmailStr = Field(..., description="User email address")
    created_at: datetime = Field(..., description="Account creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")


class UserUpdate(CamelModel):
    """Profile update schema."""
    username: Optional[str] = Field(None, min_length=3, max_length=50, description="New username")
    email: Optional[EmailStr] = Field(None, description="New email address")


class PasswordChangeRequest(CamelModel):
    """Password change schema."""
    current_password: str = Field(..., min_length=1, description="Current password")
    new_password: str = Field(..., min_length=6, description="New password")
