"""
Authentication schemas.
"""
from pydantic import Field, EmailStr

from .common import CamelModel
from .user import User


class LoginRequest(CamelModel):
    """Login request schema; ``username`` also accepts the account email."""
    username: str = Field(..., min_length=1, description="Username or email address")
    password: str = Field(..., min_length=1, description="User password")


class RegisterRequest(CamelModel):
    """Registration request schema."""
    username: str = Field(..., min_length=3, max_length=50, description="Unique username")
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=6, description="User password")


class AuthResponse(CamelModel):
    """Authentication response schema."""
    user: User = Field(..., description="User information")
    token: str = Field(..., description="JWT access token")
    expires_at: str = Field(..., description="Token expiration timestamp")
