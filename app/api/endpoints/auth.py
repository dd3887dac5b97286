"""
Authentication endpoints.
"""
from typing import Optional
from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select, or_, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    token_expiry,
    verify_token,
)
from app.core.exceptions import (
    AuthenticationException,
    AuthorizationException,
    ConflictException,
)
from app.models.user import User
from app.schemas.auth import LoginRequest, RegisterRequest, AuthResponse
from app.schemas.user import User as UserSchema, UserUpdate, PasswordChangeRequest
from app.schemas.common import ApiResponse
from app.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the bearer token to a user."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationException("Access token required")

    payload = verify_token(credentials.credentials)
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise AuthorizationException("Invalid token payload")

    user = await db.get(User, user_id)
    if user is None:
        raise AuthorizationException("User not found")

    return user


def _auth_response(user: User) -> AuthResponse:
    return AuthResponse(
        user=UserSchema.model_validate(user),
        token=create_access_token(data={"sub": str(user.id)}),
        expires_at=token_expiry().isoformat(),
    )


async def _ensure_available(
    db: AsyncSession,
    username: Optional[str],
    email: Optional[str],
    exclude_user_id: Optional[int] = None,
) -> None:
    conditions = []
    if username:
        conditions.append(User.username == username)
    if email:
        conditions.append(func.lower(User.email) == email.lower())
    if not conditions:
        return

    query = select(User.id).where(or_(*conditions))
    if exclude_user_id is not None:
        query = query.where(User.id != exclude_user_id)

    if await db.scalar(query.limit(1)) is not None:
        raise ConflictException("Username or email already exists")


@router.post("/register", response_model=ApiResponse[AuthResponse], status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    """Register a new user and return a bearer token."""
    username = request.username.strip()
    email = request.email.lower()

    await _ensure_available(db, username, email)

    user = User(
        username=username,
        email=email,
        password_hash=get_password_hash(request.password),
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictException("Username or email already exists")
    await db.refresh(user)

    logger.info("User registered", user_id=user.id, username=user.username)

    return ApiResponse(
        success=True,
        data=_auth_response(user),
        message="User registered successfully",
    )


@router.post("/login", response_model=ApiResponse[AuthResponse])
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Authenticate by username or email and return a bearer token."""
    identifier = request.username.strip()
    result = await db.execute(
        select(User).where(
            or_(User.username == identifier, func.lower(User.email) == identifier.lower())
        )
    )
    user = result.scalars().first()

    if user is None or not verify_password(request.password, user.password_hash):
        logger.warning("Failed login attempt", identifier=identifier)
        raise AuthenticationException("Invalid credentials")

    logger.info("User logged in", user_id=user.id)

    return ApiResponse(
        success=True,
        data=_auth_response(user),
        message="Login successful",
    )


@router.get("/me", response_model=ApiResponse[UserSchema])
async def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """Get current user information."""
    return ApiResponse(
        success=True,
        data=UserSchema.model_validate(current_user)
    )


@router.put("/me", response_model=ApiResponse[UserSchema])
async def update_current_user(
    request: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update username and/or email."""
    username = request.username.strip() if request.username else None
    email = request.email.lower() if request.email else None

    await _ensure_available(db, username, email, exclude_user_id=current_user.id)

    if username:
        current_user.username = username
    if email:
        current_user.email = email

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictException("Username or email already exists")
    await db.refresh(current_user)

    logger.info("User profile updated", user_id=current_user.id)

    return ApiResponse(
        success=True,
        data=UserSchema.model_validate(current_user),
        message="Profile updated successfully",
    )


@router.put("/password", response_model=ApiResponse[dict])
async def change_password(
    request: PasswordChangeRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Change the password after checking the current one."""
    if not verify_password(request.current_password, current_user.password_hash):
        raise AuthenticationException("Current password is incorrect")

    current_user.password_hash = get_password_hash(request.new_password)
    await db.commit()

    logger.info("User password changed", user_id=current_user.id)

    return ApiResponse(
        success=True,
        data={},
        message="Password updated successfully",
    )
