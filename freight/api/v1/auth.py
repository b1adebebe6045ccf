from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from freight.database import get_db, commit_or_conflict
from freight.dependencies import get_current_user
from freight.schemas.user import UserCreate, UserLogin, UserResponse, TokenResponse
from freight.services.auth_service import AuthService
from freight.models import User, UserRole
from freight.exceptions import ConflictError, ForbiddenError

router = APIRouter(prefix="/auth", tags=["Authentication"])

def _tokens_for(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=AuthService.create_access_token({"sub": str(user.id)}),
        refresh_token=AuthService.create_refresh_token({"sub": str(user.id)}),
        user=UserResponse.model_validate(user)
    )

@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db)
):
    """Register a new load provider or vehicle owner"""
    if user_data.role == UserRole.ADMIN:
        raise ForbiddenError("Admin accounts cannot be self-registered")

    result = await db.execute(
        select(User).where(User.email == user_data.email)
    )
    if result.scalar_one_or_none():
        raise ConflictError("Email already registered")

    user = User(
        email=user_data.email,
        phone=user_data.phone,
        password_hash=AuthService.hash_password(user_data.password),
        role=user_data.role,
        name=user_data.name,
        company_name=user_data.company_name
    )

    db.add(user)
    await commit_or_conflict(db, "Email already registered")
    await db.refresh(user)

    return _tokens_for(user)

@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """Login with email and password"""
    user = await AuthService.authenticate_user(db, credentials.email, credentials.password)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return _tokens_for(user)

@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    refresh_token: str = Body(..., embed=True),
    db: AsyncSession = Depends(get_db)
):
    """Refresh access token using refresh token"""
    user = await AuthService.user_from_token(db, refresh_token, token_type="refresh")

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token"
        )

    return _tokens_for(user)

@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return UserResponse.model_validate(current_user)
