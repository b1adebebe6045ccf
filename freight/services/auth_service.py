from datetime import timedelta
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from freight.config import settings
from freight.models import User
from freight.utils.timeutils import utcnow
from uuid import UUID

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

class AuthService:
    @staticmethod
    def hash_password(password: str) -> str:
        # Bcrypt has a 72-byte limit, truncate if needed
        password_bytes = password.encode('utf-8')
        if len(password_bytes) > 72:
            password = password_bytes[:72].decode('utf-8', errors='ignore')
        return pwd_context.hash(password)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify a password against a hash"""
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def _encode(data: dict, token_type: str, expires_delta: timedelta) -> str:
        to_encode = data.copy()
        to_encode.update({"exp": utcnow() + expires_delta, "type": token_type})
        return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    @staticmethod
    def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
        """Create JWT access token"""
        return AuthService._encode(
            data,
            "access",
            expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        )

    @staticmethod
    def create_refresh_token(data: dict) -> str:
        return AuthService._encode(
            data, "refresh", timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
        )

    @staticmethod
    def decode_token(token: str) -> Optional[dict]:
        """Decode and verify JWT token"""
        try:
            return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        except JWTError:
            return None

    @staticmethod
    async def authenticate_user(db: AsyncSession, email: str, password: str) -> Optional[User]:
        """Authenticate user with email and password"""
        result = await db.execute(
            select(User).where(User.email == email, User.is_active == True)
        )
        user = result.scalar_one_or_none()

        if not user or not AuthService.verify_password(password, user.password_hash):
            return None

        return user

    @staticmethod
    async def user_from_token(db: AsyncSession, token: str, token_type: str = "access") -> Optional[User]:
        """Resolve the active user a token of the given type was issued to"""
        payload = AuthService.decode_token(token)

        if not payload or payload.get("type") != token_type:
            return None

        user_id = payload.get("sub")
        if not user_id:
            return None

        try:
            user_uuid = UUID(user_id)
        except ValueError:
            return None

        result = await db.execute(
            select(User).where(User.id == user_uuid, User.is_active == True)
        )
        return result.scalar_one_or_none()
