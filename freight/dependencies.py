from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from freight.database import get_db
from freight.services.auth_service import AuthService
from freight.services.notification_service import NotificationService
from freight.models import User, UserRole

security = HTTPBearer()

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Get current authenticated user from JWT token"""
    user = await AuthService.user_from_token(db, credentials.credentials)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user

def require_role(role: UserRole, label: str):
    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role != role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Not authorized. {label} access required."
            )
        return current_user
    return checker

get_current_provider = require_role(UserRole.LOAD_PROVIDER, "Load provider")
get_current_owner = require_role(UserRole.VEHICLE_OWNER, "Vehicle owner")
get_current_admin = require_role(UserRole.ADMIN, "Admin")

def get_notifier(request: Request) -> NotificationService:
    """The process notifier built at app construction"""
    return request.app.state.notifier
