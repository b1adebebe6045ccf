from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Freight Exchange"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    API_V1_PREFIX: str = "/api/v1"
    CORS_ORIGINS: List[str] = ["http://localhost:5173"]
    
    # Database
    DATABASE_URL: str
    
    # Redis (optional; notifications stay in-process without it)
    REDIS_URL: Optional[str] = None
    NOTIFICATION_CHANNEL: str = "freight:events"
    NOTIFICATION_RETRY_SECONDS: float = 1.0
    NOTIFICATION_RETRY_MAX_SECONDS: float = 30.0
    
    # Security
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    
    # Business Logic
    COMMISSION_RATE_PERCENTAGE: float = 5.0
    MAX_MATERIALS_PER_LOAD: int = 5
    
    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
