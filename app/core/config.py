"""
DD Property Application Configuration
Loads settings from .env file using Pydantic v2 with BaseSettings
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List
from functools import lru_cache

from dotenv import load_dotenv

# Load environment variables from .env file (alembic and scripts read os.environ)
load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # ==================== Project Info ====================
    PROJECT_NAME: str = "DD Property API"
    PROJECT_DESCRIPTION: str = "Property listings, listing terms and media storage"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"

    # ==================== Database ====================
    DATABASE_URL: str = "sqlite:///ddproperty_local.db"
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10
    DATABASE_POOL_RECYCLE: int = 3600
    SQL_ECHO: bool = False

    # ==================== CORS ====================
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:3001",
    ]

    # ==================== Media Storage ====================
    # Files live under MEDIA_ROOT; URLs stored in the database start with MEDIA_URL_PREFIX
    MEDIA_ROOT: str = "public"
    MEDIA_URL_PREFIX: str = "/images/properties"
    MEDIA_TEMP_SEGMENT: str = "temp"
    DELETE_FILES: bool = False

    # ==================== Property Defaults ====================
    PROPERTY_CODE_PREFIX: str = "DP"
    PROPERTY_CODE_WIDTH: int = 5
    DEFAULT_PROPERTY_AREA: float = 10.0
    DEFAULT_COUNTRY: str = "Thailand"
    DEFAULT_CURRENCY: str = "THB"
    DEFAULT_OWNER_ID: int = 1

    # ==================== View Counter ====================
    VIEW_DEDUP_WINDOW_SECONDS: int = 3600
    VIEW_CACHE_MAX_ENTRIES: int = 1000

    # ==================== Features ====================
    DEBUG: bool = False
    TESTING: bool = False
    LOG_LEVEL: str = "INFO"

    # ==================== Configuration Loading ====================
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="allow",  # Allow extra environment variables
        validate_default=True,
    )

    # ==================== Properties ====================
    @property
    def media_temp_url(self) -> str:
        """URL fragment that marks an upload as not yet owned by a property"""
        return f"{self.MEDIA_URL_PREFIX.rstrip('/')}/{self.MEDIA_TEMP_SEGMENT}/"


# ==================== Settings Singleton ====================
@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Create default settings instance
settings = get_settings()


# ==================== Helper Functions ====================
def get_cors_origins() -> List[str]:
    """Get CORS allowed origins"""
    return settings.ALLOWED_ORIGINS
