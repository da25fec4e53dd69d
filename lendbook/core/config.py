from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    # API Settings
    PROJECT_NAME: str = "Lendbook API"
    API_PREFIX: str = "/api"
    PROJECT_VERSION: str = "0.1.0"
    DESCRIPTION: str = "Informal loan and repayment tracking API"

    # MongoDB
    MONGODB_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "lendbook"

    # CORS
    CORS_ORIGINS: List[str] = ["*"]

    # JWT
    SECRET_KEY: str = "change-this-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 30

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "standard"

    # Ledger
    LEDGER_WRITE_ATTEMPTS: int = 5

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env"
    )

settings = Settings()
