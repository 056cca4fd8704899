from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Database
    DATABASE_URL: str = "sqlite:///./kasir.db"
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_RECYCLE: int = 300
    DB_CONNECT_RETRIES: int = 3

    # Application
    APP_NAME: str = "Kasir POS"
    APP_VERSION: str = "1.0.0"
    STORE_NAME: str = "Toko Kasir"
    LOG_LEVEL: str = "INFO"

    # CORS
    ALLOWED_ORIGINS: List[str] = ["*"]  # Restrict in production

    # Password security
    BCRYPT_ROUNDS: int = 12


settings = Settings()
