import os
from typing import List


def _split_origins(raw: str) -> List[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


class Settings:
    # Database Configuration for Docker Oracle
    DB_HOST: str = os.getenv("DB_HOST", "localhost")
    DB_PORT: int = int(os.getenv("DB_PORT", "1521"))
    DB_SERVICE_NAME: str = os.getenv("DB_SERVICE_NAME", "XE")
    DB_USERNAME: str = os.getenv("DB_USERNAME", "system")
    DB_PASSWORD: str = os.getenv("DB_PASSWORD", "admin123")
    DB_POOL_MIN: int = int(os.getenv("DB_POOL_MIN", "2"))
    DB_POOL_MAX: int = int(os.getenv("DB_POOL_MAX", "10"))

    # Menu store: "oracle" or "memory"
    MENU_STORE: str = os.getenv("MENU_STORE", "oracle").lower()
    SEED_DEFAULT_DATA: bool = os.getenv("SEED_DEFAULT_DATA", "False").lower() == "true"

    # Application Configuration
    DEBUG: bool = os.getenv("DEBUG", "True").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    CORS_ORIGINS: list = _split_origins(
        os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")
    )

    @property
    def database_dsn(self) -> str:
        return f"{self.DB_HOST}:{self.DB_PORT}/{self.DB_SERVICE_NAME}"


settings = Settings()
