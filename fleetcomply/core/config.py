from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite+aiosqlite:///./fleet.db"
    APP_ENV: str = "development"
    SECRET_KEY: str = "changeme"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 12 * 60
    LOG_LEVEL: str = "INFO"

    # Object storage (bucket folders live under this root)
    STORAGE_ROOT: str = "./storage"
    PUBLIC_BASE_URL: str = "/storage"

    # Compliance windows
    EXPIRING_SOON_DAYS: int = 30
    SPILL_KIT_CHECK_INTERVAL_DAYS: int = 30

    COMPANY_NAME: str = "Fleet Operations"

    class Config:
        env_file = ".env"

settings = Settings()
