from pydantic_settings import BaseSettings

DEFAULT_SECRET_KEY = "skillhub_secret_key"


class Settings(BaseSettings):
    APP_ENV: str = "development"
    DATABASE_URL: str = "sqlite:///./skillhub.db"
    REDIS_URL: str = "redis://localhost:6379/0"
    SECRET_KEY: str = DEFAULT_SECRET_KEY
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 30
    LOG_LEVEL: str = "INFO"
    CACHE_TTL: int = 300  # 5 minutes
    RATE_LIMIT_PER_MINUTE: int = 60
    LOGIN_RATE_LIMIT_PER_MINUTE: int = 10
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    WEBHOOK_URL: str = ""
    WEBHOOK_TIMEOUT_SECONDS: float = 10.0
    PLATFORM_NAME: str = "SkillHub"
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()


def validate_runtime_config() -> bool:
    """Refuse to boot a production deployment that still signs tokens with the fallback key.

    Returns True when the fallback key is in use outside production so the
    caller can log a warning.
    """
    if settings.SECRET_KEY != DEFAULT_SECRET_KEY:
        return False
    if settings.APP_ENV.lower() == "production":
        raise RuntimeError("SECRET_KEY must be set in production.")
    return True
