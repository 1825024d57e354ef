import os
from dotenv import load_dotenv

load_dotenv()

def _as_bool(v: str | None, default: bool = False) -> bool:
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "y", "on"}

def _as_list(v: str | None, default: list[str]) -> list[str]:
    if v is None:
        return default
    return [item.strip() for item in v.split(",") if item.strip()]

class Settings:
    # App
    APP_NAME: str = os.getenv("APP_NAME", "libris")
    ENV: str = os.getenv("ENV", "dev")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE: str | None = os.getenv("LOG_FILE")
    PORT: int = int(os.getenv("PORT", "3000"))

    # DB
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./db/library.db")
    DB_ECHO: bool = _as_bool(os.getenv("DB_ECHO"), False)

    # HTTP
    CORS_ORIGINS: list[str] = _as_list(os.getenv("CORS_ORIGINS"), ["*"])
    STATIC_DIR: str = os.getenv("STATIC_DIR", "front")

settings = Settings()
