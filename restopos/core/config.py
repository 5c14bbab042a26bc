import os

from dotenv import load_dotenv

# A local .env fills in anything the real environment does not already set.
load_dotenv(override=False)


class Settings:
    """Lightweight settings loader using environment variables.

    This avoids depending on pydantic's BaseSettings and works reliably
    with different pydantic versions installed in the environment.
    """

    STORE_NAME: str = os.getenv("STORE_NAME", "Bakmi Jowo Palur")
    # IANA zone used for "today", history dates and report ranges
    LOCAL_TIMEZONE: str = os.getenv("LOCAL_TIMEZONE", "Asia/Jakarta")

    # Read DATABASE_URL from env, but be resilient to an accidental repeated
    # prefix like "DATABASE_URL=DATABASE_URL=..." in a malformed .env file.
    raw_db = os.getenv("DATABASE_URL", "sqlite:///./restopos.db")
    if isinstance(raw_db, str) and raw_db.startswith("DATABASE_URL="):
        raw_db = raw_db.split("=", 1)[1]
    DATABASE_URL: str = raw_db

    APP_ENV: str = os.getenv("APP_ENV", os.getenv("ENV", "development")).lower()
    # Environment-aware defaults (can be overridden via env)
    _default_pool_size = 5 if APP_ENV == "development" else 10
    _default_max_overflow = 2 if APP_ENV == "development" else 20
    _default_pool_recycle = 900 if APP_ENV == "development" else 1800

    DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", str(_default_pool_size)))
    DB_MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", str(_default_max_overflow)))
    DB_POOL_RECYCLE: int = int(os.getenv("DB_POOL_RECYCLE", str(_default_pool_recycle)))  # seconds

    # Logging and monitoring controls
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    # Log request counters every N hits per route
    REQUEST_LOG_EVERY_N: int = int(os.getenv("REQUEST_LOG_EVERY_N", "100"))
    # Log pool events every N occurrences
    DB_LOG_EVERY_N: int = int(os.getenv("DB_LOG_EVERY_N", "50"))
    # Verbose per-request logging (development aid)
    REQUEST_LOG_VERBOSE: bool = str(os.getenv("REQUEST_LOG_VERBOSE", "0")).strip().lower() in {"1", "true", "yes", "on"}
    # Comma-separated route prefixes to include for verbose logging
    REQUEST_LOG_INCLUDE_PREFIXES: str = os.getenv(
        "REQUEST_LOG_INCLUDE_PREFIXES",
        "/pos,/menus,/categories,/users,/reports"
    )

    CORS_ORIGINS: str = os.getenv(
        "CORS_ORIGINS",
        "http://localhost:8080,http://127.0.0.1:8080,http://localhost:5173,http://127.0.0.1:5173"
    )

    HISTORY_PAGE_SIZE: int = int(os.getenv("HISTORY_PAGE_SIZE", "15"))

    # Offline client: where the pending queue lives and where it syncs to
    OFFLINE_QUEUE_PATH: str = os.getenv("OFFLINE_QUEUE_PATH", "./pos_offline_queue.json")
    OFFLINE_SYNC_DEBOUNCE_SECONDS: float = float(os.getenv("OFFLINE_SYNC_DEBOUNCE_SECONDS", "1.0"))
    SYNC_URL: str = os.getenv("SYNC_URL", "http://127.0.0.1:8000/pos/sync")
    SYNC_TIMEOUT_SECONDS: float = float(os.getenv("SYNC_TIMEOUT_SECONDS", "15"))


settings = Settings()
