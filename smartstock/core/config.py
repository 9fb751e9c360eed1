import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int, min_value: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        value = default
    else:
        try:
            value = int(raw)
        except ValueError:
            value = default
    if min_value is not None:
        return max(min_value, value)
    return value


@dataclass(frozen=True)
class Settings:
    app_name: str
    secret_key: str
    algorithm: str
    access_token_expire_minutes: int
    login_rate_limit_window_seconds: int
    login_rate_limit_max_attempts: int
    issuer: str
    cors_origins: tuple[str, ...]
    database_url: str
    database_sslmode: str
    auto_create_tables: bool
    quantity_decimal_places: int
    default_min_stock: int
    log_level: str
    bootstrap_admin_enabled: bool
    bootstrap_admin_username: str
    bootstrap_admin_password: str
    bootstrap_admin_email: str
    seed_demo_data: bool


settings = Settings(
    app_name=os.getenv("APP_NAME", "SmartStock Inventory API"),
    secret_key=os.getenv("SECRET_KEY", "CHANGE_ME_IN_PRODUCTION_32_CHAR_MIN_SECRET_KEY"),
    algorithm=os.getenv("ALGORITHM", "HS256"),
    access_token_expire_minutes=_env_int("ACCESS_TOKEN_EXPIRE_MINUTES", 60, min_value=1),
    login_rate_limit_window_seconds=_env_int("LOGIN_RATE_LIMIT_WINDOW_SECONDS", 60, min_value=1),
    login_rate_limit_max_attempts=_env_int("LOGIN_RATE_LIMIT_MAX_ATTEMPTS", 10, min_value=1),
    issuer=os.getenv("TOKEN_ISSUER", "smartstock-api"),
    cors_origins=tuple(
        origin.strip().rstrip("/")
        for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
        if origin.strip()
    ),
    database_url=os.getenv("DATABASE_URL", "sqlite:///./smart_inventory.db"),
    database_sslmode=os.getenv("DATABASE_SSLMODE", "require"),
    auto_create_tables=_env_bool("AUTO_CREATE_TABLES", True),
    quantity_decimal_places=_env_int("QUANTITY_DECIMAL_PLACES", 4, min_value=0),
    default_min_stock=_env_int("DEFAULT_MIN_STOCK", 5, min_value=0),
    log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    bootstrap_admin_enabled=_env_bool("BOOTSTRAP_ADMIN_ENABLED", True),
    bootstrap_admin_username=os.getenv("BOOTSTRAP_ADMIN_USERNAME", "admin"),
    bootstrap_admin_password=os.getenv("BOOTSTRAP_ADMIN_PASSWORD", "password123"),
    bootstrap_admin_email=os.getenv("BOOTSTRAP_ADMIN_EMAIL", "admin@inventory.local"),
    seed_demo_data=_env_bool("SEED_DEMO_DATA", False),
)
