import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict


class ConfigError(Exception):
    pass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Parsed once at startup and handed to every component that needs it."""

    model_config = ConfigDict(frozen=True)

    database_url: str
    schedule_repeat_limit: int = 20
    # widest window, in seconds, a reservation query may span (31 days)
    schedule_time_range_limit: int = 31 * 24 * 3600
    admin_permission_idx: int = 1
    dev_mode: bool = False
    jwt_public_key_path: str = "jwt.pub"
    jwt_public_key: Optional[str] = None
    jwt_audience: str = "reservation"
    jwt_issuer: str = "id"
    listen_host: str = "0.0.0.0"
    listen_port: int = 8080
    log_level: str = "INFO"


def load_settings() -> Settings:
    # 1. Load environment variables from .env file
    load_dotenv()

    # 2. Get the URL. If it's not found, raise an error to fail fast.
    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        raise ConfigError("DATABASE_URL is not set. Please check your .env file.")

    dev_mode = _env_bool("DEV_MODE")
    key_path = os.environ.get("JWT_PUBLIC_KEY_PATH", "jwt.pub")

    # 3. The public key is only needed when tokens are actually verified
    public_key = None
    if not dev_mode:
        try:
            with open(key_path, "r", encoding="utf-8") as f:
                public_key = f.read()
        except OSError as e:
            raise ConfigError(f"cannot read JWT public key at {key_path}: {e}") from e

    try:
        return Settings(
            database_url=database_url,
            schedule_repeat_limit=int(os.environ.get("SCHEDULE_REPEAT_LIMIT", "20")),
            schedule_time_range_limit=int(
                os.environ.get("SCHEDULE_TIME_RANGE_LIMIT", str(31 * 24 * 3600))
            ),
            admin_permission_idx=int(os.environ.get("ADMIN_PERMISSION_IDX", "1")),
            dev_mode=dev_mode,
            jwt_public_key_path=key_path,
            jwt_public_key=public_key,
            jwt_audience=os.environ.get("JWT_AUDIENCE", "reservation"),
            jwt_issuer=os.environ.get("JWT_ISSUER", "id"),
            listen_host=os.environ.get("LISTEN_HOST", "0.0.0.0"),
            listen_port=int(os.environ.get("LISTEN_PORT", "8080")),
            log_level=os.environ.get("LOG_LEVEL", "DEBUG" if dev_mode else "INFO").upper(),
        )
    except ValueError as e:
        raise ConfigError(f"invalid configuration: {e}") from e
