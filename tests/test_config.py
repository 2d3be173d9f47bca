import pytest

from config import ConfigError, load_settings

ENV_VARS = [
    "DATABASE_URL",
    "SCHEDULE_REPEAT_LIMIT",
    "SCHEDULE_TIME_RANGE_LIMIT",
    "ADMIN_PERMISSION_IDX",
    "DEV_MODE",
    "JWT_PUBLIC_KEY_PATH",
    "JWT_AUDIENCE",
    "JWT_ISSUER",
    "LISTEN_HOST",
    "LISTEN_PORT",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_database_url_is_required(monkeypatch):
    monkeypatch.setenv("DEV_MODE", "true")
    with pytest.raises(ConfigError):
        load_settings()


def test_dev_mode_skips_public_key(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///x.db")
    monkeypatch.setenv("DEV_MODE", "1")
    monkeypatch.setenv("JWT_PUBLIC_KEY_PATH", "/nonexistent/jwt.pub")
    settings = load_settings()
    assert settings.dev_mode
    assert settings.jwt_public_key is None
    assert settings.log_level == "DEBUG"


def test_public_key_is_read_once(monkeypatch, tmp_path, ec_keys):
    key_file = tmp_path / "jwt.pub"
    key_file.write_text(ec_keys[1])
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///x.db")
    monkeypatch.setenv("JWT_PUBLIC_KEY_PATH", str(key_file))
    monkeypatch.setenv("SCHEDULE_REPEAT_LIMIT", "12")
    monkeypatch.setenv("ADMIN_PERMISSION_IDX", "9")

    settings = load_settings()
    assert settings.jwt_public_key == ec_keys[1]
    assert settings.schedule_repeat_limit == 12
    assert settings.admin_permission_idx == 9
    assert settings.log_level == "INFO"

    # settings are immutable once parsed
    with pytest.raises(Exception):
        settings.schedule_repeat_limit = 1


def test_missing_public_key_fails_fast(monkeypatch, tmp_path):
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///x.db")
    monkeypatch.setenv("JWT_PUBLIC_KEY_PATH", str(tmp_path / "missing.pub"))
    with pytest.raises(ConfigError):
        load_settings()


def test_bad_number(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///x.db")
    monkeypatch.setenv("DEV_MODE", "yes")
    monkeypatch.setenv("SCHEDULE_REPEAT_LIMIT", "many")
    with pytest.raises(ConfigError):
        load_settings()
