import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str
    app_version: str

    update_check_url: str
    update_check_timeout: float

    install_root: str
    document_root: str
    app_temp_dir: str
    config_file: str
    host_ini_file: str
    recovery_console_file: str


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getfloat(name: str, default: float) -> float:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///adminpanel.db"),
        app_version=_getenv("APP_VERSION", "1.4.0"),
        update_check_url=_getenv("UPDATE_CHECK_URL", "https://update.zikula.org/cgi-bin/engine/checkcoreversion13.cgi"),
        update_check_timeout=_getfloat("UPDATE_CHECK_TIMEOUT", 5.0),
        install_root=_getenv("INSTALL_ROOT", os.getcwd()),
        document_root=_getenv("DOCUMENT_ROOT", ""),
        app_temp_dir=_getenv("APP_TEMP_DIR", "app"),
        config_file=_getenv("CONFIG_FILE", ".env"),
        host_ini_file=_getenv("HOST_INI_FILE", ""),
        recovery_console_file=_getenv("RECOVERY_CONSOLE_FILE", "zrc.php"),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "APP_VERSION": s.app_version,
        "UPDATE_CHECK_URL": s.update_check_url,
        "UPDATE_CHECK_TIMEOUT": s.update_check_timeout,
        "INSTALL_ROOT": s.install_root,
        "DOCUMENT_ROOT": s.document_root,
        "APP_TEMP_DIR": s.app_temp_dir,
        "CONFIG_FILE": s.config_file,
        "HOST_INI_FILE": s.host_ini_file,
        "RECOVERY_CONSOLE_FILE": s.recovery_console_file,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,
    }


def is_dev_mode(config: dict) -> bool:
    return (config.get("ENV") or "").strip().lower() in ("dev", "development")
