import json
import logging
import os
import platform
from typing import Any, Dict, Optional

from dotenv import load_dotenv, find_dotenv


def _load_environment() -> None:
    explicit_path = os.environ.get("DIROPDS_ENV_FILE")
    if explicit_path:
        load_dotenv(explicit_path, override=False)
        return
    dotenv_path = find_dotenv(usecwd=True)
    if dotenv_path:
        load_dotenv(dotenv_path, override=False)


_load_environment()

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: Dict[str, Any] = {
    "catalog_root": ".",
    "catalog_title": "Catalog",
    "author": "",
    "author_email": "",
    "author_uri": "",
    "host": "0.0.0.0",
    "port": 8080,
    "debug": False,
    "log_level": "INFO",
}

# Environment variables override the JSON config file.
_ENV_SETTINGS = {
    "catalog_root": "DIROPDS_ROOT",
    "catalog_title": "DIROPDS_TITLE",
    "author": "DIROPDS_AUTHOR",
    "author_email": "DIROPDS_AUTHOR_EMAIL",
    "author_uri": "DIROPDS_AUTHOR_URI",
    "host": "DIROPDS_HOST",
    "port": "DIROPDS_PORT",
    "debug": "DIROPDS_DEBUG",
    "log_level": "DIROPDS_LOG_LEVEL",
}


def get_version():
    """Return the current version of the application."""
    version_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), "VERSION")
    try:
        with open(version_path, "r", encoding="utf-8") as f:
            return f.read().strip()
    except OSError:
        return "Unknown"


def ensure_directory(path):
    resolved = os.path.abspath(os.path.expanduser(str(path)))
    os.makedirs(resolved, exist_ok=True)
    return resolved


def get_user_settings_dir():
    override = os.environ.get("DIROPDS_SETTINGS_DIR")
    if override:
        return ensure_directory(override)

    data_root = os.environ.get("DIROPDS_DATA")
    if data_root:
        try:
            return ensure_directory(os.path.join(data_root, "settings"))
        except OSError:
            pass

    from platformdirs import user_config_dir

    if platform.system() != "Windows":
        legacy_dir = os.path.join(os.path.expanduser("~"), ".config", "diropds")
        if os.path.exists(legacy_dir):
            return legacy_dir

    return user_config_dir("diropds", appauthor=False, roaming=True)


def get_user_config_path():
    return os.path.join(get_user_settings_dir(), "config.json")


def load_config():
    try:
        with open(get_user_config_path(), "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable config file: %s", exc)
        return {}
    return data if isinstance(data, dict) else {}


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def load_settings(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Merge defaults, ``config.json`` and ``DIROPDS_*`` environment variables."""
    settings = dict(DEFAULT_SETTINGS)
    settings.update({key: value for key, value in load_config().items() if key in DEFAULT_SETTINGS})
    for key, env_name in _ENV_SETTINGS.items():
        value = os.environ.get(env_name)
        if value is not None:
            settings[key] = value
    if overrides:
        settings.update(overrides)

    try:
        settings["port"] = int(settings["port"])
    except (TypeError, ValueError):
        raise ValueError(f"Invalid port: {settings['port']!r}") from None
    settings["debug"] = _coerce_bool(settings["debug"])
    settings["catalog_root"] = os.path.abspath(os.path.expanduser(str(settings["catalog_root"])))
    return settings
