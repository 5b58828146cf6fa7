"""Environment-driven settings for cart sessions."""
import os
from dataclasses import dataclass
from functools import cache
from pathlib import Path
from typing import Optional

from rocketcart.errors import ConfigurationError

DEFAULT_INVENTORY_API_URL = "http://localhost:3333"
DEFAULT_CART_STORAGE_KEY = "@RocketShoes:cart"
DEFAULT_CART_FILE = str(Path.home() / ".rocketcart.json")

STORAGE_BACKENDS = ("memory", "file", "redis")
NOTIFIER_BACKENDS = ("log", "telegram")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip()


def _env_int(name: str, default: Optional[int], minimum: int = 0) -> Optional[int]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    normalized = raw.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean flag, got {raw!r}")


def _env_choice(name: str, default: str, choices: tuple[str, ...]) -> str:
    value = _env_str(name, default).lower() or default
    if value not in choices:
        raise ConfigurationError(f"{name} must be one of {', '.join(choices)}, got {value!r}")
    return value


@dataclass(frozen=True)
class Settings:
    """Cart session configuration."""

    # Inventory API (json-server compatible: /stock/{id}, /products/{id})
    inventory_api_url: str = DEFAULT_INVENTORY_API_URL
    inventory_timeout: float = 10.0
    inventory_retries: int = 2

    # Persistent store
    storage_backend: str = "memory"
    cart_storage_key: str = DEFAULT_CART_STORAGE_KEY
    cart_file_path: str = DEFAULT_CART_FILE
    cart_ttl_seconds: Optional[int] = None
    upstash_redis_rest_url: str = ""
    upstash_redis_rest_token: str = ""

    # User-facing messages
    language: str = "en"
    notify_invalid_amount: bool = False
    notifier_backend: str = "log"
    telegram_token: str = ""
    telegram_chat_id: Optional[int] = None

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from environment variables.

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        chat_id_raw = _env_str("TELEGRAM_CHAT_ID")
        try:
            telegram_chat_id = int(chat_id_raw) if chat_id_raw else None
        except ValueError:
            raise ConfigurationError(f"TELEGRAM_CHAT_ID must be an integer, got {chat_id_raw!r}")

        return cls(
            inventory_api_url=_env_str("INVENTORY_API_URL", DEFAULT_INVENTORY_API_URL).rstrip("/")
            or DEFAULT_INVENTORY_API_URL,
            inventory_timeout=_env_float("INVENTORY_TIMEOUT", 10.0),
            inventory_retries=_env_int("INVENTORY_RETRIES", 2),
            storage_backend=_env_choice("CART_STORAGE", "memory", STORAGE_BACKENDS),
            cart_storage_key=_env_str("CART_STORAGE_KEY", DEFAULT_CART_STORAGE_KEY)
            or DEFAULT_CART_STORAGE_KEY,
            cart_file_path=os.path.expanduser(_env_str("CART_FILE_PATH", DEFAULT_CART_FILE) or DEFAULT_CART_FILE),
            cart_ttl_seconds=_env_int("CART_TTL_SECONDS", None, minimum=1),
            upstash_redis_rest_url=_env_str("UPSTASH_REDIS_REST_URL"),
            upstash_redis_rest_token=_env_str("UPSTASH_REDIS_REST_TOKEN"),
            language=_env_str("CART_LANGUAGE", "en") or "en",
            notify_invalid_amount=_env_bool("CART_NOTIFY_INVALID_AMOUNT"),
            notifier_backend=_env_choice("CART_NOTIFIER", "log", NOTIFIER_BACKENDS),
            telegram_token=_env_str("TELEGRAM_TOKEN"),
            telegram_chat_id=telegram_chat_id,
        )


@cache
def get_settings() -> Settings:
    """Get settings loaded from the environment (cached)."""
    return Settings.from_env()


__all__ = [
    "DEFAULT_CART_STORAGE_KEY",
    "DEFAULT_INVENTORY_API_URL",
    "NOTIFIER_BACKENDS",
    "STORAGE_BACKENDS",
    "Settings",
    "get_settings",
]
