import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv, find_dotenv

logger = logging.getLogger(__name__)

# Only entries in these categories are kept in the dictionary
DEFAULT_ALLOWED_CATEGORIES = (
    'edebiyat', 'iletişim', 'tarih', 'sanat', 'müzik', 'yemek', 'tıp', 'iş', 'doğa', 'felsefe'
)
FALLBACK_CATEGORY = 'edebiyat'


@dataclass(frozen=True)
class RemoteApiSettings:
    api_key: str
    api_url: str
    model_name: str
    timeout_s: float = 60.0


@dataclass(frozen=True)
class LocalModelSettings:
    model_name: str
    command: str = 'ollama'
    timeout_s: float = 60.0


@dataclass(frozen=True)
class AppConfig:
    db_path: str = './database.sqlite'
    request_delay_ms: int = 500
    max_retry_attempts: int = 3
    target_word_count: int = 5000
    max_consecutive_failures: int = 20
    batch_size: int = 10
    cache_size: int = 50
    allowed_categories: Tuple[str, ...] = DEFAULT_ALLOWED_CATEGORIES
    remote: Optional[RemoteApiSettings] = None
    local: Optional[LocalModelSettings] = None

    @property
    def request_delay_s(self) -> float:
        return self.request_delay_ms / 1000.0


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except Exception:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except Exception:
        return default


def _env_str(name: str, default: str = '') -> str:
    return (os.getenv(name) or default).strip()


def load_env(env_path: Optional[str] = None) -> Optional[str]:
    """Load a .env file without overriding variables already set in the process."""
    path = env_path or find_dotenv(usecwd=True)
    if path and Path(path).exists():
        load_dotenv(path, override=False)
        logger.debug(f"Loaded .env from: {path}")
        return path
    return None


def load_config(env_path: Optional[str] = None) -> AppConfig:
    """Build the application config from the environment (and .env, if present)."""
    load_env(env_path)

    remote = None
    api_key = _env_str('GROQ_API_KEY')
    api_url = _env_str('GROQ_API_URL')
    model_name = _env_str('GROQ_MODEL_NAME')
    if api_key and api_url and model_name:
        remote = RemoteApiSettings(
            api_key=api_key,
            api_url=api_url,
            model_name=model_name,
            timeout_s=_env_float('API_TIMEOUT_S', 60.0),
        )
    elif api_key or api_url or model_name:
        logger.warning("GROQ_API_KEY, GROQ_API_URL and GROQ_MODEL_NAME must all be set; remote API disabled.")

    local = None
    ollama_model = _env_str('OLLAMA_MODEL_NAME')
    if ollama_model:
        # Local generation is slow; allow three times the base CLI timeout
        local = LocalModelSettings(
            model_name=ollama_model,
            command=_env_str('OLLAMA_COMMAND', 'ollama'),
            timeout_s=_env_int('CLI_TIMEOUT_MS', 20000) * 3 / 1000.0,
        )

    categories = DEFAULT_ALLOWED_CATEGORIES
    raw_categories = _env_str('ALLOWED_CATEGORIES')
    if raw_categories:
        parsed = tuple(c.strip().lower() for c in raw_categories.split(',') if c.strip())
        if parsed:
            categories = parsed

    return AppConfig(
        db_path=_env_str('DB_PATH', './database.sqlite'),
        request_delay_ms=_env_int('REQUEST_DELAY_MS', 500),
        max_retry_attempts=max(1, _env_int('MAX_RETRY_ATTEMPTS', 3)),
        target_word_count=_env_int('TARGET_WORD_COUNT', 5000),
        max_consecutive_failures=max(1, _env_int('MAX_CONSECUTIVE_FAILURES', 20)),
        batch_size=max(1, _env_int('BATCH_SIZE', 10)),
        cache_size=max(1, _env_int('CACHE_SIZE', 50)),
        allowed_categories=categories,
        remote=remote,
        local=local,
    )
