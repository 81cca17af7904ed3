"""
Monitoring module for the word bank filler.
Handles logging setup and console-safe log text.
"""

import os
import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: Optional[str] = None, log_dir: Optional[str] = None) -> logging.Logger:
    """
    Configure the root logger with a file handler and a console handler.

    Args:
        level: Log level name; defaults to the LOG_LEVEL env variable, then INFO
        log_dir: Directory for wordbank.log; defaults to LOG_DIR, then ./logs

    Returns:
        The package logger
    """
    level_name = (level or os.getenv('LOG_LEVEL', 'INFO')).strip().upper()
    log_level = getattr(logging, level_name, logging.INFO)

    logs_dir = Path(log_dir or os.getenv('LOG_DIR', 'logs'))
    logs_dir.mkdir(parents=True, exist_ok=True)

    # Force reconfigure so handlers installed by earlier imports don't linger
    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(logs_dir / 'wordbank.log', encoding='utf-8'),
            logging.StreamHandler()
        ],
        force=True,
    )

    logging.getLogger().setLevel(log_level)
    logging.getLogger('wordbank').setLevel(log_level)
    # urllib3 logs every connection at DEBUG
    logging.getLogger('urllib3').setLevel(max(log_level, logging.INFO))
    return logging.getLogger('wordbank')


def safe_text(text) -> str:
    """Escape non-ASCII characters so Windows consoles never raise on Turkish words."""
    try:
        return str(text).encode('ascii', errors='backslashreplace').decode('ascii')
    except Exception:
        return repr(text)


def truncate(text, limit: int = 200) -> str:
    text = safe_text(text)
    if len(text) <= limit:
        return text
    return text[:limit] + '...'
