import logging
import re
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Dict, Mapping, Optional

logger = logging.getLogger(__name__)

_DURATION_PART = re.compile(r'(\d+(?:\.\d+)?)(ms|s|m|h)')
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_reset_seconds(value: Optional[str]) -> Optional[float]:
    """
    Parse a rate-limit reset header into seconds.

    Accepts plain seconds ("12", "1.5") and compound durations ("1m30s", "250ms").
    """
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        pass
    parts = _DURATION_PART.findall(value)
    if not parts:
        return None
    return sum(float(n) * _UNIT_SECONDS[unit] for n, unit in parts)


class QuotaMonitor:
    def __init__(self, warning_threshold: int = 10, critical_threshold: int = 2):
        self.quota_info = {
            "remaining": None,  # Remaining requests in the current window
            "reset_seconds": None,  # Seconds until the window resets
            "last_check": None,  # Last time headers were seen
        }
        self.warning_threshold = warning_threshold
        self.critical_threshold = critical_threshold

    def update_quota(self, headers: Mapping[str, str]) -> None:
        """
        Update quota information from API response headers.

        Args:
            headers: Response headers from the chat completions API
        """
        remaining = headers.get('x-ratelimit-remaining-requests') or headers.get('x-ratelimit-remaining')
        reset = headers.get('x-ratelimit-reset-requests') or headers.get('x-ratelimit-reset')

        if remaining is not None:
            try:
                self.quota_info["remaining"] = int(remaining)
            except ValueError:
                logger.debug(f"Ignoring unparsable rate-limit header: {remaining!r}")
        if reset is not None:
            self.quota_info["reset_seconds"] = parse_reset_seconds(reset)
        self.quota_info["last_check"] = datetime.now(timezone.utc)

        logger.debug(
            f"Quota updated - Remaining: {self.quota_info['remaining']}, "
            f"Reset in: {self.quota_info['reset_seconds']}s"
        )

    def get_quota_warning(self) -> Optional[Dict[str, str]]:
        """
        Get quota warning if thresholds are exceeded.

        Returns:
            Warning dict with level and message, or None if no warning
        """
        remaining = self.quota_info["remaining"]
        if remaining is None:
            return None
        reset = self.quota_info["reset_seconds"]
        reset_text = f"{reset:.0f}s" if reset is not None else "unknown time"

        if remaining <= self.critical_threshold:
            return {
                "level": "error",
                "message": f"Critical: only {remaining} API requests remaining; window resets in {reset_text}.",
            }
        if remaining <= self.warning_threshold:
            return {
                "level": "warning",
                "message": f"{remaining} API requests remaining; window resets in {reset_text}.",
            }
        return None

    def cooldown_seconds(self) -> float:
        """Seconds to wait before the next request when the window is nearly exhausted."""
        remaining = self.quota_info["remaining"]
        reset = self.quota_info["reset_seconds"]
        if remaining is not None and remaining <= self.critical_threshold and reset:
            return reset
        return 0.0


def retry_after_seconds(headers: Mapping[str, str], default: float = 0.0) -> float:
    """Read a Retry-After header given in seconds or as an HTTP date."""
    value = headers.get('retry-after') if headers else None
    if not value:
        return default
    try:
        return max(default, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
        return max(default, when.timestamp() - time.time())
    except (TypeError, ValueError):
        return default
