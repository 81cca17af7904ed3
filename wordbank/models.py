"""
Data types shared by the acquisition pipeline and the session driver.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


def normalize_word(word: str) -> str:
    """Identity key for a word: trimmed and lower-cased."""
    return (word or '').strip().lower()


@dataclass(frozen=True)
class CandidateRecord:
    word: str
    definition: str
    example_sentence: Optional[str] = None
    synonyms: Tuple[str, ...] = ()
    antonyms: Tuple[str, ...] = ()
    category: Optional[str] = None
    source_tag: str = ''

    @property
    def key(self) -> str:
        return normalize_word(self.word)


class ErrorKind(Enum):
    AUTH = "auth"
    TRANSIENT_NETWORK = "transient_network"
    API = "api"
    MALFORMED_RESPONSE = "malformed_response"
    NO_CANDIDATES = "no_candidates"
    STORAGE = "storage"
    UNKNOWN = "unknown"


class AcquisitionError(Exception):
    """Failure raised by a provider, the parser or the acquisition service.

    The failure class lives in ``kind``; callers branch on it instead of on
    exception subclasses.
    """

    def __init__(self, kind: ErrorKind, message: str,
                 status_code: Optional[int] = None, raw_text: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.raw_text = raw_text

    def __repr__(self) -> str:
        return f"AcquisitionError({self.kind.value}, {self.message!r}, status_code={self.status_code})"


class StorageError(Exception):
    """Raised by the storage layer for any database failure."""


class StopReason(Enum):
    TARGET_REACHED = "target_reached"
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"
    FAILURE_CEILING = "failure_ceiling"
    AUTH_FAILURE = "auth_failure"
    STORAGE_FAILURE = "storage_failure"
    UNKNOWN_ERROR = "unknown_error"


@dataclass
class SessionEvent:
    kind: str
    word: Optional[str] = None
    detail: str = ''


@dataclass
class SessionReport:
    target: int
    start_count: int = 0
    final_count: int = 0
    new_words_added: int = 0
    total_attempts: int = 0
    consecutive_failures: int = 0
    stop_reason: Optional[StopReason] = None
    events: List[SessionEvent] = field(default_factory=list)

    def count_events(self, kind: str) -> int:
        return sum(1 for e in self.events if e.kind == kind)

    @property
    def succeeded(self) -> bool:
        return self.stop_reason in (StopReason.TARGET_REACHED, StopReason.ATTEMPTS_EXHAUSTED)


class ConfigurationError(Exception):
    """Raised at construction time when no model provider is configured."""
