import logging
import time
from typing import Callable, List, Optional, Sequence

from .config import AppConfig
from .emergency_words import get_emergency_words
from .models import AcquisitionError, CandidateRecord, ErrorKind
from .parser import parse_candidates
from .providers import CandidateSource, build_sources
from .word_cache import WordCache

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10


class AcquisitionService:
    """
    Hands out unique word candidates, refilling its cache from the model providers.

    Providers are tried in priority order. Transient failures are retried with
    exponential backoff on the same provider; any other failure moves on to the
    next one. When every provider fails the built-in emergency pool is used, so
    callers always get something back. Authorization failures are the single
    exception: they are raised, since no amount of retrying will fix them.
    """

    def __init__(self, sources: Sequence[CandidateSource], cache: Optional[WordCache] = None,
                 batch_size: int = DEFAULT_BATCH_SIZE, max_retry_attempts: int = 3,
                 retry_delay_s: float = 0.5, sleep: Callable[[float], None] = time.sleep,
                 emergency_words: Optional[Callable[[], List[CandidateRecord]]] = None):
        self.sources = list(sources)
        self.cache = cache if cache is not None else WordCache()
        self.batch_size = batch_size
        self.max_retry_attempts = max(1, max_retry_attempts)
        self.retry_delay_s = retry_delay_s
        self._sleep = sleep
        self._emergency_words = emergency_words or get_emergency_words
        # Diagnostics for the most recent call
        self.last_source: Optional[str] = None
        self.last_errors: List[AcquisitionError] = []
        self.last_notes: List[str] = []

    @classmethod
    def from_config(cls, config: AppConfig, sleep: Callable[[float], None] = time.sleep) -> "AcquisitionService":
        return cls(
            build_sources(config),
            cache=WordCache(config.cache_size),
            batch_size=config.batch_size,
            max_retry_attempts=config.max_retry_attempts,
            retry_delay_s=config.request_delay_s,
            sleep=sleep,
        )

    def fetch_words(self, count: Optional[int] = None) -> List[CandidateRecord]:
        """Return a batch of unique candidates (default: the configured batch size)."""
        return self.get_unique_words(count or self.batch_size)

    def fetch_word(self) -> Optional[CandidateRecord]:
        words = self.get_unique_words(1)
        return words[0] if words else None

    def get_unique_words(self, n: int) -> List[CandidateRecord]:
        self.last_errors = []
        self.last_notes = []
        if n <= 0:
            return []

        selected = self.cache.take_unused(n)
        if len(selected) >= n:
            self.last_source = "cache"
            logger.info(f"Serving {len(selected)} words from cache ({self.cache.unused_count()} unused remain).")
            return selected

        logger.info(f"Cache holds only {len(selected)} unused words; requesting a new batch.")
        try:
            fresh = self._fetch_live(max(n, self.batch_size))
        except AcquisitionError as e:
            if e.kind == ErrorKind.AUTH:
                # Give the cached picks back so they are not lost with the session
                self.cache.forget(rec.word for rec in selected)
                raise
            logger.error(f"All providers failed ({e.kind.value}): {e.message}. Using emergency words.")
            self.last_source = "emergency"
            return selected + self._take_emergency(n - len(selected))

        self.cache.admit(fresh)
        selected.extend(self.cache.take_unused(n - len(selected)))
        self.last_source = "live"
        logger.info(f"Selected {len(selected)} unique words.")
        return selected

    def _fetch_live(self, count: int) -> List[CandidateRecord]:
        last_error: Optional[AcquisitionError] = None
        for source in self.sources:
            try:
                return self._fetch_from(source, count)
            except AcquisitionError as e:
                if e.kind == ErrorKind.AUTH:
                    raise
                last_error = e
                logger.warning(f"{source!r} failed ({e.kind.value}); trying next provider if any.")
        if last_error is None:
            last_error = AcquisitionError(ErrorKind.UNKNOWN, "No providers available")
        raise last_error

    def _fetch_from(self, source: CandidateSource, count: int) -> List[CandidateRecord]:
        for attempt in range(1, self.max_retry_attempts + 1):
            try:
                raw = source.fetch_batch(count)
                return parse_candidates(raw, source.source_tag, notes=self.last_notes)
            except AcquisitionError as e:
                self.last_errors.append(e)
                logger.warning(f"{source!r} attempt {attempt}/{self.max_retry_attempts} failed: {e.message}")
                if e.kind != ErrorKind.TRANSIENT_NETWORK or attempt >= self.max_retry_attempts:
                    raise
                wait = self.retry_delay_s * (2 ** (attempt - 1))
                wait = max(wait, getattr(source, "last_retry_after", 0.0) or 0.0)
                logger.info(f"Retrying in {wait:.1f}s...")
                self._sleep(wait)
        raise AcquisitionError(ErrorKind.UNKNOWN, "Retry loop exited without a result")

    def _take_emergency(self, n: int) -> List[CandidateRecord]:
        if n <= 0:
            return []
        pool = self._emergency_words()
        unused = [rec for rec in pool if not self.cache.is_used(rec.word)]
        if not unused:
            logger.warning("All emergency words have been used; recycling the emergency pool.")
            self.cache.forget(rec.word for rec in pool)
            unused = pool
        chosen = unused[:n]
        self.cache.mark_used(rec.word for rec in chosen)
        return chosen

    def reset_used_words(self) -> int:
        return self.cache.reset()

    def clear_cache(self) -> int:
        return self.cache.clear()
