import logging
import time
from typing import Callable, Iterable, List, Optional

from .acquisition import AcquisitionService
from .config import AppConfig
from .database import WordDatabase
from .models import (
    AcquisitionError,
    CandidateRecord,
    ErrorKind,
    SessionEvent,
    SessionReport,
    StopReason,
    StorageError,
)

logger = logging.getLogger(__name__)

# Cap for the exponent of the network backoff
MAX_BACKOFF_EXPONENT = 5


class SessionDriver:
    """
    Fills storage with words from the acquisition service until the target is met.

    One batch is fetched, filtered and written before the next is requested.
    The session stops when the stored count reaches ``target``, after
    ``2 * target`` attempts, after ``max_consecutive_failures`` failed fetches
    in a row, or at the first fatal error (authorization, storage, unknown).
    Storage is closed when the session ends, whatever the reason.
    """

    def __init__(self, storage: WordDatabase, acquisition: AcquisitionService, target: int,
                 allowed_categories: Iterable[str], max_consecutive_failures: int = 20,
                 request_delay_s: float = 0.5, batch_size: int = 10,
                 sleep: Callable[[float], None] = time.sleep):
        self.storage = storage
        self.acquisition = acquisition
        self.target = target
        self.allowed_categories = frozenset(c.strip().lower() for c in allowed_categories)
        self.max_consecutive_failures = max_consecutive_failures
        self.request_delay_s = request_delay_s
        self.batch_size = batch_size
        self._sleep = sleep

    def is_allowed(self, record: CandidateRecord) -> bool:
        return (record.category or '').strip().lower() in self.allowed_categories

    def run(self) -> SessionReport:
        report = SessionReport(target=self.target)
        max_attempts = self.target * 2
        logger.info(f"Filling the dictionary. Target: {self.target} unique words.")
        try:
            stored = self.storage.count()
            report.start_count = stored
            while stored < self.target and report.total_attempts < max_attempts:
                report.total_attempts += 1
                logger.info(f"Stored words: {stored}. Remaining: {self.target - stored}")

                try:
                    batch = self.acquisition.fetch_words(self.batch_size)
                except AcquisitionError as e:
                    report.stop_reason = self._handle_failure(e, report)
                    if report.stop_reason is not None:
                        break
                    continue
                except Exception as e:
                    logger.exception(f"Unexpected error while fetching words: {e}")
                    report.events.append(SessionEvent("fetch_failed", detail=f"unknown: {e}"))
                    report.stop_reason = StopReason.UNKNOWN_ERROR
                    break

                if not batch:
                    empty = AcquisitionError(ErrorKind.NO_CANDIDATES, "Acquisition returned an empty batch")
                    report.stop_reason = self._handle_failure(empty, report)
                    if report.stop_reason is not None:
                        break
                    self._sleep(self.request_delay_s)
                    continue

                degraded = self._served_from_emergency_pool()
                if not degraded:
                    report.consecutive_failures = 0
                stored = self._store_batch(batch, report, stored)
                if stored >= self.target:
                    break
                if degraded:
                    report.stop_reason = self._handle_failure(self._last_acquisition_error(), report)
                    if report.stop_reason is not None:
                        break
                    stored = self.storage.count()
                    continue
                self._sleep(self.request_delay_s)
                stored = self.storage.count()
        except StorageError as e:
            logger.error(f"Storage failure; stopping the session: {e}")
            report.events.append(SessionEvent("storage_failed", detail=str(e)))
            report.stop_reason = StopReason.STORAGE_FAILURE
        finally:
            self._finish(report)
        return report

    def _handle_failure(self, error: AcquisitionError, report: SessionReport) -> Optional[StopReason]:
        """Account for a failed fetch; returns a stop reason if the session must end."""
        report.consecutive_failures += 1
        report.events.append(SessionEvent("fetch_failed", detail=f"{error.kind.value}: {error.message}"))
        logger.error(f"Failed to fetch words (consecutive failure #{report.consecutive_failures}): {error.message}")

        reached_ceiling = report.consecutive_failures >= self.max_consecutive_failures
        kind = error.kind
        if kind == ErrorKind.AUTH:
            logger.error("Authorization failure (401/403). Check the API key or model access. Stopping.")
            return StopReason.AUTH_FAILURE
        elif kind == ErrorKind.STORAGE:
            return StopReason.STORAGE_FAILURE
        elif kind == ErrorKind.UNKNOWN:
            logger.error("Unclassified error. Stopping.")
            return StopReason.UNKNOWN_ERROR
        elif kind == ErrorKind.TRANSIENT_NETWORK:
            if not reached_ceiling:
                exponent = min(report.consecutive_failures, MAX_BACKOFF_EXPONENT)
                wait = self.request_delay_s * (2 ** exponent)
                logger.warning(f"Network error; retrying in {wait:.1f}s.")
                self._sleep(wait)
        elif kind == ErrorKind.API:
            logger.error(f"API error (status {error.status_code or 'unknown'}).")
            if not reached_ceiling:
                self._sleep(self.request_delay_s * 2)
        elif kind in (ErrorKind.MALFORMED_RESPONSE, ErrorKind.NO_CANDIDATES):
            logger.warning("Model produced no usable words this round; trying again.")
        else:
            logger.error(f"Unhandled error kind {kind!r}. Stopping.")
            return StopReason.UNKNOWN_ERROR

        if reached_ceiling:
            logger.error(f"{self.max_consecutive_failures} consecutive failures; the provider or config "
                         f"is likely broken. Stopping.")
            return StopReason.FAILURE_CEILING
        return None

    def _served_from_emergency_pool(self) -> bool:
        return getattr(self.acquisition, "last_source", None) == "emergency"

    def _last_acquisition_error(self) -> AcquisitionError:
        errors = getattr(self.acquisition, "last_errors", None)
        if errors:
            return errors[-1]
        return AcquisitionError(ErrorKind.TRANSIENT_NETWORK, "All providers failed; served emergency words")

    def _store_batch(self, batch: List[CandidateRecord], report: SessionReport, stored: int) -> int:
        for record in batch:
            if not self.is_allowed(record):
                logger.info(f"{record.word!r} has category {record.category!r}, which is not allowed; skipping.")
                report.events.append(SessionEvent("category_rejected", record.word, record.category or ''))
                continue
            try:
                if self.storage.exists(record.word):
                    logger.info(f"{record.word!r} is already stored; skipping.")
                    report.events.append(SessionEvent("duplicate", record.word))
                    continue
                inserted = self.storage.insert(record.word, record)
            except StorageError as e:
                logger.error(f"Could not store {record.word!r}: {e}")
                report.events.append(SessionEvent("insert_failed", record.word, str(e)))
                continue
            if not inserted:
                report.events.append(SessionEvent("duplicate", record.word))
                continue

            report.new_words_added += 1
            logger.info(f"Added new word {record.word!r}.")
            stored = self.storage.count()
            if stored >= self.target:
                logger.info(f"Target word count reached ({self.target}).")
                break
        return stored

    def _finish(self, report: SessionReport) -> None:
        try:
            report.final_count = self.storage.count()
        except StorageError as e:
            logger.error(f"Could not read the final word count: {e}")
            report.final_count = report.start_count + report.new_words_added
        if report.stop_reason is None:
            if report.final_count >= self.target:
                report.stop_reason = StopReason.TARGET_REACHED
            else:
                report.stop_reason = StopReason.ATTEMPTS_EXHAUSTED
        logger.info(
            f"Session finished ({report.stop_reason.value}). Added {report.new_words_added} new words "
            f"in {report.total_attempts} attempts; {report.final_count} words stored in total."
        )
        self.storage.close()


class WordBankApp:
    """Wires config, storage, providers and the session driver together."""

    def __init__(self, config: AppConfig, storage: Optional[WordDatabase] = None,
                 acquisition: Optional[AcquisitionService] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.config = config
        self.storage = storage or WordDatabase(config.db_path)
        self.acquisition = acquisition or AcquisitionService.from_config(config, sleep=sleep)
        self._sleep = sleep

    def init(self) -> int:
        """Open storage and purge entries outside the allowed categories."""
        self.storage.open()
        logger.info("Database initialized.")
        deleted = self.storage.delete_not_in(self.config.allowed_categories)
        logger.info(f"Removed {deleted} words with disallowed categories during startup.")
        return deleted

    def populate(self, target: Optional[int] = None) -> SessionReport:
        driver = SessionDriver(
            self.storage,
            self.acquisition,
            target=target if target is not None else self.config.target_word_count,
            allowed_categories=self.config.allowed_categories,
            max_consecutive_failures=self.config.max_consecutive_failures,
            request_delay_s=self.config.request_delay_s,
            batch_size=self.config.batch_size,
            sleep=self._sleep,
        )
        return driver.run()
