import logging
import random
from collections import OrderedDict
from typing import Iterable, List, Optional, Set

from .models import CandidateRecord, normalize_word

logger = logging.getLogger(__name__)

DEFAULT_CACHE_SIZE = 50


class WordCache:
    """
    Bounded FIFO cache of fetched candidates plus the set of words already handed out.

    The cache holds at most ``capacity`` records keyed by normalized word; the
    oldest are evicted first. The used-set outlives evictions and is only
    emptied by ``reset()``, so a word is never handed out twice in between.
    """

    def __init__(self, capacity: int = DEFAULT_CACHE_SIZE, rng: Optional[random.Random] = None):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._entries: "OrderedDict[str, CandidateRecord]" = OrderedDict()
        self._used: Set[str] = set()
        self._rng = rng or random.Random()

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> List[CandidateRecord]:
        return list(self._entries.values())

    @property
    def used_words(self) -> Set[str]:
        return set(self._used)

    def is_used(self, word: str) -> bool:
        return normalize_word(word) in self._used

    def unused_count(self) -> int:
        return sum(1 for key in self._entries if key not in self._used)

    def admit(self, candidates: Iterable[CandidateRecord]) -> int:
        """
        Add candidates not already cached, then evict the oldest beyond capacity.

        Returns:
            Number of candidates actually added
        """
        added = 0
        for record in candidates:
            key = record.key
            if not key or key in self._entries:
                continue
            self._entries[key] = record
            added += 1

        removed = 0
        while len(self._entries) > self.capacity:
            self._entries.popitem(last=False)
            removed += 1

        logger.info(f"Added {added} new words to cache. Cache size: {len(self._entries)}")
        if removed:
            logger.info(f"Cache trimmed to capacity; evicted {removed} oldest words.")
        return added

    def take_unused(self, n: int) -> List[CandidateRecord]:
        """Return up to n randomly chosen cached records not yet handed out, and mark them used."""
        if n <= 0:
            return []
        available = [rec for key, rec in self._entries.items() if key not in self._used]
        if len(available) > n:
            selected = self._rng.sample(available, n)
        else:
            selected = available
            self._rng.shuffle(selected)
        for rec in selected:
            self._used.add(rec.key)
        return selected

    def mark_used(self, words: Iterable[str]) -> None:
        for word in words:
            self._used.add(normalize_word(word))

    def forget(self, words: Iterable[str]) -> int:
        """Drop specific words from the used-set; returns how many were present."""
        dropped = 0
        for word in words:
            key = normalize_word(word)
            if key in self._used:
                self._used.discard(key)
                dropped += 1
        return dropped

    def reset(self) -> int:
        """Clear the used-set (not the cache). Returns how many words became reusable."""
        previous = len(self._used)
        self._used.clear()
        logger.info(f"Used-word record reset; {previous} words can be handed out again.")
        return previous

    def clear(self) -> int:
        """Empty the cache (not the used-set). Returns how many entries were dropped."""
        previous = len(self._entries)
        self._entries.clear()
        logger.info(f"Cache cleared; {previous} words removed.")
        return previous
