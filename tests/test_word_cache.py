import random

import pytest

from wordbank.models import CandidateRecord
from wordbank.word_cache import WordCache


def rec(word, category="edebiyat"):
    return CandidateRecord(word=word, definition=f"{word} tanımı", category=category, source_tag="test")


@pytest.fixture
def cache():
    return WordCache(capacity=5, rng=random.Random(7))


@pytest.mark.unit
def test_admit_skips_duplicates_by_normalized_word(cache):
    assert cache.admit([rec("Kalem"), rec("kalem "), rec("defter")]) == 2
    assert cache.admit([rec("KALEM")]) == 0
    assert len(cache) == 2


@pytest.mark.unit
def test_capacity_evicts_oldest_first(cache):
    cache.admit([rec(f"w{i}") for i in range(4)])
    cache.admit([rec(f"w{i}") for i in range(4, 8)])

    assert len(cache) == 5
    assert [r.word for r in cache.entries] == ["w3", "w4", "w5", "w6", "w7"]


@pytest.mark.unit
def test_cache_never_exceeds_capacity_or_holds_duplicates():
    rng = random.Random(1)
    cache = WordCache(capacity=8, rng=rng)
    vocabulary = [f"kelime{i}" for i in range(20)]
    for _ in range(50):
        batch = [rec(rng.choice(vocabulary)) for _ in range(rng.randint(0, 12))]
        cache.admit(batch)
        keys = [r.key for r in cache.entries]
        assert len(keys) <= 8
        assert len(keys) == len(set(keys))


@pytest.mark.unit
def test_take_unused_never_repeats_until_reset(cache):
    cache.admit([rec(f"w{i}") for i in range(5)])
    seen = []
    for _ in range(4):
        seen.extend(r.word for r in cache.take_unused(2))
    assert sorted(seen) == [f"w{i}" for i in range(5)]
    assert cache.take_unused(3) == []

    cache.reset()
    assert len(cache.take_unused(10)) == 5


@pytest.mark.unit
def test_used_words_survive_eviction(cache):
    cache.admit([rec("a")])
    assert [r.word for r in cache.take_unused(1)] == ["a"]
    cache.clear()
    cache.admit([rec("a"), rec("b")])
    assert [r.word for r in cache.take_unused(5)] == ["b"]


@pytest.mark.unit
def test_reset_and_clear_are_independent(cache):
    cache.admit([rec("a"), rec("b")])
    cache.take_unused(1)

    assert cache.clear() == 2
    assert len(cache.used_words) == 1
    assert cache.reset() == 1
    assert cache.used_words == set()


@pytest.mark.unit
def test_forget_releases_specific_words(cache):
    cache.mark_used(["x", "Y"])
    assert cache.forget(["y", "z"]) == 1
    assert cache.is_used("x")
    assert not cache.is_used("y")


@pytest.mark.unit
def test_invalid_capacity():
    with pytest.raises(ValueError):
        WordCache(capacity=0)
