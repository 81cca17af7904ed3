import json
import random

import pytest

from wordbank.acquisition import AcquisitionService
from wordbank.emergency_words import EMERGENCY_SOURCE_TAG, get_emergency_words
from wordbank.models import AcquisitionError, ErrorKind
from wordbank.providers import CandidateSource
from wordbank.word_cache import WordCache


def batch_text(words, category="edebiyat"):
    return "Kelimeler:\n" + json.dumps(
        [{"kelime": w, "tanim": f"{w} anlamı", "kategori": category} for w in words],
        ensure_ascii=False,
    )


class FakeSource(CandidateSource):
    """Replays a script of responses; each item is text or an AcquisitionError."""

    def __init__(self, name, script):
        super().__init__(("edebiyat",))
        self._name = name
        self.script = list(script)
        self.calls = 0
        self.last_retry_after = 0.0

    @property
    def source_tag(self):
        return f"Fake/{self._name}"

    def fetch_batch(self, count):
        self.calls += 1
        item = self.script.pop(0) if self.script else AcquisitionError(ErrorKind.NO_CANDIDATES, "script exhausted")
        if isinstance(item, Exception):
            raise item
        return item


def transient():
    return AcquisitionError(ErrorKind.TRANSIENT_NETWORK, "timeout")


@pytest.fixture
def sleeps():
    return []


def make_service(sources, sleeps, capacity=50, attempts=3):
    return AcquisitionService(
        sources,
        cache=WordCache(capacity, rng=random.Random(3)),
        batch_size=4,
        max_retry_attempts=attempts,
        retry_delay_s=0.5,
        sleep=sleeps.append,
    )


@pytest.mark.unit
def test_refills_from_source_then_serves_from_cache(sleeps):
    source = FakeSource("primary", [batch_text(["a", "b", "c", "d", "e", "f"])])
    service = make_service([source], sleeps)

    first = service.get_unique_words(4)
    assert len(first) == 4
    assert service.last_source == "live"

    second = service.get_unique_words(2)
    assert service.last_source == "cache"
    assert source.calls == 1
    assert {r.word for r in first}.isdisjoint({r.word for r in second})
    assert {r.source_tag for r in first + second} == {"Fake/primary"}


@pytest.mark.unit
def test_transient_errors_retry_with_exponential_backoff(sleeps):
    source = FakeSource("primary", [transient(), transient(), batch_text(["x", "y"])])
    service = make_service([source], sleeps)

    words = service.get_unique_words(2)
    assert sorted(r.word for r in words) == ["x", "y"]
    assert sleeps == [0.5, 1.0]
    assert len(service.last_errors) == 2


@pytest.mark.unit
def test_falls_back_to_secondary_after_retries(sleeps):
    primary = FakeSource("primary", [transient(), transient(), transient()])
    secondary = FakeSource("secondary", [batch_text(["yedek"])])
    service = make_service([primary, secondary], sleeps)

    words = service.get_unique_words(1)
    assert primary.calls == 3
    assert secondary.calls == 1
    assert words[0].source_tag == "Fake/secondary"


@pytest.mark.unit
def test_malformed_response_moves_to_next_provider_without_retry(sleeps):
    primary = FakeSource("primary", ["hiç json yok"])
    secondary = FakeSource("secondary", [batch_text(["tamam"])])
    service = make_service([primary, secondary], sleeps)

    words = service.get_unique_words(1)
    assert primary.calls == 1
    assert words[0].word == "tamam"
    assert sleeps == []


@pytest.mark.unit
def test_auth_failure_is_raised_and_not_retried(sleeps):
    primary = FakeSource("primary", [AcquisitionError(ErrorKind.AUTH, "bad key", status_code=401)])
    secondary = FakeSource("secondary", [batch_text(["x"])])
    service = make_service([primary, secondary], sleeps)

    with pytest.raises(AcquisitionError) as exc:
        service.get_unique_words(1)
    assert exc.value.kind == ErrorKind.AUTH
    assert primary.calls == 1
    assert secondary.calls == 0


@pytest.mark.unit
def test_emergency_pool_when_all_providers_fail(sleeps):
    source = FakeSource("primary", [transient()] * 3)
    service = make_service([source], sleeps)

    words = service.get_unique_words(3)
    assert service.last_source == "emergency"
    assert [r.word for r in words] == [r.word for r in get_emergency_words()[:3]]
    assert all(r.source_tag == EMERGENCY_SOURCE_TAG for r in words)


@pytest.mark.unit
def test_emergency_pool_is_recycled_when_exhausted(sleeps):
    pool_size = len(get_emergency_words())
    source = FakeSource("primary", [AcquisitionError(ErrorKind.API, "bad request")] * 10)
    service = make_service([source], sleeps, attempts=1)

    first = service.get_unique_words(pool_size)
    assert len({r.word for r in first}) == pool_size

    again = service.get_unique_words(2)
    assert [r.word for r in again] == [r.word for r in first[:2]]


@pytest.mark.unit
def test_empty_parse_returns_short_batch(sleeps):
    source = FakeSource("primary", [json.dumps([{"kelime": "tanımsız"}])])
    service = make_service([source], sleeps)

    assert service.get_unique_words(3) == []
    assert service.last_source == "live"
    assert len(service.last_notes) == 1


@pytest.mark.unit
def test_fetch_word_and_reset(sleeps):
    source = FakeSource("primary", [batch_text(["tek"])])
    service = make_service([source], sleeps)

    assert service.fetch_word().word == "tek"
    assert service.reset_used_words() == 1
    assert service.get_unique_words(1)[0].word == "tek"
    assert service.clear_cache() == 1


@pytest.mark.unit
def test_emergency_words_stay_out_of_the_cache(sleeps):
    source = FakeSource("primary", [transient(), batch_text(["canlı"])])
    service = make_service([source], sleeps, attempts=1)

    assert service.get_unique_words(1)[0].source_tag == EMERGENCY_SOURCE_TAG
    assert len(service.cache) == 0

    words = service.get_unique_words(1)
    assert service.last_source == "live"
    assert words[0].word == "canlı"


@pytest.mark.unit
def test_uses_the_given_empty_cache(sleeps):
    cache = WordCache(5)
    service = AcquisitionService([FakeSource("primary", [])], cache=cache, sleep=sleeps.append)
    assert service.cache is cache
