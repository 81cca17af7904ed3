import json

import pytest

from wordbank.config import FALLBACK_CATEGORY
from wordbank.models import AcquisitionError, ErrorKind
from wordbank.parser import PLACEHOLDER_EXAMPLE, extract_array, parse_candidates

TAG = "Groq-API/test-model"


def _entry(word, definition="tanım", **extra):
    data = {"kelime": word, "tanim": definition}
    data.update(extra)
    return data


@pytest.mark.unit
def test_skips_element_missing_definition():
    payload = [
        _entry("müphem", "Belirsiz, açık olmayan.", kategori="edebiyat"),
        {"kelime": "eksik"},
        _entry("mütereddit", "Kararsız.", kategori="felsefe"),
    ]
    raw = "İşte kelimeler:\n" + json.dumps(payload, ensure_ascii=False) + "\nUmarım beğenirsiniz."
    notes = []
    records = parse_candidates(raw, TAG, notes=notes)

    assert [r.word for r in records] == ["müphem", "mütereddit"]
    assert len(notes) == 1
    assert "element 1" in notes[0]


@pytest.mark.unit
def test_text_without_array_is_malformed_and_keeps_raw_text():
    raw = "Üzgünüm, şu anda kelime üretemiyorum."
    with pytest.raises(AcquisitionError) as exc:
        parse_candidates(raw, TAG)
    assert exc.value.kind == ErrorKind.MALFORMED_RESPONSE
    assert exc.value.raw_text == raw


@pytest.mark.unit
def test_undecodable_array_is_malformed():
    raw = '[{"kelime": "a", "tanim": }]'
    with pytest.raises(AcquisitionError) as exc:
        parse_candidates(raw, TAG)
    assert exc.value.kind == ErrorKind.MALFORMED_RESPONSE


@pytest.mark.unit
def test_empty_array_is_no_candidates():
    with pytest.raises(AcquisitionError) as exc:
        parse_candidates("Sonuç: []", TAG)
    assert exc.value.kind == ErrorKind.NO_CANDIDATES


@pytest.mark.unit
def test_all_elements_skipped_returns_empty_list():
    raw = json.dumps([{"kelime": "yalnız"}, {"tanim": "sadece tanım"}])
    assert parse_candidates(raw, TAG) == []


@pytest.mark.unit
def test_defaults_for_optional_fields():
    raw = json.dumps([_entry("nadir", "Seyrek.", es_anlamlilari="seyrek, az", zit_anlamlilari=None)])
    record = parse_candidates(raw, TAG)[0]

    assert record.synonyms == ()
    assert record.antonyms == ()
    assert record.example_sentence == PLACEHOLDER_EXAMPLE
    assert record.category == FALLBACK_CATEGORY
    assert record.source_tag == TAG


@pytest.mark.unit
def test_list_fields_and_english_keys():
    raw = json.dumps([{
        "word": "  lucid ",
        "definition": "Clear.",
        "synonyms": ["clear", 3, ""],
        "antonyms": ["murky"],
        "category": "Sanat",
        "example_sentence": "A lucid essay.",
    }])
    record = parse_candidates(raw, TAG)[0]

    assert record.word == "lucid"
    assert record.synonyms == ("clear",)
    assert record.antonyms == ("murky",)
    assert record.category == "Sanat"
    assert record.example_sentence == "A lucid essay."


@pytest.mark.unit
def test_code_fences_and_brackets_inside_strings():
    payload = [_entry("köşeli", "İçinde ] ve [ geçen tanım.")]
    raw = "```json\n" + json.dumps(payload, ensure_ascii=False) + "\n```"
    records = parse_candidates(raw, TAG)
    assert records[0].definition == "İçinde ] ve [ geçen tanım."


@pytest.mark.unit
def test_skips_leading_prose_brackets_and_repairs_trailing_comma():
    raw = 'Not [1] önemli. [ {"kelime": "izah", "tanim": "Açıklama."}, ]'
    data = extract_array(raw)
    assert data == [{"kelime": "izah", "tanim": "Açıklama."}]


@pytest.mark.unit
def test_first_array_wins():
    first = json.dumps([_entry("bir", "Birinci.")], ensure_ascii=False)
    second = json.dumps([_entry("iki", "İkinci.")], ensure_ascii=False)
    records = parse_candidates(f"{first}\n{second}", TAG)
    assert [r.word for r in records] == ["bir"]


@pytest.mark.unit
def test_empty_array_in_prose_does_not_hide_later_objects():
    raw = 'Liste boş değil: [] İşte sonuç: [{"kelime": "a", "tanim": "b"}]'
    records = parse_candidates(raw, TAG)
    assert [r.word for r in records] == ["a"]
