"""
Extracts word records from free-form model output.

The model is asked for a bare JSON array but routinely wraps it in prose or
code fences, so the parser scans for the first bracketed array of objects,
decodes it and normalizes each element. Bad elements are skipped, not fatal.
"""

import json
import logging
import re
from typing import Any, List, Optional, Tuple

from .config import FALLBACK_CATEGORY
from .models import AcquisitionError, CandidateRecord, ErrorKind
from .monitoring import safe_text, truncate

logger = logging.getLogger(__name__)

PLACEHOLDER_EXAMPLE = "Örnek cümle bulunamadı."

# Accepted keys per field, Turkish first
_WORD_KEYS = ("kelime", "word")
_DEFINITION_KEYS = ("tanim", "definition")
_EXAMPLE_KEYS = ("ornek_cumle", "example_sentence", "example")
_SYNONYM_KEYS = ("es_anlamlilari", "synonyms")
_ANTONYM_KEYS = ("zit_anlamlilari", "antonyms")
_CATEGORY_KEYS = ("kategori", "category")

_TRAILING_COMMA = re.compile(r',\s*([\]}])')


def _clean(raw: str) -> str:
    text = raw.strip()
    # Strip code fences
    text = re.sub(r'```(?:json)?', '', text)
    text = text.replace('“', '"').replace('”', '"')
    return text


def _match_bracket(text: str, start: int) -> int:
    """Return the index of the ']' closing the '[' at start, or -1."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        c = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif c == '\\':
                escaped = True
            elif c == '"':
                in_string = False
            continue
        if c == '"':
            in_string = True
        elif c in '[{':
            depth += 1
        elif c in ']}':
            depth -= 1
            if depth == 0:
                return i if c == ']' else -1
    return -1


def _array_regions(text: str) -> List[Tuple[int, int]]:
    """Find candidate array-of-objects regions, in order of appearance."""
    regions = []
    for m in re.finditer(r'\[\s*([{\]])', text):
        start = m.start()
        end = _match_bracket(text, start)
        if end == -1:
            # Unbalanced; be greedy and take everything up to the last ']'
            end = text.rfind(']')
            if end <= start:
                continue
        regions.append((start, end + 1))
    return regions


def _decode(snippet: str) -> Optional[Any]:
    try:
        return json.loads(snippet)
    except ValueError:
        pass
    repaired = _TRAILING_COMMA.sub(r'\1', snippet)
    if repaired != snippet:
        try:
            return json.loads(repaired)
        except ValueError:
            pass
    return None


def _has_objects(data: Any) -> bool:
    return isinstance(data, list) and any(isinstance(item, dict) for item in data)


def extract_array(raw_text: str) -> Any:
    """Locate and decode the first embedded JSON array of objects.

    An array without objects (such as an empty ``[]`` in the prose) is returned
    only when no later region holds one.

    Raises:
        AcquisitionError(MALFORMED_RESPONSE) if no array is present or none decodes
    """
    if not isinstance(raw_text, str) or not raw_text.strip():
        raise AcquisitionError(ErrorKind.MALFORMED_RESPONSE, "Empty response text", raw_text=raw_text)
    text = _clean(raw_text)
    regions = _array_regions(text)
    if not regions:
        logger.error(f"No JSON array found in model response: {truncate(raw_text)}")
        raise AcquisitionError(ErrorKind.MALFORMED_RESPONSE,
                               "No JSON array found in model response", raw_text=raw_text)
    fallback = None
    for start, end in regions:
        data = _decode(text[start:end])
        if data is None:
            continue
        if _has_objects(data):
            return data
        if fallback is None:
            fallback = data
    if fallback is not None:
        return fallback
    logger.error(f"JSON array in model response could not be decoded: {truncate(raw_text)}")
    raise AcquisitionError(ErrorKind.MALFORMED_RESPONSE,
                           "JSON array in model response could not be decoded", raw_text=raw_text)


def _first(obj: dict, keys) -> Any:
    for k in keys:
        if k in obj and obj[k] is not None:
            return obj[k]
    return None


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    return ''


def _string_list(value: Any) -> Tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(s.strip() for s in value if isinstance(s, str) and s.strip())


def normalize_record(obj: Any, source_tag: str) -> Optional[CandidateRecord]:
    """Turn one decoded element into a CandidateRecord, or None if unusable."""
    if not isinstance(obj, dict):
        return None
    word = _text(_first(obj, _WORD_KEYS))
    definition = _text(_first(obj, _DEFINITION_KEYS))
    if not word or not definition:
        return None
    return CandidateRecord(
        word=word,
        definition=definition,
        example_sentence=_text(_first(obj, _EXAMPLE_KEYS)) or PLACEHOLDER_EXAMPLE,
        synonyms=_string_list(_first(obj, _SYNONYM_KEYS)),
        antonyms=_string_list(_first(obj, _ANTONYM_KEYS)),
        category=_text(_first(obj, _CATEGORY_KEYS)) or FALLBACK_CATEGORY,
        source_tag=source_tag,
    )


def parse_candidates(raw_text: str, source_tag: str, notes: Optional[List[str]] = None) -> List[CandidateRecord]:
    """
    Parse a model response into candidate records.

    Args:
        raw_text: Raw text returned by a provider
        source_tag: Provider/model identifier stamped on every record
        notes: Optional list that receives one diagnostic line per skipped element

    Returns:
        The well-formed records, in response order. May be empty.

    Raises:
        AcquisitionError: MALFORMED_RESPONSE when no array can be located or
            decoded, NO_CANDIDATES when the array is empty or not a list
    """
    data = extract_array(raw_text)
    if not isinstance(data, list) or not data:
        logger.warning(f"Model returned an empty or invalid word list: {truncate(data)}")
        raise AcquisitionError(ErrorKind.NO_CANDIDATES, "Model returned an empty word list", raw_text=raw_text)

    records = []
    for index, obj in enumerate(data):
        record = normalize_record(obj, source_tag)
        if record is None:
            note = f"element {index} skipped: missing word or definition ({truncate(obj, 120)})"
            logger.warning(f"Word object lacks required fields, skipping: {truncate(obj, 120)}")
            if notes is not None:
                notes.append(note)
            continue
        records.append(record)

    logger.info(f"Parsed {len(records)}/{len(data)} records from {safe_text(source_tag)}")
    return records
