import json
import logging
from pathlib import Path
from typing import List, Union

from .database import WordDatabase
from .models import CandidateRecord
from .parser import normalize_record

logger = logging.getLogger(__name__)

SEED_SOURCE_TAG = "Manual-Seed"


def load_seed_file(path: Union[str, Path]) -> List[CandidateRecord]:
    """
    Read a JSON list of word objects (Turkish or English keys) into records.

    Elements without a word or definition are skipped with a warning.
    """
    path = Path(path)
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON list of word objects")

    records = []
    for index, obj in enumerate(data):
        source = SEED_SOURCE_TAG
        if isinstance(obj, dict):
            source = obj.get("source") or obj.get("kaynak") or SEED_SOURCE_TAG
        record = normalize_record(obj, source)
        if record is None:
            logger.warning(f"Seed entry {index} in {path.name} lacks a word or definition; skipping.")
            continue
        records.append(record)
    logger.info(f"Read {len(records)} seed words from {path}")
    return records


def seed_database(storage: WordDatabase, path: Union[str, Path]) -> int:
    """Bulk-insert a seed file in one transaction; returns the number of new rows."""
    records = load_seed_file(path)
    if not records:
        return 0
    return storage.bulk_insert(records)
