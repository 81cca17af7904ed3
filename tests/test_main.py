import json
import os
from unittest.mock import patch

import pytest

from wordbank.__main__ import main
from wordbank.database import WordDatabase
from wordbank.models import SessionReport, StopReason


@pytest.fixture
def clean_env(tmp_path):
    env = {"LOG_DIR": str(tmp_path / "logs")}
    with patch.dict(os.environ, env, clear=True):
        yield tmp_path


def run(tmp_path, *argv):
    return main(["--env", str(tmp_path / "missing.env"), *argv])


@pytest.mark.unit
def test_seed_then_stats(clean_env, capsys):
    db_path = str(clean_env / "cli.sqlite")
    seed = clean_env / "seed.json"
    seed.write_text(json.dumps([{"kelime": "ufuk", "tanim": "Gök ile yerin birleştiği çizgi"}]), encoding="utf-8")

    assert run(clean_env, "--db", db_path, "seed", str(seed)) == 0
    assert run(clean_env, "--db", db_path, "stats") == 0
    assert capsys.readouterr().out.strip().endswith("1")


@pytest.mark.unit
def test_seed_with_bad_file_returns_error(clean_env):
    bad = clean_env / "bad.json"
    bad.write_text("{}", encoding="utf-8")
    assert run(clean_env, "--db", str(clean_env / "cli.sqlite"), "seed", str(bad)) == 1


@pytest.mark.unit
def test_fill_without_providers_is_a_configuration_error(clean_env):
    assert run(clean_env, "--db", str(clean_env / "cli.sqlite"), "fill") == 1


@pytest.mark.unit
@pytest.mark.parametrize("reason,code", [
    (StopReason.TARGET_REACHED, 0),
    (StopReason.ATTEMPTS_EXHAUSTED, 0),
    (StopReason.FAILURE_CEILING, 1),
    (StopReason.AUTH_FAILURE, 1),
])
def test_fill_exit_code_follows_stop_reason(clean_env, reason, code):
    os.environ["OLLAMA_MODEL_NAME"] = "gemma-test"
    report = SessionReport(target=3, stop_reason=reason)
    with patch("wordbank.session.WordBankApp.populate", return_value=report) as populate:
        assert run(clean_env, "--db", str(clean_env / "cli.sqlite"), "fill", "--target", "3") == code
    populate.assert_called_once_with(3)
    with WordDatabase(str(clean_env / "cli.sqlite")) as db:
        assert db.count() == 0
