"""Tests for CLI commands: import, review, due, stats, history, words, export, reset-today, config."""

import asyncio
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from typer.testing import CliRunner

from hafiz.domain.models import ReviewState
from hafiz.infrastructure.adapters.sqlite_store import SqliteRecordStore
from hafiz.interface.cli import app

runner = CliRunner()

VOCAB = """\
- {id: 1, word: "الله", transliteration: allah, translation: God, tags: [quranic]}
- {id: 2, word: "رب", transliteration: rabb, translation: Lord, tags: [quranic]}
- {id: 450, word: "كتاب", transliteration: kitab, translation: book}
"""


@pytest.fixture
def db(tmp_path):
    return str(tmp_path / "hafiz.db")


@pytest.fixture
def seeded(db, tmp_path):
    vocab = tmp_path / "words.yaml"
    vocab.write_text(VOCAB, encoding="utf-8")
    result = runner.invoke(app, ["--db", db, "import", str(vocab)])
    assert result.exit_code == 0, result.output
    return db


def invoke(db, *args):
    return runner.invoke(app, ["--db", db, *args])


# --- Help ---


def test_cli_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "spaced-repetition" in result.stdout
    for command in ("import", "review", "due", "stats", "history", "export"):
        assert command in result.stdout


# --- Import ---


def test_import_reports_count(db, tmp_path):
    vocab = tmp_path / "words.yaml"
    vocab.write_text(VOCAB, encoding="utf-8")
    result = invoke(db, "import", str(vocab), "--limit", "2")
    assert result.exit_code == 0
    assert "Imported 2 vocabulary items." in result.stdout


def test_import_invalid_file_exits_1(db, tmp_path):
    vocab = tmp_path / "bad.yaml"
    vocab.write_text("- {word: missing id}\n", encoding="utf-8")
    result = invoke(db, "import", str(vocab))
    assert result.exit_code == 1
    assert "missing 'id'" in result.output


# --- Review ---


def test_review_with_quality(seeded):
    result = invoke(seeded, "review", "1", "--quality", "5")
    assert result.exit_code == 0
    assert "Next review in 3 day(s)" in result.stdout
    assert "ease 2.50" in result.stdout


def test_review_with_plain_outcome(seeded):
    result = invoke(seeded, "review", "2", "--incorrect")
    assert result.exit_code == 0
    assert "ease 2.30" in result.stdout
    assert "(0 correct / 1 incorrect)" in result.stdout

    result = invoke(seeded, "review", "2", "--correct")
    assert "(1 correct / 1 incorrect)" in result.stdout


@pytest.mark.parametrize("args", [[], ["--quality", "4", "--correct"]])
def test_review_needs_exactly_one_mode(seeded, args):
    result = invoke(seeded, "review", "1", *args)
    assert result.exit_code == 2


def test_review_unknown_item_exits_1(seeded):
    result = invoke(seeded, "review", "999", "-q", "4")
    assert result.exit_code == 1
    assert "Unknown vocabulary item" in result.output


# --- Due ---


def test_due_empty(seeded):
    result = invoke(seeded, "due")
    assert result.exit_code == 0
    assert "Nothing due" in result.stdout


def test_due_json_empty_until_retry_window(seeded):
    # A failed plain answer is due again in an hour, so nothing is due right away.
    invoke(seeded, "review", "1", "--incorrect")
    result = invoke(seeded, "due", "--json")
    assert result.exit_code == 0
    assert json.loads(result.stdout) == []


def test_due_shows_total_and_respects_limit(seeded):
    async def make_due():
        past = datetime.now(timezone.utc) - timedelta(days=1)
        with SqliteRecordStore(Path(seeded)) as store:
            for word_id in (1, 2):
                await store.put_review_state(
                    ReviewState(
                        word_id=word_id,
                        correct_count=1,
                        last_reviewed=past - timedelta(days=2),
                        next_review=past,
                    )
                )

    asyncio.run(make_due())

    result = invoke(seeded, "due", "--limit", "1")
    assert result.exit_code == 0
    assert "2 due, showing 1:" in result.stdout
    assert "[1]" in result.stdout
    assert "[2]" not in result.stdout


# --- Stats and history ---


def test_stats_json(seeded):
    invoke(seeded, "review", "1", "-q", "5")
    invoke(seeded, "review", "2", "--incorrect")

    result = invoke(seeded, "stats", "--json")
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["totalWords"] == 3
    assert data["reviewsToday"] == 2
    assert data["reviewsTotal"] == 2
    assert data["correctAnswers"] == 1
    assert data["incorrectAnswers"] == 1
    assert data["streak"] == 1
    assert data["accuracy"] == 50


def test_stats_text(seeded):
    result = invoke(seeded, "stats")
    assert result.exit_code == 0
    assert "Words learned:  0/3" in result.stdout
    assert "Accuracy:       0%" in result.stdout


def test_history(seeded):
    result = invoke(seeded, "history")
    assert "No reviews recorded yet." in result.stdout

    invoke(seeded, "review", "1", "--correct")
    result = invoke(seeded, "history", "--json", "--days", "3")
    entries = json.loads(result.stdout)
    assert len(entries) == 1
    assert entries[0]["reviewCount"] == 1
    assert entries[0]["correctCount"] == 1


# --- Words ---


def test_words_filters(seeded):
    result = invoke(seeded, "words", "--difficulty", "intermediate")
    assert result.exit_code == 0
    assert "[450]" in result.stdout
    assert "[1]" not in result.stdout

    result = invoke(seeded, "words", "--tag", "quranic")
    assert "[1]" in result.stdout
    assert "[2]" in result.stdout
    assert "[450]" not in result.stdout


def test_words_rejects_unknown_difficulty(seeded):
    result = invoke(seeded, "words", "--difficulty", "expert")
    assert result.exit_code == 2


# --- Export and reset ---


def test_export_to_file(seeded, tmp_path):
    invoke(seeded, "review", "1", "-q", "4")
    out = tmp_path / "export.json"
    result = invoke(seeded, "export", "-o", str(out))
    assert result.exit_code == 0
    assert "Exported 1 review states" in result.stdout

    data = json.loads(out.read_text(encoding="utf-8"))
    assert set(data) == {"exportDate", "progress", "stats", "progressHistory"}
    assert data["progress"][0]["wordId"] == 1


def test_reset_today(seeded):
    invoke(seeded, "review", "1", "--correct")
    result = invoke(seeded, "reset-today")
    assert result.exit_code == 0

    data = json.loads(invoke(seeded, "stats", "--json").stdout)
    assert data["reviewsToday"] == 0
    assert data["reviewsTotal"] == 1


# --- Config ---


def test_config_show_reflects_overrides(db):
    result = runner.invoke(app, ["--db", db, "--backend", "memory", "config", "show"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["backend"] == "memory"
    assert data["db_path"].endswith("hafiz.db")
