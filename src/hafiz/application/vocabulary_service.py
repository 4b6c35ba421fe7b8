"""Loading vocabulary items from YAML or JSON files into the record store."""

import logging
from pathlib import Path
from typing import Any

import yaml  # type: ignore

from hafiz.domain.constants import BEGINNER_MAX_RANK, INTERMEDIATE_MAX_RANK
from hafiz.domain.errors import ValidationError
from hafiz.domain.models import DIFFICULTIES, VocabularyItem
from hafiz.domain.ports import RecordStore

logger = logging.getLogger(__name__)


def difficulty_for_rank(rank: int) -> str:
    """Lower ids are more frequent words, so they are easier."""
    if rank <= BEGINNER_MAX_RANK:
        return "beginner"
    if rank <= INTERMEDIATE_MAX_RANK:
        return "intermediate"
    return "advanced"


def _as_str_list(value: Any, field: str, index: int) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ValidationError(f"Entry #{index}: '{field}' must be a list")
    return [str(v) for v in value]


def parse_entry(raw: Any, index: int) -> VocabularyItem:
    """
    Build a VocabularyItem from one decoded entry.

    Raises:
        ValidationError naming the entry (1-based) when required fields are missing.
    """
    if not isinstance(raw, dict):
        raise ValidationError(f"Entry #{index}: expected a mapping, got {type(raw).__name__}")

    try:
        item_id = int(raw["id"])
    except KeyError as e:
        raise ValidationError(f"Entry #{index}: missing 'id'") from e
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Entry #{index}: 'id' must be an integer") from e

    word = raw.get("word")
    if not word:
        raise ValidationError(f"Entry #{index} (id {item_id}): missing 'word'")

    difficulty = raw.get("difficulty") or difficulty_for_rank(item_id)
    if difficulty not in DIFFICULTIES:
        raise ValidationError(
            f"Entry #{index} (id {item_id}): difficulty must be one of "
            f"{', '.join(DIFFICULTIES)}, got {difficulty!r}"
        )

    return VocabularyItem(
        id=item_id,
        word=str(word),
        transliteration=str(raw.get("transliteration") or ""),
        translation=str(raw.get("translation") or ""),
        difficulty=difficulty,
        tags=_as_str_list(raw.get("tags"), "tags", index),
        examples=_as_str_list(raw.get("examples"), "examples", index),
        etymology=raw.get("etymology"),
        audio_url=raw.get("audio_url") or raw.get("audioUrl"),
    )


def load_vocabulary_file(path: Path) -> list[VocabularyItem]:
    """
    Read vocabulary from a YAML or JSON file.

    The document is either a list of entries or a mapping with an 'items' list.
    JSON is parsed by the same YAML loader.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ValidationError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        where = f" at line {mark.line + 1}" if mark is not None else ""
        raise ValidationError(f"Invalid vocabulary file {path.name}{where}: {e}") from e

    if isinstance(data, dict):
        data = data.get("items")
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValidationError(f"{path.name}: expected a list of vocabulary entries")

    items = [parse_entry(raw, i) for i, raw in enumerate(data, start=1)]

    seen: set[int] = set()
    for item in items:
        if item.id in seen:
            raise ValidationError(f"{path.name}: duplicate id {item.id}")
        seen.add(item.id)

    return items


async def import_vocabulary(
    store: RecordStore, path: Path, limit: int | None = None
) -> int:
    """
    Load a vocabulary file and upsert its items into the store.

    Returns the number of items written.
    """
    items = load_vocabulary_file(path)
    if limit is not None:
        items = items[:limit]
    if not items:
        logger.info(f"No vocabulary entries in {path}")
        return 0

    written = await store.add_vocabulary_items(items)
    logger.info(f"Loaded {written} vocabulary items from {path}")
    return written
