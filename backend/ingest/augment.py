"""Raw Module Augmentation

Producers of compiler input:
- add a derived full-text field to every phrase
- wrap a legacy phrase database into a module definition

Derived fields are replaced or inserted by key on the parsed document,
so re-running an augmentation leaves the file unchanged.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from core.logging import compiler_logger
from models.phrasebook import Block, join_surfaces

log = compiler_logger()

DERIVED_TEXT_FIELD = "korean"


def _phrase_text(phrase: dict) -> str:
    blocks = [
        Block.model_construct(surface=str(raw.get("surface", "")), space_after=bool(raw.get("space_after")))
        for raw in phrase.get("blocks") or []
        if isinstance(raw, dict)
    ]
    return join_surfaces(blocks)


def _with_field_after_id(phrase: dict, field: str, value: Any) -> dict:
    """Copy of phrase with field placed right after id (or first when id is absent)."""
    rest = [(k, v) for k, v in phrase.items() if k != field]
    if "id" not in phrase:
        return dict([(field, value), *rest])
    result: dict = {}
    for key, val in rest:
        result[key] = val
        if key == "id":
            result[field] = value
    return result


def add_derived_text_field(module: dict, field: str = DERIVED_TEXT_FIELD) -> tuple[dict, int]:
    """Set phrase[field] to the joined block text for every phrase that has any.

    Returns the updated document and the number of phrases whose field
    was added or changed.
    """
    if "phrases" not in module:
        return dict(module), 0
    changed = 0
    phrases = []
    for phrase in module["phrases"] or []:
        text = _phrase_text(phrase) if isinstance(phrase, dict) else ""
        if not text:
            phrases.append(phrase)
            continue
        updated = _with_field_after_id(phrase, field, text)
        if updated != phrase or list(updated) != list(phrase):
            changed += 1
        phrases.append(updated)
    return {**module, "phrases": phrases}, changed


def dump_yaml(document: Any) -> str:
    return yaml.safe_dump(document, allow_unicode=True, sort_keys=False, indent=2, width=float("inf"))


def augment_file(path: Path | str, field: str = DERIVED_TEXT_FIELD) -> bool:
    """Augment a raw module file in place. Returns True when it was rewritten."""
    path = Path(path)
    document = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(document, dict):
        log.warning("augment_skipped", file=path.name, reason="not a mapping")
        return False
    updated, changed = add_derived_text_field(document, field)
    if not changed:
        log.info("augment_unchanged", file=path.name, field=field)
        return False
    path.write_text(dump_yaml(updated), encoding="utf-8")
    log.info("augment_written", file=path.name, field=field, phrases_changed=changed)
    return True


def migrate_legacy_database(
    database: dict,
    module_id: str = "basics",
    title: str = "Basic Phrases",
    theme: str = "General",
    difficulty: str = "Beginner",
) -> dict:
    """Wrap a legacy {"phrases": [...]} database as a module definition."""
    return {
        "id": module_id,
        "title": title,
        "theme": theme,
        "difficulty": difficulty,
        "phrases": list(database.get("phrases") or []),
    }
