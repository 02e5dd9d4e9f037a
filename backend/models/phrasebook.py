"""Phrasebook Schema

Canonical shapes for authored content (Module -> Phrase -> Block) and the
derived artifacts the compiler emits (CatalogEntry, Location, SearchIndex).

Raw definitions keep any extra keys (extra="allow") so compiled documents
stay structural copies of the authored YAML.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from core.config import settings

FALLBACK_LANGUAGE = "ja"

DEFAULT_THEME = "Uncategorized"
DEFAULT_DIFFICULTY = "Unknown"


class WordType(str, Enum):
    """Closed set of block word types."""
    VERB = "verb"
    NOUN = "noun"
    ADJECTIVE = "adjective"
    ADVERB = "adverb"
    PRONOUN = "pronoun"
    PARTICLE = "particle"
    INTERJECTION = "interjection"
    COUNTER = "counter"
    DETERMINER = "determiner"
    CONJUNCTION = "conjunction"
    COPULA = "copula"

    @property
    def style(self) -> WordTypeStyle:
        return WORD_TYPE_GUIDE[self]

    @property
    def color(self) -> str:
        return self.style.color

    def label(self, lang: str | None = None) -> str:
        style = self.style
        lang = lang or settings.DISPLAY_LANGUAGE
        return style.label_ja if lang == "ja" else style.label_en


@dataclass(frozen=True, slots=True)
class WordTypeStyle:
    """Legend entry for one word type."""
    label_ja: str
    label_en: str
    color: str


WORD_TYPE_GUIDE: dict[WordType, WordTypeStyle] = {
    WordType.VERB: WordTypeStyle("動詞 (Verb)", "Verb", "var(--color-verb)"),
    WordType.NOUN: WordTypeStyle("名詞 (Noun)", "Noun", "var(--color-noun)"),
    WordType.ADJECTIVE: WordTypeStyle("形容詞 (Adjective)", "Adjective", "var(--color-adjective)"),
    WordType.ADVERB: WordTypeStyle("副詞 (Adverb)", "Adverb", "var(--color-adverb)"),
    WordType.PRONOUN: WordTypeStyle("代名詞 (Pronoun)", "Pronoun", "var(--color-pronoun)"),
    WordType.PARTICLE: WordTypeStyle("助詞 (Particle)", "Particle", "var(--color-particle)"),
    WordType.INTERJECTION: WordTypeStyle("感嘆詞 (Interjection)", "Interjection", "var(--color-interjection)"),
    WordType.COUNTER: WordTypeStyle("助数詞 (Counter)", "Counter", "var(--color-counter)"),
    WordType.DETERMINER: WordTypeStyle("限定詞 (Determiner)", "Determiner", "var(--color-determiner)"),
    WordType.CONJUNCTION: WordTypeStyle("接続詞 (Conjunction)", "Conjunction", "var(--color-conjunction)"),
    WordType.COPULA: WordTypeStyle("繫辞 (Copula)", "Copula", "var(--color-copula)"),
}


def word_type_guide(lang: str | None = None) -> list[dict[str, str]]:
    """Ordered legend of word types for display, in the configured language by default."""
    return [
        {"type": word_type.value, "label": word_type.label(lang), "color": word_type.color}
        for word_type in WordType
    ]


_DIFFICULTY_COLORS = {
    "beginner": "#34d399",
    "intermediate": "#fbbf24",
    "advanced": "#f87171",
}


def difficulty_color(difficulty: str | None) -> str:
    return _DIFFICULTY_COLORS.get((difficulty or "").lower(), "var(--text-muted)")


def _localized(values: dict[str, str] | None, lang: str | None) -> str | None:
    if not values:
        return None
    lang = lang or settings.DISPLAY_LANGUAGE
    return values.get(lang) or values.get(FALLBACK_LANGUAGE)


class Block(BaseModel):
    """One lexical token within a phrase."""
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str
    surface: str
    dictionary: str | None = None
    type: WordType | None = None
    space_after: bool = False
    meanings: dict[str, str] = Field(default_factory=dict)
    grammar_notes: dict[str, str] | None = None

    def meaning(self, lang: str | None = None) -> str:
        return _localized(self.meanings, lang) or ""

    def grammar_note(self, lang: str | None = None) -> str | None:
        if self.grammar_notes is None:
            return None
        return _localized(self.grammar_notes, lang) or ""


def join_surfaces(blocks: Iterable[Block]) -> str:
    """Full phrase text: surfaces in order, one space after each space_after block."""
    parts: list[str] = []
    for block in blocks:
        parts.append(block.surface)
        if block.space_after:
            parts.append(" ")
    return "".join(parts).rstrip()


class Phrase(BaseModel):
    """One sentence composed of ordered blocks."""
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str
    blocks: list[Block] = Field(default_factory=list)
    translations: dict[str, dict[str, str]] = Field(default_factory=dict)

    @field_validator("blocks", mode="before")
    @classmethod
    def _null_blocks(cls, value):
        return [] if value is None else value

    @model_validator(mode="after")
    def _unique_block_ids(self) -> Phrase:
        seen: set[str] = set()
        for block in self.blocks:
            if block.id in seen:
                raise ValueError(f"Duplicate block id '{block.id}' in phrase '{self.id}'")
            seen.add(block.id)
        return self

    @property
    def full_text(self) -> str:
        return join_surfaces(self.blocks)

    @property
    def dictionary_forms(self) -> list[str]:
        """Dictionary forms in block order, without repeats."""
        return list(dict.fromkeys(b.dictionary for b in self.blocks if b.dictionary))

    def translation(self, lang: str | None = None, mode: str | None = None) -> str:
        lang = lang or settings.DISPLAY_LANGUAGE
        mode = mode or settings.TRANSLATION_MODE
        by_lang = self.translations.get(lang) or {}
        text = by_lang.get(mode)
        if not text:
            text = (self.translations.get(FALLBACK_LANGUAGE) or {}).get(mode)
        return text or ""


class Module(BaseModel):
    """Themed collection of phrases compiled as one unit."""
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str = Field(min_length=1)
    title: str | None = None
    theme: str | None = None
    difficulty: str | None = None
    phrases: list[Phrase] = Field(default_factory=list)

    @field_validator("phrases", mode="before")
    @classmethod
    def _null_phrases(cls, value):
        return [] if value is None else value

    @model_validator(mode="after")
    def _unique_phrase_ids(self) -> Module:
        seen: set[str] = set()
        for phrase in self.phrases:
            if phrase.id in seen:
                raise ValueError(f"Duplicate phrase id '{phrase.id}' in module '{self.id}'")
            seen.add(phrase.id)
        return self

    @property
    def phrase_count(self) -> int:
        return len(self.phrases)

    def phrase(self, phrase_id: str) -> Phrase | None:
        return next((p for p in self.phrases if p.id == phrase_id), None)


class CatalogEntry(BaseModel):
    """Summary of one compiled module."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    theme: str = DEFAULT_THEME
    difficulty: str = DEFAULT_DIFFICULTY
    phrase_count: int = Field(default=0, alias="phraseCount")

    @classmethod
    def from_module(cls, module: Module) -> CatalogEntry:
        return cls(
            id=module.id,
            title=module.title or module.id,
            theme=module.theme or DEFAULT_THEME,
            difficulty=module.difficulty or DEFAULT_DIFFICULTY,
            phrase_count=module.phrase_count,
        )

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)


class Location(BaseModel):
    """Phrase-level position of a dictionary form."""
    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    module_id: str
    phrase_id: str


class SearchIndex:
    """Dictionary form -> ordered, pair-deduplicated locations."""

    __slots__ = ("_entries",)

    def __init__(self, entries: dict[str, list[Location]] | None = None):
        self._entries: dict[str, list[Location]] = {}
        for form, locations in (entries or {}).items():
            for location in locations:
                self.add(form, location)

    def add(self, form: str, location: Location) -> bool:
        """Record a location; returns False when the pair is already present."""
        locations = self._entries.setdefault(form, [])
        if location in locations:
            return False
        locations.append(location)
        return True

    def lookup(self, form: str) -> list[Location]:
        return list(self._entries.get(form, ()))

    def forms(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, form: object) -> bool:
        return form in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def to_document(self) -> dict[str, list[dict[str, str]]]:
        return {
            form: [location.model_dump() for location in locations]
            for form, locations in self._entries.items()
        }

    @classmethod
    def from_document(cls, document: dict) -> SearchIndex:
        if not isinstance(document, dict):
            raise TypeError("search index document must be an object")
        return cls({
            form: [Location.model_validate(item) for item in items]
            for form, items in document.items()
        })
