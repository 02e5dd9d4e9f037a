from models.phrasebook import (
    Block, Phrase, Module, WordType, WordTypeStyle, WORD_TYPE_GUIDE,
    CatalogEntry, Location, SearchIndex,
    join_surfaces, word_type_guide, difficulty_color,
)

__all__ = [
    "Block", "Phrase", "Module", "WordType", "WordTypeStyle", "WORD_TYPE_GUIDE",
    "CatalogEntry", "Location", "SearchIndex",
    "join_surfaces", "word_type_guide", "difficulty_color",
]
