"""Search Index Builder

Maps dictionary forms to the phrases that use them. Locations are
phrase-granular: two blocks of one phrase sharing a dictionary form
collapse to a single location, since cross-referencing navigates to
phrases rather than individual words.
"""
from models.phrasebook import Location, Module, SearchIndex


class SearchIndexBuilder:
    """Accumulates dictionary-form locations across modules."""

    __slots__ = ("_index", "duplicates_skipped")

    def __init__(self):
        self._index = SearchIndex()
        self.duplicates_skipped = 0

    def add_module(self, module: Module) -> int:
        """Index every block carrying a dictionary form. Returns locations added."""
        added = 0
        for phrase in module.phrases:
            location = Location(module_id=module.id, phrase_id=phrase.id)
            for block in phrase.blocks:
                if not block.dictionary:
                    continue
                if self._index.add(block.dictionary, location):
                    added += 1
                else:
                    self.duplicates_skipped += 1
        return added

    def build(self) -> SearchIndex:
        return self._index
