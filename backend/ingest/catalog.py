"""Catalog Builder

Aggregates per-module summaries in input-encounter order.
"""
from models.phrasebook import CatalogEntry, Module


class CatalogBuilder:
    """Collects one CatalogEntry per compiled module."""

    __slots__ = ("_entries",)

    def __init__(self):
        self._entries: list[CatalogEntry] = []

    def add(self, module: Module) -> CatalogEntry:
        entry = CatalogEntry.from_module(module)
        self._entries.append(entry)
        return entry

    def build(self) -> list[CatalogEntry]:
        return list(self._entries)

    def to_document(self) -> list[dict]:
        return [entry.to_document() for entry in self._entries]

    def __len__(self) -> int:
        return len(self._entries)
