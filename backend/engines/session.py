"""Session Store

Holds the study-time state: loaded catalog and search index, the active
module, pagination and the selected phrase. Only the operations here
mutate that state; a failed operation leaves the previous state intact.
"""
from __future__ import annotations

import asyncio
import math

from core.config import settings
from core.errors import (
    invalid_selection,
    no_active_module,
    not_found,
    page_out_of_range,
    malformed_body,
    raise_error,
)
from core.logging import session_logger
from engines.artifacts import ArtifactSource, module_resource
from models.phrasebook import CatalogEntry, Module, Phrase, SearchIndex

log = session_logger()


class SessionStore:
    """Single-writer store for one study session."""

    __slots__ = ("_source", "page_size", "_catalog", "_search_index", "_module", "_page", "_selected_phrase_id")

    def __init__(self, source: ArtifactSource, page_size: int | None = None):
        page_size = settings.PAGE_SIZE if page_size is None else page_size
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self._source = source
        self.page_size = page_size
        self._catalog: list[CatalogEntry] = []
        self._search_index = SearchIndex()
        self._module: Module | None = None
        self._page: int | None = None
        self._selected_phrase_id: str | None = None

    # === Read-only state ===

    @property
    def catalog(self) -> list[CatalogEntry]:
        return list(self._catalog)

    @property
    def search_index(self) -> SearchIndex:
        return self._search_index

    @property
    def module(self) -> Module | None:
        return self._module

    @property
    def page(self) -> int | None:
        """Current 1-based page, or None when there is no valid page."""
        return self._page

    @property
    def selected_phrase_id(self) -> str | None:
        return self._selected_phrase_id

    @property
    def selected_phrase(self) -> Phrase | None:
        if self._module is None or self._selected_phrase_id is None:
            return None
        return self._module.phrase(self._selected_phrase_id)

    @property
    def total_pages(self) -> int:
        if self._module is None:
            return 0
        return math.ceil(self._module.phrase_count / self.page_size)

    @property
    def is_last_page(self) -> bool:
        return self._page is not None and self._page >= self.total_pages

    @property
    def current_phrases(self) -> list[Phrase]:
        if self._module is None or self._page is None:
            return []
        start = (self._page - 1) * self.page_size
        return self._module.phrases[start:start + self.page_size]

    def catalog_entry(self, module_id: str) -> CatalogEntry | None:
        return next((entry for entry in self._catalog if entry.id == module_id), None)

    def phrase(self, phrase_id: str) -> Phrase | None:
        return self._module.phrase(phrase_id) if self._module else None

    def can_set_page(self, page: int) -> bool:
        return self._module is not None and 1 <= page <= self.total_pages

    # === Operations ===

    async def open(self) -> None:
        """Load catalog and search index together; both or neither are replaced."""
        try:
            async with asyncio.TaskGroup() as group:
                catalog_task = group.create_task(self._source.fetch_catalog())
                index_task = group.create_task(self._source.fetch_search_index())
        except ExceptionGroup as failures:
            # the sibling fetch is cancelled by now; surface the first failure as is
            raise failures.exceptions[0]
        catalog, search_index = catalog_task.result(), index_task.result()
        self._catalog = catalog
        self._search_index = search_index
        log.info("session_opened", modules=len(catalog), index_forms=len(search_index))

    async def load_module(self, module_id: str) -> Module:
        if self.catalog_entry(module_id) is None:
            raise_error(not_found("Module", module_id, origin="session_store").error)

        module = await self._source.fetch_module(module_id)
        if module.id != module_id:
            raise_error(malformed_body(
                module_resource(module_id), f"document id is '{module.id}'", origin="session_store"
            ).error)

        self._module = module
        self._page = 1 if module.phrases else None
        self._selected_phrase_id = module.phrases[0].id if module.phrases else None
        log.info("module_loaded", module_id=module_id, phrases=module.phrase_count, pages=self.total_pages)
        return module

    def set_page(self, page: int) -> None:
        if self._module is None:
            raise_error(no_active_module("set_page", origin="session_store").error)
        if not self.can_set_page(page):
            raise_error(page_out_of_range(page, self.total_pages, origin="session_store").error)
        self._page = page
        self._selected_phrase_id = self.current_phrases[0].id
        log.debug("page_changed", module_id=self._module.id, page=page)

    def select_phrase(self, phrase_id: str) -> Phrase:
        if self._module is None:
            raise_error(no_active_module("select_phrase", origin="session_store").error)
        phrase = self._module.phrase(phrase_id)
        if phrase is None:
            raise_error(invalid_selection(phrase_id, self._module.id, origin="session_store").error)
        self._selected_phrase_id = phrase_id
        return phrase

    def close_module(self) -> None:
        """Leave the active module and return to the catalog."""
        if self._module is not None:
            log.info("module_closed", module_id=self._module.id)
        self._module = None
        self._page = None
        self._selected_phrase_id = None
