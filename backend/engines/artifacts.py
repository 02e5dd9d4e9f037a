"""Artifact Sources

Runtime fetch contract for the three compiled resources: catalog,
search index and per-module documents. Any failure (I/O, non-success
response, malformed body) surfaces as a TransportError naming the
resource that failed. Nothing is retried.
"""
from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Callable, Protocol, TypeVar
from urllib.parse import quote

import httpx
from pydantic import ValidationError as SchemaValidationError

from core.config import settings
from core.errors import fetch_failed, malformed_body, raise_error
from core.logging import session_logger
from ingest.artifacts import MANIFEST_FILE, MODULES_DIR, SEARCH_INDEX_FILE, module_filename
from models.phrasebook import CatalogEntry, Module, SearchIndex

log = session_logger()

T = TypeVar("T")

CATALOG_RESOURCE = "manifest"
INDEX_RESOURCE = "search index"


def module_resource(module_id: str) -> str:
    return f'module "{module_id}"'


class ArtifactSource(Protocol):
    async def fetch_catalog(self) -> list[CatalogEntry]:
        ...

    async def fetch_search_index(self) -> SearchIndex:
        ...

    async def fetch_module(self, module_id: str) -> Module:
        ...


def _parse_catalog(body: Any) -> list[CatalogEntry]:
    if not isinstance(body, list):
        raise TypeError("expected an array of catalog entries")
    return [CatalogEntry.model_validate(item) for item in body]


def _parse_module(body: Any) -> Module:
    return Module.model_validate(body)


def _parse(resource: str, parser: Callable[[Any], T], body: Any) -> T:
    try:
        return parser(body)
    except (SchemaValidationError, TypeError, ValueError) as e:
        log.warning("artifact_malformed", resource=resource, error=str(e))
        raise_error(malformed_body(resource, (str(e).splitlines() or [type(e).__name__])[0], origin="artifact_source", cause=e).error)


class FileArtifactSource:
    """Reads compiled artifacts from a local output root."""

    __slots__ = ("root",)

    def __init__(self, root: Path | str):
        self.root = Path(root)

    async def _read_json(self, path: Path, resource: str) -> Any:
        try:
            text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            log.warning("artifact_fetch_failed", resource=resource, path=str(path), error=str(e))
            raise_error(fetch_failed(resource, origin="artifact_source", cause=e, path=str(path)).error)
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise_error(malformed_body(resource, f"invalid JSON: {e.msg}", origin="artifact_source", cause=e).error)

    async def fetch_catalog(self) -> list[CatalogEntry]:
        body = await self._read_json(self.root / MANIFEST_FILE, CATALOG_RESOURCE)
        return _parse(CATALOG_RESOURCE, _parse_catalog, body)

    async def fetch_search_index(self) -> SearchIndex:
        body = await self._read_json(self.root / SEARCH_INDEX_FILE, INDEX_RESOURCE)
        return _parse(INDEX_RESOURCE, SearchIndex.from_document, body)

    async def fetch_module(self, module_id: str) -> Module:
        resource = module_resource(module_id)
        body = await self._read_json(self.root / MODULES_DIR / module_filename(module_id), resource)
        return _parse(resource, _parse_module, body)


class HttpArtifactSource:
    """Fetches compiled artifacts over HTTP with httpx."""

    __slots__ = ("_client",)

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        base_url = base_url or settings.ARTIFACTS_BASE_URL
        if timeout is None:
            timeout = settings.FETCH_TIMEOUT_SECONDS
        if not base_url.endswith("/"):
            base_url += "/"
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> HttpArtifactSource:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_json(self, url: str, resource: str) -> Any:
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            log.warning("artifact_fetch_failed", resource=resource, url=url, error=str(e))
            raise_error(fetch_failed(resource, origin="artifact_source", cause=e, url=url).error)
        if not response.is_success:
            log.warning("artifact_fetch_failed", resource=resource, url=url, status=response.status_code)
            raise_error(fetch_failed(resource, response.status_code, origin="artifact_source", url=url).error)
        try:
            return response.json()
        except ValueError as e:
            raise_error(malformed_body(resource, "invalid JSON", origin="artifact_source", cause=e).error)

    async def fetch_catalog(self) -> list[CatalogEntry]:
        body = await self._get_json(MANIFEST_FILE, CATALOG_RESOURCE)
        return _parse(CATALOG_RESOURCE, _parse_catalog, body)

    async def fetch_search_index(self) -> SearchIndex:
        body = await self._get_json(SEARCH_INDEX_FILE, INDEX_RESOURCE)
        return _parse(INDEX_RESOURCE, SearchIndex.from_document, body)

    async def fetch_module(self, module_id: str) -> Module:
        resource = module_resource(module_id)
        url = f"{MODULES_DIR}/{quote(module_filename(module_id))}"
        body = await self._get_json(url, resource)
        return _parse(resource, _parse_module, body)
