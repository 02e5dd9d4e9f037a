"""Artifact API Routes

Serves the compiled artifacts (catalog, search index, module documents)
from the configured output root, the same layout the runtime fetches.
"""
from pathlib import Path

from fastapi import APIRouter
from fastapi.responses import FileResponse

from core.config import settings
from core.errors import invalid_format, not_found, raise_error
from core.logging import api_logger
from ingest.artifacts import MANIFEST_FILE, MODULES_DIR, SEARCH_INDEX_FILE, module_filename

log = api_logger()


router = APIRouter()


def artifacts_root() -> Path:
    return Path(settings.ARTIFACTS_DIR)


def _serve(path: Path, entity: str, entity_id: str | None = None) -> FileResponse:
    if not path.is_file():
        log.info("artifact_missing", path=str(path))
        raise_error(not_found(entity, entity_id, origin="artifact_api").error)
    return FileResponse(path, media_type="application/json")


@router.get("/" + MANIFEST_FILE)
async def get_manifest():
    """Catalog of module summaries."""
    return _serve(artifacts_root() / MANIFEST_FILE, "Manifest")


@router.get("/" + SEARCH_INDEX_FILE)
async def get_search_index():
    return _serve(artifacts_root() / SEARCH_INDEX_FILE, "Search index")


@router.get("/" + MODULES_DIR + "/{module_id}.json")
async def get_module(module_id: str):
    """Compiled document for one module."""
    if not module_id or module_id.startswith(".") or "/" in module_id or "\\" in module_id:
        raise_error(invalid_format("module_id", "a file-safe module id", module_id, origin="artifact_api").error)
    return _serve(artifacts_root() / MODULES_DIR / module_filename(module_id), "Module", module_id)
