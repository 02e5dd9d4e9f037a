"""Artifact Writer

Writes the catalog, search index and per-module documents under an
output root. The whole set is staged in a sibling directory and swapped
into place, so readers see either the previous set or the new one, and
module documents from earlier runs never linger.
"""
from __future__ import annotations

import json
import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from core.errors import raise_error, write_failed
from core.logging import compiler_logger

if TYPE_CHECKING:
    from ingest.compiler import CompiledArtifacts

log = compiler_logger()

MANIFEST_FILE = "manifest.json"
SEARCH_INDEX_FILE = "search_index.json"
MODULES_DIR = "modules"


def module_filename(module_id: str) -> str:
    return f"{module_id}.json"


def dump_json(data: Any) -> str:
    """Compact, key-order-preserving JSON; identical input gives identical bytes."""
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"), default=str)


class ArtifactWriter:
    """Writes one complete artifact set per call."""

    __slots__ = ("output_root",)

    def __init__(self, output_root: Path | str):
        self.output_root = Path(output_root)

    def write(self, artifacts: CompiledArtifacts) -> Path:
        root = self.output_root
        try:
            root.parent.mkdir(parents=True, exist_ok=True)
            staging = Path(tempfile.mkdtemp(prefix=f".{root.name}.staging-", dir=root.parent))
        except OSError as e:
            raise_error(write_failed(str(root), str(e), origin="artifact_writer", cause=e).error)

        try:
            self._write_tree(staging, artifacts)
            self._swap(staging, root)
        except OSError as e:
            shutil.rmtree(staging, ignore_errors=True)
            log.error("artifacts_write_failed", output_root=str(root), error=str(e))
            raise_error(write_failed(str(root), str(e), origin="artifact_writer", cause=e).error)

        log.info(
            "artifacts_written",
            output_root=str(root),
            modules=len(artifacts.modules),
            index_forms=len(artifacts.search_index),
        )
        return root

    @staticmethod
    def _write_tree(target: Path, artifacts: CompiledArtifacts) -> None:
        target.chmod(0o755)
        modules_dir = target / MODULES_DIR
        modules_dir.mkdir()
        for module_id, document in artifacts.modules.items():
            (modules_dir / module_filename(module_id)).write_text(dump_json(document), encoding="utf-8")
        (target / MANIFEST_FILE).write_text(dump_json(artifacts.catalog_document()), encoding="utf-8")
        (target / SEARCH_INDEX_FILE).write_text(dump_json(artifacts.index_document()), encoding="utf-8")

    @staticmethod
    def _swap(staging: Path, root: Path) -> None:
        if not root.exists():
            staging.rename(root)
            return
        backup = root.parent / f".{root.name}.previous-{uuid4().hex[:8]}"
        root.rename(backup)
        try:
            staging.rename(root)
        except OSError:
            backup.rename(root)
            raise
        shutil.rmtree(backup, ignore_errors=True)
