"""Module Compiler

Validates raw phrase-module definitions and builds the static artifacts
consumed at study time:
1. Catalog of module summaries (input-encounter order)
2. Search index of dictionary form -> phrase locations
3. One compiled document per module

Each unit is compiled independently into a Result. A unit that fails to
parse or validate is logged and skipped; the batch always runs to the end.
Nothing is written until the whole pass has finished.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

import yaml
from pydantic import ValidationError as SchemaValidationError

from core.errors import (
    AppError,
    Err,
    ErrorCode,
    Ok,
    Result,
    constraint_violation,
    invalid_format,
    invalid_yaml,
    required_field,
    resource_error,
    validation_error,
)
from core.logging import compiler_logger
from ingest.artifacts import ArtifactWriter
from ingest.catalog import CatalogBuilder
from ingest.index import SearchIndexBuilder
from models.phrasebook import CatalogEntry, Module, SearchIndex

log = compiler_logger()

RAW_SUFFIXES = (".yaml", ".yml")


@dataclass
class CompileStats:
    """Statistics for a compile run."""
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: datetime | None = None
    units_processed: int = 0
    units_compiled: int = 0
    units_skipped: int = 0
    locations_indexed: int = 0
    errors: list[AppError] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "units_processed": self.units_processed,
            "units_compiled": self.units_compiled,
            "units_skipped": self.units_skipped,
            "locations_indexed": self.locations_indexed,
            "error_count": len(self.errors),
        }


@dataclass(frozen=True, slots=True)
class CompiledModule:
    """A validated unit: the typed model plus the authored document."""
    source: str
    module: Module
    document: dict


@dataclass
class CompiledArtifacts:
    """Everything one compile pass produces, held in memory until written."""
    catalog: list[CatalogEntry]
    search_index: SearchIndex
    modules: dict[str, dict]

    def catalog_document(self) -> list[dict]:
        return [entry.to_document() for entry in self.catalog]

    def index_document(self) -> dict:
        return self.search_index.to_document()


@dataclass
class CompileResult:
    artifacts: CompiledArtifacts
    stats: CompileStats

    @property
    def errors(self) -> list[AppError]:
        return self.stats.errors


def _schema_error(source: str, exc: SchemaValidationError) -> Err[AppError]:
    details = [
        {"loc": ".".join(str(part) for part in item["loc"]), "msg": item["msg"]}
        for item in exc.errors()
    ]
    first = details[0] if details else {"loc": "", "msg": str(exc)}
    return validation_error(
        f"Invalid module definition in {source}: {first['loc']}: {first['msg']}",
        source=source,
        origin="compiler",
        details=details,
    )


class ModuleCompiler:
    """Partial-failure-tolerant batch compiler for raw module definitions."""

    __slots__ = ()

    def read_unit(self, path: Path) -> Result[Any, AppError]:
        """Read and parse one raw definition file."""
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            return resource_error(
                f"Cannot read {path.name}: {e}",
                code=ErrorCode.E6002_FILE_READ_ERROR,
                path=str(path),
                origin="compiler",
                cause=e,
            )
        try:
            return Ok(yaml.safe_load(text))
        except yaml.YAMLError as e:
            return invalid_yaml(str(e), source=path.name, origin="compiler")

    def compile_unit(self, source: str, raw: Any) -> Result[CompiledModule, AppError]:
        """Validate one parsed definition."""
        if not isinstance(raw, dict):
            return invalid_format(
                "module", "a mapping", got=type(raw).__name__, source=source, origin="compiler"
            )
        if not raw.get("id"):
            return required_field("id", source=source, origin="compiler")
        module_id = str(raw["id"])
        if module_id.startswith(".") or any(sep in module_id for sep in ("/", "\\")):
            return invalid_format(
                "id", "a plain file-safe name", got=module_id, source=source, origin="compiler"
            )
        try:
            module = Module.model_validate(raw)
        except SchemaValidationError as e:
            return _schema_error(source, e)
        return Ok(CompiledModule(source=source, module=module, document=raw))

    def compile(self, units: Iterable[tuple[str, Result[Any, AppError] | Any]]) -> CompileResult:
        """Compile (source, raw) pairs. Raw values may be pre-wrapped Results."""
        stats = CompileStats()
        catalog = CatalogBuilder()
        index = SearchIndexBuilder()
        modules: dict[str, dict] = {}

        for source, raw in units:
            stats.units_processed += 1
            loaded = raw if isinstance(raw, (Ok, Err)) else Ok(raw)
            result = loaded.flat_map(lambda data, source=source: self.compile_unit(source, data))

            match result:
                case Ok(compiled) if compiled.module.id in modules:
                    self._skip(stats, source, constraint_violation(
                        f"Duplicate module id '{compiled.module.id}' in {source}",
                        source=source,
                        origin="compiler",
                        module_id=compiled.module.id,
                    ).error)
                case Ok(compiled):
                    module = compiled.module
                    catalog.add(module)
                    stats.locations_indexed += index.add_module(module)
                    modules[module.id] = compiled.document
                    stats.units_compiled += 1
                    log.info("module_compiled", module_id=module.id, source=source, phrases=module.phrase_count)
                case Err(error):
                    self._skip(stats, source, error)

        stats.completed_at = datetime.now(timezone.utc)
        artifacts = CompiledArtifacts(
            catalog=catalog.build(),
            search_index=index.build(),
            modules=modules,
        )
        log.info(
            "compile_completed",
            duplicate_locations=index.duplicates_skipped,
            **stats.to_dict(),
        )
        return CompileResult(artifacts=artifacts, stats=stats)

    def compile_directory(self, raw_dir: Path | str) -> CompileResult:
        """Compile every raw definition file in a directory, in filename order."""
        raw_dir = Path(raw_dir)
        log.info("compile_started", raw_dir=str(raw_dir))
        if raw_dir.is_dir():
            paths = sorted(
                p for p in raw_dir.iterdir()
                if p.is_file() and p.suffix.lower() in RAW_SUFFIXES
            )
        else:
            log.warning("raw_dir_missing", raw_dir=str(raw_dir))
            paths = []
        return self.compile((path.name, self.read_unit(path)) for path in paths)

    def run(self, raw_dir: Path | str, output_root: Path | str) -> CompileResult:
        """Compile a directory and write all artifacts in one step.

        Raises TransportError when the artifacts cannot be written; the
        previous artifact set is left untouched in that case.
        """
        result = self.compile_directory(raw_dir)
        ArtifactWriter(output_root).write(result.artifacts)
        return result

    @staticmethod
    def _skip(stats: CompileStats, source: str, error: AppError) -> None:
        stats.units_skipped += 1
        stats.errors.append(error)
        log.warning(
            "module_skipped",
            source=source,
            error_code=error.code.name,
            message=error.message,
        )
