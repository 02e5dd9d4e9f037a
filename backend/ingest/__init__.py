"""Module Compilation Package

Turns authored YAML phrase modules into static artifacts:
- Catalog of module summaries (manifest.json)
- Dictionary-form search index (search_index.json)
- One compiled document per module (modules/<id>.json)
"""
from ingest.catalog import CatalogBuilder
from ingest.index import SearchIndexBuilder
from ingest.artifacts import ArtifactWriter, MANIFEST_FILE, SEARCH_INDEX_FILE, MODULES_DIR
from ingest.compiler import ModuleCompiler, CompileStats, CompiledArtifacts, CompileResult
from ingest.augment import add_derived_text_field, augment_file, migrate_legacy_database

__all__ = [
    "CatalogBuilder", "SearchIndexBuilder",
    "ArtifactWriter", "MANIFEST_FILE", "SEARCH_INDEX_FILE", "MODULES_DIR",
    "ModuleCompiler", "CompileStats", "CompiledArtifacts", "CompileResult",
    "add_derived_text_field", "augment_file", "migrate_legacy_database",
]
