#!/usr/bin/env python3
"""Prepare raw phrase modules for compilation.

  --add-text         write each phrase's joined block text into a field
  --migrate FILE     wrap a legacy {"phrases": [...]} JSON database as a module

Run with: python3 -m scripts.augment_modules --add-text [--raw-dir DIR]
"""
import argparse
import json
import sys
from pathlib import Path

from core.config import settings
from core.logging import configure_logging, compiler_logger
from ingest.augment import DERIVED_TEXT_FIELD, augment_file, dump_yaml, migrate_legacy_database
from ingest.compiler import RAW_SUFFIXES

log = compiler_logger()


def add_text(raw_dir: Path, field: str) -> int:
    paths = sorted(p for p in raw_dir.glob("*") if p.suffix.lower() in RAW_SUFFIXES)
    rewritten = sum(1 for path in paths if augment_file(path, field))
    print(f"Updated {rewritten} of {len(paths)} files")
    return rewritten


def migrate(database_path: Path, raw_dir: Path, module_id: str) -> Path:
    database = json.loads(database_path.read_text(encoding="utf-8"))
    module = migrate_legacy_database(database, module_id=module_id)
    target = raw_dir / f"{module_id}.yaml"
    raw_dir.mkdir(parents=True, exist_ok=True)
    target.write_text(dump_yaml(module), encoding="utf-8")
    log.info("legacy_database_migrated", source=str(database_path), target=str(target), phrases=len(module["phrases"]))
    print(f"Wrote {target}")
    return target


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Augment raw phrase modules")
    parser.add_argument("--raw-dir", default=settings.RAW_MODULES_DIR)
    parser.add_argument("--add-text", action="store_true", help="Add the joined phrase text field")
    parser.add_argument("--field", default=DERIVED_TEXT_FIELD)
    parser.add_argument("--migrate", type=Path, metavar="FILE", help="Legacy phrase database (JSON)")
    parser.add_argument("--module-id", default="basics")
    args = parser.parse_args(argv)

    configure_logging(level=settings.LOG_LEVEL, json_logs=settings.LOG_JSON)
    raw_dir = Path(args.raw_dir)

    if not (args.add_text or args.migrate):
        print("No tasks specified. Use --help for options.")
        return 1

    if args.migrate:
        migrate(args.migrate, raw_dir, args.module_id)
    if args.add_text:
        add_text(raw_dir, args.field)
    return 0


if __name__ == "__main__":
    sys.exit(main())
