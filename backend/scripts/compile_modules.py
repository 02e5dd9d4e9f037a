#!/usr/bin/env python3
"""Compile raw phrase modules into static artifacts.

Reads every *.yaml / *.yml definition in the raw modules directory and
writes manifest.json, search_index.json and modules/<id>.json to the
output root. Invalid units are reported and skipped.

Run with: python3 -m scripts.compile_modules [--raw-dir DIR] [--out DIR]
"""
import argparse
import sys
import time
from pathlib import Path

from core.config import settings
from core.errors import TransportError
from core.logging import configure_logging
from ingest.compiler import CompileResult, ModuleCompiler

# ANSI color codes
C_RESET = "\033[0m"
C_BOLD = "\033[1m"
C_DIM = "\033[2m"
C_GREEN = "\033[32m"
C_YELLOW = "\033[33m"
C_RED = "\033[31m"
C_CYAN = "\033[36m"


def print_summary(result: CompileResult, output_root: Path, duration: float) -> None:
    stats = result.stats
    print(f"\n{C_BOLD}  Results:{C_RESET}")
    print(f"    {C_GREEN}✓ Compiled:{C_RESET}  {stats.units_compiled:>6}")
    if stats.units_skipped:
        print(f"    {C_YELLOW}○ Skipped:{C_RESET}   {stats.units_skipped:>6}")
    print(f"    {C_BOLD}━ Total:{C_RESET}     {stats.units_processed:>6}")
    print(f"    {C_DIM}Locations:{C_RESET}   {stats.locations_indexed:>6}")
    for error in result.errors:
        source = error.metadata.get("source") or error.metadata.get("path", "")
        print(f"    {C_RED}✗ [{error.code.name}] {source}:{C_RESET} {error.message}")
    print()
    print(f"  {C_DIM}Output: {output_root} • Duration: {duration:.2f}s{C_RESET}")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Compile raw phrase modules")
    parser.add_argument("--raw-dir", default=settings.RAW_MODULES_DIR, help="Directory of raw module definitions")
    parser.add_argument("--out", default=settings.ARTIFACTS_DIR, help="Artifact output root (replaced whole)")
    parser.add_argument("--log-level", default=settings.LOG_LEVEL, help="Log level (default from LOG_LEVEL)")
    args = parser.parse_args(argv)

    configure_logging(level=args.log_level, json_logs=settings.LOG_JSON)

    raw_dir = Path(args.raw_dir)
    output_root = Path(args.out)
    print(f"{C_BOLD}{C_CYAN}▶ Compiling {raw_dir}{C_RESET}")

    start = time.perf_counter()
    try:
        result = ModuleCompiler().run(raw_dir, output_root)
    except TransportError as e:
        print(f"\n  {C_RED}✗ Could not write artifacts: {e.message}{C_RESET}")
        return 1

    print_summary(result, output_root, time.perf_counter() - start)
    return 0


if __name__ == "__main__":
    sys.exit(main())
