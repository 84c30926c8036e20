"""
Command Line Interface for the client-side mod checker.
Checks mod JARs (or directories of JARs) and reports which ones must not be
installed on a server.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from config import JAR_SUFFIX, LOG_LEVEL, MAX_WORKERS
from client_mod_filter import analyze_jar_files, is_jar_filename, loader_display_name, summarize
from mod_messages import SUPPORTED_LOCALES


def collect_jar_paths(paths: list[str]) -> tuple[list[Path], list[str]]:
    """Expand directories to their JARs. Returns (jars, skipped)."""
    jars: list[Path] = []
    skipped: list[str] = []
    for raw in paths:
        p = Path(raw)
        if p.is_dir():
            jars.extend(sorted(c for c in p.iterdir() if c.is_file() and is_jar_filename(c.name)))
        elif is_jar_filename(p.name):
            jars.append(p)
        else:
            skipped.append(str(p))
    return jars, skipped


def print_summary(summary: dict, client_only: bool = False) -> None:
    print("🧩 Mod Side Check")
    print("=" * 40)
    for item in summary["results"]:
        if client_only and not item["isClientOnly"]:
            continue
        mark = "❌ client-only" if item["isClientOnly"] else "✅ server-ok"
        print(f"{mark}  {item['fileName']}  [{loader_display_name(item['modLoader'])}] {item['modName']}")
        print(f"    {item['reason']}")
    print("=" * 40)
    print(f"Server-compatible: {summary['serverCompatibleCount']}")
    print(f"Client-only:       {summary['clientOnlyCount']}")
    if summary["skipped"]:
        print(f"Skipped (not {JAR_SUFFIX}): {len(summary['skipped'])}")
        for name in summary["skipped"]:
            print(f"  • {name}")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Check whether Minecraft mod JARs are client-only")
    parser.add_argument("paths", nargs="+", help="JAR files or directories containing JARs")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument("--locale", choices=SUPPORTED_LOCALES, default=None, help="Language for reasons")
    parser.add_argument("--workers", type=int, default=MAX_WORKERS, help="Parallel workers")
    parser.add_argument("--client-only", action="store_true", help="Only list client-only mods")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    jars, skipped = collect_jar_paths(args.paths)
    if not jars:
        print(f"No {JAR_SUFFIX} files found", file=sys.stderr)
        return 2

    verdicts = analyze_jar_files(jars, locale=args.locale, max_workers=max(1, args.workers))
    summary = summarize([p.name for p in jars], verdicts, skipped=skipped)

    if args.json:
        print(json.dumps(summary, indent=2, ensure_ascii=False))
    else:
        print_summary(summary, client_only=args.client_only)
    return 0


if __name__ == "__main__":
    sys.exit(main())
