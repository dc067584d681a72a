"""Local stand-in for the CodeChecker binary used by integration tests."""

from __future__ import annotations

import argparse
import json
import os
import sys
import time
from pathlib import Path

FAKE_VERSION = "6.24.0"


def main(argv: list[str] | None = None) -> int:
    """Emulate the CodeChecker subcommands the executor invokes."""

    parser = argparse.ArgumentParser(prog="CodeChecker")
    commands = parser.add_subparsers(dest="command", required=True)

    version = commands.add_parser("analyzer-version")
    version.add_argument("--output", default="table")

    analyze = commands.add_parser("analyze")
    analyze.add_argument("compile_commands")
    analyze.add_argument("--output", required=True)
    analyze.add_argument("-j", dest="jobs", type=int, default=1)
    analyze.add_argument("--file", dest="files", action="append", default=[])

    parse = commands.add_parser("parse")
    parse.add_argument("reports")
    parse.add_argument("--export", default="json")

    args, _extra = parser.parse_known_args(argv)

    if args.command in _failing_commands():
        print(f"{args.command} failed on request", file=sys.stderr)
        return 1
    if args.command == "analyzer-version":
        print(json.dumps({"analyzers": {"clangsa": FAKE_VERSION, "clang-tidy": FAKE_VERSION}}))
        return 0
    if args.command == "analyze":
        return _analyze(args)
    return _parse(args)


def _analyze(args: argparse.Namespace) -> int:
    time.sleep(float(os.getenv("CODECHECKER_FAKE_ANALYZE_SECONDS", "0")))
    reports = Path(args.output)
    reports.mkdir(parents=True, exist_ok=True)
    metadata = {
        "version": 2,
        "tools": [
            {
                "name": "codechecker",
                "version": FAKE_VERSION,
                "command": ["CodeChecker", "analyze", args.compile_commands],
                "skipped": 0,
                "result_source_files": {path: f"{Path(path).name}.plist" for path in args.files},
            },
        ],
    }
    (reports / "metadata.json").write_text(json.dumps(metadata, indent=2), "utf-8")
    return 0


def _parse(args: argparse.Namespace) -> int:
    metadata_path = Path(args.reports) / "metadata.json"
    files: list[str] = []
    if metadata_path.exists():
        metadata = json.loads(metadata_path.read_text("utf-8"))
        for tool in metadata.get("tools", []):
            files.extend(tool.get("result_source_files", {}))
    print(json.dumps({"version": 1, "reports": [], "analyzed_files": files}))
    return 0


def _failing_commands() -> set[str]:
    raw = os.getenv("CODECHECKER_FAKE_FAIL", "")
    return {part.strip() for part in raw.split(",") if part.strip()}


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
