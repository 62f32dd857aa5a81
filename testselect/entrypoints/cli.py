from __future__ import annotations

import argparse
from pathlib import Path

from testselect.entrypoints import commands


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Select test suites to run from the files changed by a pull request."
    )
    parser.add_argument(
        "--testsuites",
        type=Path,
        default=Path("testsuites.yaml"),
        help="YAML file with the path-to-testsuite mapping",
    )
    parser.add_argument(
        "--clonerefs",
        type=Path,
        default=Path("clonerefs.json"),
        help=(
            "JSON file with clonerefs options; "
            f"falls back to ${commands.CLONEREFS_ENV_VAR} when the file is missing"
        ),
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("tests.txt"),
        help="Output file, one selected test per line",
    )
    parser.add_argument(
        "--json-output",
        type=Path,
        default=None,
        help="Optional JSON report path (mode, reason, tests, changed paths)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return commands.run_selection(
        testsuites_file=args.testsuites,
        clonerefs_file=args.clonerefs,
        output_file=args.output,
        json_output=args.json_output,
    )


if __name__ == "__main__":
    raise SystemExit(main())
