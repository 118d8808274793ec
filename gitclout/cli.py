"""CLI entrypoints for gitclout commands."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Mapping

from .aggregate import flatten
from .analyzer import AnalysisError, AnalysisTimeoutError, analyze_repository
from .config import ConfigError
from .languages import palette
from .logging import configure_logging


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    kwargs["default"] = argparse.SUPPRESS if suppress_default else False
    parser.add_argument("-v", "--verbose", **kwargs)


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return number


def _positive_float(value: str) -> float:
    number = float(value)
    if number <= 0:
        raise argparse.ArgumentTypeError("must be a positive number")
    return number


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gitclout",
        description="Attribute and classify the lines of a git snapshot by contributor.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write detailed logs, including worker thread names, to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Count lines per contributor and category at a tag or commit.",
    )
    _add_verbose_option(analyze_parser, suppress_default=True)
    analyze_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the repository root (defaults to current directory).",
    )
    analyze_parser.add_argument("ref", help="Tag, branch or commit to analyze.")
    analyze_parser.add_argument(
        "--format",
        choices=("table", "json", "rows"),
        default="table",
        help="Output format (rows emits flattened contributor/category/commit records).",
    )
    analyze_parser.add_argument(
        "--workers",
        type=_positive_int,
        default=None,
        help="Number of concurrent blame queries (defaults to configuration, then 12).",
    )
    analyze_parser.add_argument(
        "--timeout",
        type=_positive_float,
        default=None,
        help="Abort the analysis after this many seconds.",
    )

    languages_parser = subparsers.add_parser(
        "languages",
        help="List the categories that can be reported and their colours.",
    )
    _add_verbose_option(languages_parser, suppress_default=True)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for gitclout commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    if args.command == "languages":
        for category, color in palette():
            print(f"{category}\t{color}")
    elif args.command == "analyze":
        try:
            result = analyze_repository(
                args.path,
                args.ref,
                max_workers=args.workers,
                timeout=args.timeout,
            )
        except AnalysisTimeoutError as exc:
            parser.exit(1, f"gitclout analyze timed out: {exc}\n")
        except (AnalysisError, ConfigError) as exc:
            cause = f" ({exc.__cause__})" if exc.__cause__ else ""
            parser.exit(
                1, f"gitclout analyze failed: {exc}{cause}\nRun with --verbose for more details.\n"
            )
        print(_render(result, args.format, args.ref))
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _render(result: Mapping[str, Mapping[str, int]], output_format: str, ref: str) -> str:
    if output_format == "json":
        return json.dumps(result, indent=2, sort_keys=True)
    if output_format == "rows":
        return json.dumps([asdict(row) for row in flatten(result, ref)], indent=2)
    return _render_table(result)


def _render_table(result: Mapping[str, Mapping[str, int]]) -> str:
    if not result:
        return "No supported files with blame information."
    rows = [
        (name, category, str(count))
        for name in sorted(result)
        for category, count in sorted(result[name].items())
    ]
    headers = ("contributor", "category", "lines")
    widths = [max(len(headers[i]), *(len(row[i]) for row in rows)) for i in range(3)]
    lines = [
        f"{headers[0]:<{widths[0]}}  {headers[1]:<{widths[1]}}  {headers[2]:>{widths[2]}}",
        "  ".join("-" * width for width in widths),
    ]
    for name, category, count in rows:
        lines.append(f"{name:<{widths[0]}}  {category:<{widths[1]}}  {count:>{widths[2]}}")
    return "\n".join(lines)


if __name__ == "__main__":
    main(sys.argv[1:])
