"""CLI entry point for gitdirt."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
from collections import Counter
from typing import Optional

from gitdirt import __version__
from gitdirt.errors import InvalidPatternError, ResolutionError
from gitdirt.evaluator import (
    DEFAULT_WORKERS,
    EXCLUDE_ERROR,
    EXCLUDE_SKIP,
    EvaluatorOptions,
    StatusVerdict,
    Verdict,
    scan,
)
from gitdirt.git import parse_pattern
from gitdirt.resolver import DirectoryRef, is_repository_root, resolve
from gitdirt.scanner import COMMON_SKIP_DIRS

log = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    from rich.console import Console
    from rich.logging import RichHandler

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=verbose)],
        force=True,
    )


def _positive_int(value: str) -> int:
    n = int(value)
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {n}")
    return n


def _non_negative_int(value: str) -> int:
    n = int(value)
    if n < 0:
        raise argparse.ArgumentTypeError(f"must be 0 or more, got {n}")
    return n


def _exclude_pattern(value: str) -> str:
    try:
        parse_pattern(value)
    except InvalidPatternError as e:
        raise argparse.ArgumentTypeError(str(e)) from None
    return value


def verdict_line(verdict: StatusVerdict) -> str:
    if verdict.state is Verdict.CLEAN:
        return f"Clean: {verdict.path}"
    if verdict.state is Verdict.DIRTY:
        return f"Dirty: {verdict.path}"
    return f"error: {verdict.path}: {verdict.detail or verdict.reason}"


def _collect(ref: DirectoryRef, scan_kwargs: dict) -> list[StatusVerdict]:
    verdicts: list[StatusVerdict] = []
    lock = threading.Lock()

    def _sink(v: StatusVerdict) -> None:
        with lock:
            verdicts.append(v)

    scan(ref, _sink, **scan_kwargs)
    verdicts.sort(key=lambda v: v.path)
    return verdicts


def print_lines(ref: DirectoryRef, scan_kwargs: dict, *, dirty_only: bool = False) -> None:
    """Stream one line per verdict as workers finish."""
    print(ref.path)
    print("it's a git repo" if is_repository_root(ref) else "not a git repo")

    lock = threading.Lock()

    def _sink(v: StatusVerdict) -> None:
        if dirty_only and v.state is Verdict.CLEAN:
            return
        with lock:
            print(verdict_line(v), flush=True)

    scan(ref, _sink, **scan_kwargs)
    print("Exiting")


def print_json(ref: DirectoryRef, scan_kwargs: dict) -> None:
    """Dump all verdicts as JSON to stdout."""
    verdicts = _collect(ref, scan_kwargs)
    counts = Counter(v.state for v in verdicts)
    data = {
        "root": ref.path,
        "is_repo": is_repository_root(ref),
        "repos": [
            {
                "path": v.path,
                "state": v.state.value,
                "reason": v.reason,
                "detail": v.detail,
            }
            for v in verdicts
        ],
        "counts": {state.value: counts.get(state, 0) for state in Verdict},
    }
    print(json.dumps(data, indent=2))


def print_summary(ref: DirectoryRef, scan_kwargs: dict, *, dirty_only: bool = False) -> None:
    """Print a one-shot Rich table to stdout."""
    from rich.console import Console
    from rich.panel import Panel
    from rich.table import Table

    from gitdirt.theme import CYAN, GREEN, MUTED, RED, SURFACE, counts_line, verdict_label

    console = Console()
    with console.status(f"Scanning {ref.path}..."):
        verdicts = _collect(ref, scan_kwargs)

    if not verdicts:
        console.print(f"[{RED}]No git repos found under[/{RED}] {ref.path}")
        return

    counts = Counter(v.state for v in verdicts)
    console.print(Panel(
        counts_line(counts),
        title=f"[bold {GREEN}]gitdirt[/bold {GREEN}] [{MUTED}]{ref.path}[/{MUTED}]",
        border_style=GREEN,
        padding=(0, 1),
    ))

    table = Table(border_style=SURFACE, show_edge=True, pad_edge=True)
    table.add_column("Repo", style=f"bold {CYAN}", no_wrap=True)
    table.add_column("State", no_wrap=True)
    table.add_column("Detail", style=MUTED)
    for v in verdicts:
        if dirty_only and v.state is Verdict.CLEAN:
            continue
        table.add_row(v.path, verdict_label(v), v.detail or "")
    console.print(table)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gitdirt",
        description="Find every git repo under a directory and report whether it is clean or dirty.",
    )
    parser.add_argument("path", help="Directory to scan for git repos")
    parser.add_argument(
        "-w", "--workers",
        type=_positive_int,
        default=DEFAULT_WORKERS,
        help=f"Repos evaluated in parallel (default: {DEFAULT_WORKERS})",
    )
    parser.add_argument(
        "--exclude",
        action="append",
        type=_exclude_pattern,
        default=[],
        metavar="PATTERN",
        help="Extra gitignore-style pattern applied before each repo's info/exclude (repeatable)",
    )
    parser.add_argument(
        "--strict-excludes",
        action="store_true",
        help="Report an error when .git/info/exclude exists but can't be read",
    )
    parser.add_argument(
        "--skip-common",
        action="store_true",
        help="Don't descend into dependency and build dirs (node_modules, .venv, target, ...)",
    )
    parser.add_argument(
        "--max-depth",
        type=_non_negative_int,
        metavar="N",
        help="Don't descend more than N levels below the root",
    )
    parser.add_argument(
        "--dirty-only",
        action="store_true",
        help="Only report dirty repos and errors",
    )
    output = parser.add_mutually_exclusive_group()
    output.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Output verdicts as JSON",
    )
    output.add_argument(
        "--summary",
        action="store_true",
        help="Print a table once every repo is checked",
    )
    output.add_argument(
        "--tui",
        action="store_true",
        help="Open an interactive dashboard",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging to stderr")
    parser.add_argument(
        "--version",
        action="version",
        version=f"gitdirt {__version__}",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the gitdirt CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    try:
        ref = resolve(args.path)
    except ResolutionError as e:
        print(f"Error opening directory: {e}", file=sys.stderr)
        sys.exit(1)

    scan_kwargs = dict(
        workers=args.workers,
        options=EvaluatorOptions(
            extra_excludes=tuple(args.exclude),
            exclude_errors=EXCLUDE_ERROR if args.strict_excludes else EXCLUDE_SKIP,
        ),
        skip_dirs=COMMON_SKIP_DIRS if args.skip_common else frozenset(),
        max_depth=args.max_depth,
    )
    log.debug("scanning %s with %d workers", ref.path, args.workers)

    if args.json_output:
        print_json(ref, scan_kwargs)
    elif args.summary:
        print_summary(ref, scan_kwargs, dirty_only=args.dirty_only)
    elif args.tui:
        from gitdirt.tui import run_tui
        run_tui(ref, scan_kwargs)
    else:
        print_lines(ref, scan_kwargs, dirty_only=args.dirty_only)


if __name__ == "__main__":
    main()
