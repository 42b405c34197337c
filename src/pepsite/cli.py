"""Command line entry point.

Exit codes:
    0  build succeeded, no document errors
    1  build published with recoverable document errors
    2  fatal corpus error (nothing written) or bad invocation
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from pepsite.build import (
    EXIT_CLEAN,
    EXIT_FATAL,
    build_site,
    check_corpus,
    discover_documents,
    parse_source,
    read_documents,
)
from pepsite.check_links import check_links
from pepsite.config import load_config
from pepsite.errors import CorpusError
from pepsite.redirects import generate_redirect_rules, match_redirect
from pepsite.stable_io import write_json
from pepsite.xref import build_symbol_table

logger = logging.getLogger("pepsite")


def configure_logging(verbosity: int = 0, log_file: Path | None = None) -> None:
    """Console logging to stderr, plus an optional DEBUG file log."""

    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()
    logger.propagate = False

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(levelname)s - %(message)s", datefmt="%H:%M:%S")
    )
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)


def _cmd_build(args: argparse.Namespace) -> int:
    config = load_config(
        source_dir=args.source_dir,
        output_dir=args.output_dir,
        jobs=args.jobs,
        build_timestamp=args.build_timestamp,
        write_manifest=not args.no_manifest,
        check_links=bool(args.check_links),
    )
    try:
        report = build_site(config)
    except CorpusError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_FATAL

    print(f"output_dir={report.output_dir}")
    print(f"published={len(report.published)} skipped={len(report.failed)}")

    if report.link_check is not None and report.link_check["status"] != "PASS":
        print("WARNING: link check failed, see link_check.json", file=sys.stderr)
    return report.exit_code


def _cmd_check_links(args: argparse.Namespace) -> int:
    report = check_links(root=args.root)
    write_json(args.out, report)
    return EXIT_CLEAN if report["status"] == "PASS" else EXIT_FATAL


def _cmd_redirects(args: argparse.Namespace) -> int:
    config = load_config(source_dir=args.source_dir, jobs=1)
    try:
        sources = read_documents(discover_documents(config.source_dir, config.patterns))
        documents = check_corpus([parse_source(s) for s in sources])
    except CorpusError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_FATAL

    symbols = build_symbol_table(d.number for d in documents)
    rules = generate_redirect_rules(documents, symbols)
    status = EXIT_CLEAN
    for url in args.url:
        target = match_redirect(rules, url)
        if target is None:
            print(f"{url} -> (no rule)")
            status = 1
        else:
            print(f"{url} -> {target}")
    return status


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="pepsite",
        description="Compile a directory of proposal documents into a static HTML site.",
    )
    p.add_argument("-v", "--verbose", action="count", default=0, help="-v info, -vv debug")
    p.add_argument("--log-file", type=Path, default=None, help="Also write a DEBUG log here")
    sub = p.add_subparsers(dest="command", required=True)

    b = sub.add_parser("build", help="Build the site")
    b.add_argument(
        "--source-dir",
        type=Path,
        default=None,
        help="Directory with pep-*.md / pep-*.txt (default: $PEPSITE_SOURCE_DIR or peps)",
    )
    b.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Output root (default: $PEPSITE_OUTPUT_DIR or build/site)",
    )
    b.add_argument(
        "--jobs",
        type=int,
        default=None,
        help="Worker processes (default: $PEPSITE_JOBS or CPU count; 1 = in-process)",
    )
    b.add_argument(
        "--build-timestamp",
        default=None,
        help="Stamp page footers with this value (default: from SOURCE_DATE_EPOCH, else none)",
    )
    b.add_argument("--no-manifest", action="store_true", help="Skip manifest.sha256")
    b.add_argument(
        "--check-links",
        action="store_true",
        help="Run the portable link checker over the output and write link_check.json",
    )
    b.set_defaults(func=_cmd_build)

    c = sub.add_parser("check-links", help="Check relative links inside a built site")
    c.add_argument("--root", type=Path, required=True, help="Site root folder")
    c.add_argument("--out", type=Path, required=True, help="Output JSON file")
    c.set_defaults(func=_cmd_check_links)

    r = sub.add_parser("redirects", help="Resolve legacy URLs against the redirect table")
    r.add_argument("--source-dir", type=Path, default=None)
    r.add_argument("url", nargs="+", help="Legacy URL path, e.g. /peps/pep-0008/#intro")
    r.set_defaults(func=_cmd_redirects)
    return p


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(args.verbose, args.log_file)
    try:
        return args.func(args)
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_FATAL


if __name__ == "__main__":
    raise SystemExit(main())
