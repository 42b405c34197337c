"""Build orchestrator: document directory in, static site tree out.

Stages:
1. discover + read every document (unreadable input is fatal)
2. parse headers (worker pool)
3. reject duplicate numbers (fatal, nothing written yet)
4. pass 1: freeze the symbol table
5. pass 2: render bodies (worker pool); index pages and redirects are built in
   the main process while renders are in flight
6. write the output tree, summary, and manifest

Per-document problems never raise out of the pipeline. Every document ends up
as one ``DocumentOutcome`` and the ``BuildReport`` carries them all.
"""

from __future__ import annotations

import functools
import logging
import shutil
from collections.abc import Callable, Iterable, Sequence
from concurrent import futures
from dataclasses import dataclass
from multiprocessing import get_context
from pathlib import Path, PurePosixPath
from typing import Any, TypeVar

from pepsite.check_links import check_links
from pepsite.config import BuildConfig
from pepsite.errors import (
    CorpusError,
    DocumentError,
    DuplicateNumberError,
    MalformedHeaderError,
    RenderError,
    UnreadableDocumentError,
)
from pepsite.headers import Document, find_duplicate_numbers, parse_document
from pepsite.html_page import PYGMENTS_CSS_PATH
from pepsite.indexes import build_index_pages
from pepsite.redirects import RedirectRule, generate_redirect_rules, to_manifest, to_nginx
from pepsite.render import RenderedBody, pygments_css, render_body, render_document_page
from pepsite.stable_io import read_text_lf, write_json, write_manifest_sha256, write_text
from pepsite.xref import SymbolTable, build_symbol_table, canonical_slug

logger = logging.getLogger(__name__)

EXIT_CLEAN = 0
EXIT_WARNINGS = 1
EXIT_FATAL = 2

SUMMARY_FILE = "build_summary.json"
REDIRECTS_JSON = "redirects.json"
REDIRECTS_NGINX = "redirects.nginx.conf"
LINK_CHECK_FILE = "link_check.json"

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class SourceDocument:
    source: str
    text: str


@dataclass(frozen=True)
class ParseResult:
    source: str
    document: Document | None = None
    error: DocumentError | MalformedHeaderError | None = None


@dataclass(frozen=True)
class DocumentOutcome:
    source: str
    number: int | None
    ok: bool
    rendered: RenderedBody | None = None
    errors: tuple[DocumentError, ...] = ()


@dataclass(frozen=True)
class BuildReport:
    output_dir: Path
    outcomes: tuple[DocumentOutcome, ...]
    redirect_rules: tuple[RedirectRule, ...] = ()
    link_check: dict[str, Any] | None = None
    build_timestamp: str | None = None
    written: tuple[str, ...] = ()

    @property
    def published(self) -> tuple[int, ...]:
        return tuple(o.number for o in self.outcomes if o.ok and o.number is not None)

    @property
    def failed(self) -> tuple[DocumentOutcome, ...]:
        return tuple(o for o in self.outcomes if not o.ok)

    @property
    def document_errors(self) -> tuple[DocumentError, ...]:
        return tuple(e for o in self.outcomes for e in o.errors)

    @property
    def exit_code(self) -> int:
        return EXIT_WARNINGS if self.document_errors else EXIT_CLEAN

    def summary(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "status": "clean" if self.exit_code == EXIT_CLEAN else "warnings",
            "documents": len(self.outcomes),
            "published": list(self.published),
            "skipped": sorted(o.source for o in self.failed),
            "errors": [
                {
                    "source": e.source,
                    "number": e.number,
                    "kind": e.__class__.__name__,
                    "message": e.message,
                }
                for e in self.document_errors
            ],
            "redirect_rules": len(self.redirect_rules),
        }
        if self.build_timestamp:
            data["build_timestamp"] = self.build_timestamp
        if self.link_check is not None:
            data["link_check"] = self.link_check["status"]
        return data


def create_executor(jobs: int) -> futures.Executor | None:
    """Process pool for ``jobs > 1``; None means run in the calling process."""

    if jobs <= 1:
        return None
    return futures.ProcessPoolExecutor(max_workers=jobs, mp_context=get_context("spawn"))


def _run_all(
    executor: futures.Executor | None,
    fn: Callable[[T], R],
    items: Sequence[T],
) -> list[R]:
    if executor is None:
        return [fn(item) for item in items]
    return list(executor.map(fn, items))


def discover_documents(source_dir: Path, patterns: Iterable[str]) -> list[Path]:
    if not source_dir.is_dir():
        raise UnreadableDocumentError(str(source_dir), "source directory does not exist")
    found = {p for pattern in patterns for p in source_dir.glob(pattern) if p.is_file()}
    return sorted(found, key=lambda p: p.name)


def read_documents(paths: Iterable[Path]) -> list[SourceDocument]:
    docs: list[SourceDocument] = []
    for path in paths:
        try:
            text = read_text_lf(path)
        except (OSError, UnicodeDecodeError) as exc:
            raise UnreadableDocumentError(str(path), f"{exc.__class__.__name__}: {exc}") from exc
        docs.append(SourceDocument(source=path.name, text=text))
    return docs


def parse_source(src: SourceDocument) -> ParseResult:
    try:
        document = parse_document(src.text, source=src.source)
    except (DocumentError, MalformedHeaderError) as exc:
        return ParseResult(source=src.source, error=exc)
    return ParseResult(source=src.source, document=document)


def render_source(
    document: Document,
    symbols: SymbolTable,
    source_dir: Path | None = None,
) -> DocumentOutcome:
    try:
        rendered = render_body(document, symbols, source_dir=source_dir)
    except RenderError as exc:
        return DocumentOutcome(
            source=document.source, number=document.number, ok=False, errors=(exc,)
        )
    return DocumentOutcome(
        source=document.source,
        number=document.number,
        ok=True,
        rendered=rendered,
        errors=rendered.warnings,
    )


def check_corpus(results: Sequence[ParseResult]) -> list[Document]:
    """Raise on corpus-level violations; return the valid documents by number."""

    malformed = [r.error for r in results if isinstance(r.error, MalformedHeaderError)]
    if malformed:
        for err in malformed:
            logger.error("%s", err)
        raise malformed[0]

    numbered: list[tuple[int, str]] = []
    for r in results:
        if r.document is not None:
            numbered.append((r.document.number, r.source))
        elif r.error is not None and r.error.number is not None:
            numbered.append((r.error.number, r.source))
    duplicates = find_duplicate_numbers(numbered)
    if duplicates:
        raise DuplicateNumberError(duplicates)

    docs = [r.document for r in results if r.document is not None]
    return sorted(docs, key=lambda d: d.number)


def _prepare_output_dir(output_dir: Path) -> None:
    if output_dir.exists():
        if not output_dir.is_dir():
            raise CorpusError(f"output path is not a directory: {output_dir}")
        if any(output_dir.iterdir()) and not (output_dir / SUMMARY_FILE).is_file():
            raise CorpusError(
                f"refusing to replace {output_dir}: not empty and not a previous build"
            )
        shutil.rmtree(output_dir)
    output_dir.mkdir(parents=True)


def _copy_assets(source_dir: Path, page_dir: Path, assets: Iterable[str]) -> list[str]:
    written: list[str] = []
    for asset in assets:
        rel = PurePosixPath(asset)
        dest = page_dir / rel
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source_dir / rel, dest)
        written.append(rel.as_posix())
    return written


def write_site(
    *,
    config: BuildConfig,
    documents: Sequence[Document],
    outcomes: Sequence[DocumentOutcome],
    index_pages: dict[str, str],
    rules: Sequence[RedirectRule],
) -> list[str]:
    out = config.output_dir
    _prepare_output_dir(out)
    by_number = {d.number: d for d in documents}
    written: list[str] = []

    for outcome in outcomes:
        if not outcome.ok or outcome.rendered is None or outcome.number is None:
            continue
        doc = by_number[outcome.number]
        slug = canonical_slug(doc.number)
        for rel in _copy_assets(config.source_dir, out / slug, outcome.rendered.assets):
            written.append(f"{slug}/{rel}")
        # The page goes last so nothing copied above can replace it.
        page = render_document_page(doc, outcome.rendered, build_timestamp=config.build_timestamp)
        write_text(out / slug / "index.html", page)
        written.append(f"{slug}/index.html")

    for rel, page in sorted(index_pages.items()):
        write_text(out / rel, page)
        written.append(rel)

    write_text(out / PYGMENTS_CSS_PATH, pygments_css())
    written.append(PYGMENTS_CSS_PATH)

    write_json(out / REDIRECTS_JSON, to_manifest(rules))
    write_text(out / REDIRECTS_NGINX, to_nginx(rules))
    written.extend([REDIRECTS_JSON, REDIRECTS_NGINX])
    return written


def build_site(config: BuildConfig) -> BuildReport:
    """Run one full build. Raises ``CorpusError`` on fatal corpus problems."""

    paths = discover_documents(config.source_dir, config.patterns)
    logger.info("found %d documents in %s", len(paths), config.source_dir)
    sources = read_documents(paths)

    executor = create_executor(config.jobs)
    try:
        parsed = _run_all(executor, parse_source, sources)
        documents = check_corpus(parsed)
        logger.info("parsed %d documents", len(documents))

        # Pass 1: nothing below may change the table.
        symbols = build_symbol_table(d.number for d in documents)

        render = functools.partial(render_source, symbols=symbols, source_dir=config.source_dir)
        pending: list[futures.Future[DocumentOutcome]] = []
        if executor is not None:
            pending = [executor.submit(render, d) for d in documents]

        index_pages = build_index_pages(documents, build_timestamp=config.build_timestamp)
        rules = generate_redirect_rules(documents, symbols)

        if executor is None:
            rendered = [render(d) for d in documents]
        else:
            rendered = [f.result() for f in pending]
    except BaseException:
        if executor is not None:
            executor.shutdown(wait=True, cancel_futures=True)
        raise
    if executor is not None:
        executor.shutdown(wait=True)

    failed_numbers = {o.number for o in rendered if not o.ok}
    if failed_numbers:
        # Listings and redirects must not point at pages that were never written.
        published_docs = [d for d in documents if d.number not in failed_numbers]
        index_pages = build_index_pages(published_docs, build_timestamp=config.build_timestamp)
        rules = generate_redirect_rules(published_docs, symbols)

    header_failures = [
        DocumentOutcome(
            source=r.source,
            number=r.error.number,
            ok=False,
            errors=(r.error,),
        )
        for r in parsed
        if isinstance(r.error, DocumentError)
    ]
    outcomes = sorted(
        [*rendered, *header_failures],
        key=lambda o: (o.number if o.number is not None else 0, o.source),
    )
    for outcome in outcomes:
        for err in outcome.errors:
            logger.warning("%s", err.describe())
        if not outcome.ok:
            logger.warning("skipped %s", outcome.source)

    written = write_site(
        config=config,
        documents=documents,
        outcomes=outcomes,
        index_pages=index_pages,
        rules=rules,
    )

    link_report = None
    if config.check_links:
        link_report = check_links(root=config.output_dir)
        write_json(config.output_dir / LINK_CHECK_FILE, link_report)
        logger.info("link check: %s", link_report["status"])

    report = BuildReport(
        output_dir=config.output_dir,
        outcomes=tuple(outcomes),
        redirect_rules=tuple(rules),
        link_check=link_report,
        build_timestamp=config.build_timestamp,
        written=tuple(written),
    )
    write_json(config.output_dir / SUMMARY_FILE, report.summary())

    if config.write_manifest:
        write_manifest_sha256(config.output_dir)

    logger.info(
        "published %d of %d documents, %d errors",
        len(report.published),
        len(outcomes),
        len(report.document_errors),
    )
    return report
