"""Body renderer adapter.

Markup-to-HTML conversion is delegated to ``markdown`` (with ``pygments`` for
fenced code highlighting). This module owns what happens around it:

- ``:pep:`N``` / ``:pep:`N#fragment``` / ``:pep:`text <N#fragment>``` roles and
  bare ``PEP N`` mentions are rewritten into links to the canonical path
  before conversion. Code spans, code blocks and existing links are left
  alone.
- Relative image references are collected so the orchestrator can copy them
  next to the rendered page.
- Unresolved references stay as plain text and produce one warning per
  document.
"""

from __future__ import annotations

import html
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

import markdown
from pygments.formatters import HtmlFormatter

from pepsite.errors import DocumentError, MissingAssetError, RenderError
from pepsite.headers import Document
from pepsite.html_page import build_stamp_footer, html_page, nav
from pepsite.xref import ReferenceCollector

MARKDOWN_EXTENSIONS: tuple[str, ...] = (
    "fenced_code",
    "codehilite",
    "footnotes",
    "tables",
    "toc",
    "attr_list",
)

_FENCE_RE = re.compile(r"^ {0,3}(?P<fence>`{3,}|~{3,})")
_INDENTED_RE = re.compile(r"^(?: {4}|\t)")
_LIST_ITEM_RE = re.compile(r"^ {0,3}(?:[-*+]|\d+[.)])\s")

# Order matters: roles and protected spans are tried before bare mentions.
_INLINE_RE = re.compile(
    r"(?P<role>:pep:`(?:(?P<role_text>[^`<]+?)\s*<(?P<role_target>[^`>]+)>"
    r"|(?P<role_bare>[^`]+))`)"
    r"|(?P<code>`+[^`\n]*`+)"
    r"|(?P<link>!?\[[^\]\n]*\]\([^)\n]*\))"
    r"|(?P<bare>\bPEP\s+(?P<bare_num>\d+)\b)"
)
_ROLE_TARGET_RE = re.compile(r"^\s*(?P<num>\d+)\s*(?:#(?P<frag>[\w.:-]+))?\s*$")
_IMAGE_RE = re.compile(r"!\[[^\]\n]*\]\(\s*(?P<src>[^)\s]+)(?:\s+\"[^\"]*\")?\s*\)")
_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")

_REFERENCE_FIELDS = ("superseded-by", "replaces", "requires")
# The rendered page itself; an asset may not take its place.
_PAGE_FILE = "index.html"


@dataclass(frozen=True)
class RenderedBody:
    number: int
    html: str
    assets: tuple[str, ...]
    warnings: tuple[DocumentError, ...]
    references: tuple[int, ...]


def new_converter() -> markdown.Markdown:
    return markdown.Markdown(
        extensions=list(MARKDOWN_EXTENSIONS),
        extension_configs={
            "codehilite": {"css_class": "highlight", "guess_lang": False},
            "toc": {"permalink": False},
        },
        output_format="html",
    )


def pygments_css() -> str:
    return HtmlFormatter(style="default").get_style_defs(".highlight")


def _split_code(text: str) -> list[tuple[bool, str]]:
    """Split markdown into ``(is_code, chunk)`` runs, preserving every line.

    Code is a fenced block, or an indented block (four spaces or a tab) that
    follows a blank line outside a list item.
    """

    runs: list[tuple[bool, list[str]]] = []

    def add(is_code: bool, line: str) -> None:
        if runs and runs[-1][0] == is_code:
            runs[-1][1].append(line)
        else:
            runs.append((is_code, [line]))

    fence: str | None = None
    indented = False
    prev_blank = True
    in_list = False
    for line in text.split("\n"):
        blank = not line.strip()
        m = _FENCE_RE.match(line)
        if fence is not None:
            add(True, line)
            if m and m.group("fence")[0] == fence[0] and len(m.group("fence")) >= len(fence):
                fence = None
            prev_blank = blank
            continue
        if indented and (blank or _INDENTED_RE.match(line)):
            add(True, line)
            prev_blank = blank
            continue
        indented = False
        if m:
            fence = m.group("fence")
            add(True, line)
        elif not blank and prev_blank and not in_list and _INDENTED_RE.match(line):
            indented = True
            add(True, line)
        else:
            add(False, line)
            if _LIST_ITEM_RE.match(line):
                in_list = True
            elif not blank and not _INDENTED_RE.match(line):
                in_list = False
        prev_blank = blank
    return [(is_code, "\n".join(lines)) for is_code, lines in runs]


def rewrite_references(text: str, collector: ReferenceCollector) -> str:
    """Turn reference roles and bare mentions into markdown links."""

    def replace(m: re.Match[str]) -> str:
        if m.group("code") or m.group("link"):
            return m.group(0)

        if m.group("role"):
            target = m.group("role_target") or m.group("role_bare")
            tm = _ROLE_TARGET_RE.match(target)
            if not tm:
                return m.group(0)
            number = int(tm.group("num"))
            label = (m.group("role_text") or f"PEP {number}").strip()
            ref = collector.lookup(number, tm.group("frag"))
            if ref is None:
                return label
            return f"[{label}]({ref.href})"

        number = int(m.group("bare_num"))
        if number == collector.source:
            return m.group(0)
        ref = collector.lookup(number)
        if ref is None:
            return m.group(0)
        return f"[{m.group(0)}]({ref.href})"

    out: list[str] = []
    for is_code, chunk in _split_code(text):
        out.append(chunk if is_code else _INLINE_RE.sub(replace, chunk))
    return "\n".join(out)


def _is_local_asset(src: str) -> bool:
    return not (_SCHEME_RE.match(src) or src.startswith(("/", "#", "//")))


def collect_images(text: str) -> tuple[str, ...]:
    """Relative image paths referenced outside code blocks, in first-seen order."""

    seen: dict[str, None] = {}
    for is_code, chunk in _split_code(text):
        if is_code:
            continue
        for m in _IMAGE_RE.finditer(chunk):
            src = m.group("src")
            if _is_local_asset(src):
                seen.setdefault(src, None)
    return tuple(seen)


def _asset_usable(source_dir: Path, src: str) -> bool:
    rel = PurePosixPath(src)
    if ".." in rel.parts or rel.as_posix() == _PAGE_FILE:
        return False
    return (source_dir / rel).is_file()


def _render_header_table(document: Document, collector: ReferenceCollector) -> str:
    rows: list[str] = []
    for name, value in document.fields:
        key = name.lower()
        if key in _REFERENCE_FIELDS:
            cells: list[str] = []
            for item in value.split(","):
                item = item.strip()
                if not item:
                    continue
                ref = collector.lookup(int(item))
                if ref is None:
                    cells.append(html.escape(item))
                else:
                    cells.append(f'<a href="{html.escape(ref.href)}">{html.escape(item)}</a>')
            value_html = ", ".join(cells)
        elif key == "author":
            value_html = ", ".join(html.escape(a.name) for a in document.authors)
        elif key == "discussions-to" and value.startswith(("http://", "https://")):
            value_html = f'<a href="{html.escape(value)}">{html.escape(value)}</a>'
        else:
            value_html = html.escape(value)
        rows.append(f"    <tr><th>{html.escape(name)}</th><td>{value_html}</td></tr>")
    return "\n".join(['<table class="headers">', "  <tbody>", *rows, "  </tbody>", "</table>"])


def render_body(
    document: Document,
    symbols: Mapping[int, str],
    *,
    source_dir: Path | None = None,
) -> RenderedBody:
    """Render one document's header table and body into an HTML fragment.

    Raises ``RenderError`` when the markup renderer fails. Unresolved
    references and missing images are returned as warnings instead.
    """

    collector = ReferenceCollector(symbols, document.number)
    header_html = _render_header_table(document, collector)
    body_md = rewrite_references(document.body, collector)

    try:
        body_html = new_converter().convert(body_md)
    except Exception as exc:
        raise RenderError(
            f"markup rendering failed: {exc.__class__.__name__}: {exc}",
            document.source,
            document.number,
        ) from exc

    warnings: list[DocumentError] = []
    unresolved = collector.error(document.source)
    if unresolved is not None:
        warnings.append(unresolved)

    assets = collect_images(document.body)
    if source_dir is not None:
        missing = tuple(a for a in assets if not _asset_usable(source_dir, a))
        if missing:
            warnings.append(MissingAssetError(missing, document.source, document.number))
        assets = tuple(a for a in assets if a not in missing)

    fragment = "\n".join(
        [
            f"<h1>PEP {document.number} – {html.escape(document.title)}</h1>",
            header_html,
            '<div class="body">',
            body_html,
            "</div>",
        ]
    )
    return RenderedBody(
        number=document.number,
        html=fragment,
        assets=assets,
        warnings=tuple(warnings),
        references=tuple(sorted({r.target for r in collector.resolved})),
    )


def render_document_page(
    document: Document,
    rendered: RenderedBody,
    *,
    build_timestamp: str | None = None,
) -> str:
    return html_page(
        title=f"PEP {document.number} – {document.title}",
        nav_html=nav(current="", rel_prefix="../"),
        body_html=rendered.html,
        rel_prefix="../",
        footer_html=build_stamp_footer(build_timestamp),
    )
