"""Corpus-wide listing pages built from parsed headers only.

Determinism contract:
- Groups in a fixed order (status and type follow enum declaration order;
  authors sort case-insensitively).
- Entries inside a group sorted by document number.
- The optional build timestamp only appears in the page footer.
"""

from __future__ import annotations

import html
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from pepsite.headers import Document, DocType, Status
from pepsite.html_page import build_stamp_footer, html_page, nav
from pepsite.xref import canonical_path, relative_href

INDEX_PAGES: dict[str, tuple[str, str]] = {
    "status": ("index-by-status.html", "Documents by status"),
    "type": ("index-by-type.html", "Documents by type"),
    "author": ("index-by-author.html", "Documents by author"),
}
HOME_PAGE = "index.html"


@dataclass(frozen=True)
class IndexEntry:
    number: int
    title: str
    status: Status


@dataclass(frozen=True)
class IndexGroup:
    heading: str
    entries: tuple[IndexEntry, ...]

    @property
    def anchor(self) -> str:
        return re.sub(r"[^a-z0-9]+", "-", self.heading.lower()).strip("-")


def _entry(doc: Document) -> IndexEntry:
    return IndexEntry(number=doc.number, title=doc.title, status=doc.status)


def _sorted_entries(docs: Iterable[Document]) -> tuple[IndexEntry, ...]:
    return tuple(sorted((_entry(d) for d in docs), key=lambda e: e.number))


def _group_by_enum(
    documents: Iterable[Document],
    members: Iterable[Status] | Iterable[DocType],
    key: Callable[[Document], Status | DocType],
) -> tuple[IndexGroup, ...]:
    docs = list(documents)
    groups: list[IndexGroup] = []
    for member in members:
        entries = _sorted_entries(d for d in docs if key(d) is member)
        if entries:
            groups.append(IndexGroup(heading=member.value, entries=entries))
    return tuple(groups)


def group_by_status(documents: Iterable[Document]) -> tuple[IndexGroup, ...]:
    return _group_by_enum(documents, Status, lambda d: d.status)


def group_by_type(documents: Iterable[Document]) -> tuple[IndexGroup, ...]:
    return _group_by_enum(documents, DocType, lambda d: d.type)


def group_by_author(documents: Iterable[Document]) -> tuple[IndexGroup, ...]:
    by_author: dict[str, list[Document]] = {}
    for doc in documents:
        # A document lists each author once even if the header repeats a name.
        for name in dict.fromkeys(a.name for a in doc.authors):
            by_author.setdefault(name, []).append(doc)
    names = sorted(by_author, key=lambda n: (n.casefold(), n))
    return tuple(IndexGroup(heading=n, entries=_sorted_entries(by_author[n])) for n in names)


GROUPERS: dict[str, Callable[[Iterable[Document]], tuple[IndexGroup, ...]]] = {
    "status": group_by_status,
    "type": group_by_type,
    "author": group_by_author,
}


def _render_entries(entries: Iterable[IndexEntry]) -> list[str]:
    rows: list[str] = []
    for e in entries:
        href = relative_href(None, canonical_path(e.number))
        rows.append(
            "    <tr>"
            f'<td><a href="{html.escape(href)}">{e.number}</a></td>'
            f"<td>{html.escape(e.title)}</td>"
            f'<td class="muted">{html.escape(e.status.value)}</td>'
            "</tr>"
        )
    return rows


def _render_groups(groups: Iterable[IndexGroup]) -> str:
    parts: list[str] = []
    for g in groups:
        parts.extend(
            [
                f'<h2 id="{g.anchor}">{html.escape(g.heading)}</h2>',
                '<table class="listing">',
                "  <tbody>",
                *_render_entries(g.entries),
                "  </tbody>",
                "</table>",
            ]
        )
    if not parts:
        parts.append('<p class="muted">(no documents)</p>')
    return "\n".join(parts)


def render_index_page(
    kind: str,
    groups: Iterable[IndexGroup],
    *,
    build_timestamp: str | None = None,
) -> str:
    _filename, title = INDEX_PAGES[kind]
    body = "\n".join([f"<h1>{html.escape(title)}</h1>", _render_groups(groups)])
    return html_page(
        title=title,
        nav_html=nav(current=kind, rel_prefix=""),
        body_html=body,
        rel_prefix="",
        footer_html=build_stamp_footer(build_timestamp),
    )


def render_home_page(
    documents: Iterable[Document],
    *,
    build_timestamp: str | None = None,
) -> str:
    entries = _sorted_entries(documents)
    body = "\n".join(
        [
            "<h1>Proposal documents</h1>",
            f'<p class="muted">{len(entries)} documents.</p>',
            '<table class="listing">',
            "  <tbody>",
            *_render_entries(entries),
            "  </tbody>",
            "</table>",
        ]
    )
    return html_page(
        title="Proposal documents",
        nav_html=nav(current="home", rel_prefix=""),
        body_html=body,
        rel_prefix="",
        footer_html=build_stamp_footer(build_timestamp),
    )


def build_index_pages(
    documents: Iterable[Document],
    *,
    build_timestamp: str | None = None,
) -> dict[str, str]:
    """Return ``{relative output path: html}`` for the home page and every index."""

    docs = list(documents)
    pages = {HOME_PAGE: render_home_page(docs, build_timestamp=build_timestamp)}
    for kind, (filename, _title) in INDEX_PAGES.items():
        pages[filename] = render_index_page(
            kind, GROUPERS[kind](docs), build_timestamp=build_timestamp
        )
    return pages
