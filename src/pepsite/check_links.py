"""Relative link checker for a built site tree.

Every ``href``/``src`` in every ``*.html`` page is classified:

- external (``http(s)://``, ``mailto:``, ``tel:``) links are skipped;
- root-absolute (``/...``) and ``file://`` links are disallowed, since the
  tree must work from any mount point;
- anything else must resolve to a file inside the root, with a directory
  standing for its ``index.html``.

A ``#fragment`` on a local link must match an ``id`` (or ``name``) on the
target page. Misses land in ``missing_fragments`` but do not fail the check.
"""

from __future__ import annotations

from dataclasses import dataclass
from html.parser import HTMLParser
from pathlib import Path
from typing import Any

_EXTERNAL_PREFIXES = ("http://", "https://", "mailto:", "tel:")


@dataclass(frozen=True)
class Link:
    page: str
    attr: str
    url: str

    def as_dict(self) -> dict[str, str]:
        return {"source": self.page, "attr": self.attr, "url": self.url}


class _PageScanner(HTMLParser):
    def __init__(self, page: str) -> None:
        super().__init__(convert_charrefs=True)
        self.page = page
        self.links: list[Link] = []
        self.anchors: set[str] = set()

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        for name, value in attrs:
            if value is None:
                continue
            if name in ("href", "src"):
                self.links.append(Link(self.page, name, value.strip()))
            elif name in ("id", "name"):
                self.anchors.add(value)


def _scan_site(root: Path) -> dict[str, _PageScanner]:
    pages: dict[str, _PageScanner] = {}
    for path in sorted(root.rglob("*.html")):
        if not path.is_file():
            continue
        page = path.relative_to(root).as_posix()
        scanner = _PageScanner(page)
        scanner.feed(path.read_text(encoding="utf-8", errors="replace"))
        pages[page] = scanner
    return pages


def _is_external(url: str) -> bool:
    lowered = url.lower()
    return not lowered or lowered.startswith(_EXTERNAL_PREFIXES)


def _is_absolute(url: str) -> bool:
    return url.startswith("/") or url.lower().startswith("file://")


def _resolve(root: Path, page: str, target: str) -> tuple[str | None, str]:
    """Map a link target to a root-relative file; None if it escapes or is missing."""

    candidate = ((root / page).parent / target).resolve()
    if not candidate.is_relative_to(root):
        return None, candidate.as_posix()
    if candidate.is_dir():
        candidate = candidate / "index.html"
    rel = candidate.relative_to(root).as_posix()
    return (rel if candidate.is_file() else None), rel


def check_links(*, root: Path) -> dict[str, Any]:
    root = root.resolve()
    pages = _scan_site(root)

    broken: list[dict[str, Any]] = []
    disallowed: list[dict[str, Any]] = []
    missing_fragments: list[dict[str, Any]] = []

    for page, scanner in pages.items():
        for link in scanner.links:
            if _is_external(link.url):
                continue
            if _is_absolute(link.url):
                disallowed.append(link.as_dict())
                continue

            target, _, fragment = link.url.partition("#")
            target = target.split("?", 1)[0]
            if target:
                found, resolved = _resolve(root, page, target)
                if found is None:
                    broken.append({**link.as_dict(), "resolved": resolved})
                    continue
            else:
                found = page

            if fragment and found in pages and fragment not in pages[found].anchors:
                missing_fragments.append({"source": page, "url": link.url, "target": found})

    broken.sort(key=lambda d: (d["source"], d["attr"], d["url"]))
    disallowed.sort(key=lambda d: (d["source"], d["attr"], d["url"]))
    missing_fragments.sort(key=lambda d: (d["source"], d["url"]))

    return {
        "status": "FAIL" if broken or disallowed else "PASS",
        "broken": broken,
        "disallowed": disallowed,
        "missing_fragments": missing_fragments,
        "scanned_files": len(pages),
    }
