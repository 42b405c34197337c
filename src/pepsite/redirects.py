"""Legacy URL -> canonical path redirect table.

Legacy shapes that historically pointed at documents (declaration order):

- ``flat``:        /peps/pep-0008/
- ``dated``:       /peps/2001/pep-0008/   (year the document was created)
- ``html-suffix``: /pep-8.html

plus the catch-all ``/peps/*`` which sends anything else under the old prefix
to the site index.

The serving layer applies rules first-match-wins, so the list order is total:
exact rules before prefix rules, then longer literal before shorter, then shape
declaration order, then document number. Every rule carries the in-page
fragment of the incoming URL over to its target unchanged.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from pepsite.headers import Document
from pepsite.xref import SLUG_WIDTH

SCHEMA_VERSION = "1.0"


@dataclass(frozen=True)
class LegacyShape:
    name: str
    template: str


LEGACY_SHAPES: tuple[LegacyShape, ...] = (
    LegacyShape("flat", "/peps/pep-{padded}/"),
    LegacyShape("dated", "/peps/{year}/pep-{padded}/"),
    LegacyShape("html-suffix", "/pep-{number}.html"),
)

CATCH_ALLS: tuple[tuple[str, str], ...] = (("/peps/*", "/"),)

_SHAPE_ORDER: dict[str, int] = {s.name: i for i, s in enumerate(LEGACY_SHAPES)}
_SHAPE_ORDER["catch-all"] = len(LEGACY_SHAPES)


@dataclass(frozen=True)
class RedirectRule:
    pattern: str
    target: str
    fragment_preserving: bool = True
    shape: str = ""
    number: int | None = None

    @property
    def is_prefix(self) -> bool:
        return self.pattern.endswith("*")

    @property
    def literal(self) -> str:
        return self.pattern[:-1] if self.is_prefix else self.pattern

    def sort_key(self) -> tuple[int, int, int, int, str]:
        return (
            1 if self.is_prefix else 0,
            -len(self.literal),
            _SHAPE_ORDER.get(self.shape, len(_SHAPE_ORDER)),
            self.number if self.number is not None else 0,
            self.pattern,
        )

    def matches(self, path: str) -> bool:
        if self.is_prefix:
            return path.startswith(self.literal)
        if path == self.pattern:
            return True
        # Directory shapes also match without the trailing slash.
        return self.pattern.endswith("/") and path + "/" == self.pattern


def order_rules(rules: Iterable[RedirectRule]) -> list[RedirectRule]:
    return sorted(rules, key=RedirectRule.sort_key)


def legacy_paths(document: Document) -> dict[str, str]:
    """``{shape name: legacy path}`` for one document."""

    values = {
        "padded": f"{document.number:0{SLUG_WIDTH}d}",
        "number": str(document.number),
        "year": f"{document.created.year:04d}",
    }
    return {shape.name: shape.template.format(**values) for shape in LEGACY_SHAPES}


def generate_redirect_rules(
    documents: Iterable[Document],
    symbols: Mapping[int, str],
) -> list[RedirectRule]:
    """Expand every legacy shape for every document present in ``symbols``."""

    rules: list[RedirectRule] = []
    for doc in documents:
        path = symbols.get(doc.number)
        if path is None:
            continue
        for shape, legacy in legacy_paths(doc).items():
            rules.append(
                RedirectRule(pattern=legacy, target="/" + path, shape=shape, number=doc.number)
            )
    for pattern, target in CATCH_ALLS:
        rules.append(RedirectRule(pattern=pattern, target=target, shape="catch-all"))
    return order_rules(rules)


def _split_url(url: str) -> tuple[str, str | None]:
    path, sep, fragment = url.partition("#")
    path = path.split("?", 1)[0]
    return path, (fragment if sep else None)


def find_rule(rules: Iterable[RedirectRule], url: str) -> RedirectRule | None:
    path, _fragment = _split_url(url)
    for rule in rules:
        if rule.matches(path):
            return rule
    return None


def match_redirect(rules: Iterable[RedirectRule], url: str) -> str | None:
    """Resolve ``url`` against ``rules`` (first match wins).

    Returns the redirect target, with the original ``#fragment`` appended when
    the rule preserves fragments, or None when no rule matches.
    """

    _path, fragment = _split_url(url)
    rule = find_rule(rules, url)
    if rule is None:
        return None
    if fragment is not None and rule.fragment_preserving:
        return f"{rule.target}#{fragment}"
    return rule.target


def to_manifest(rules: Iterable[RedirectRule]) -> dict[str, object]:
    return {
        "schema_version": SCHEMA_VERSION,
        "match": "first",
        "rules": [
            {
                "pattern": r.pattern,
                "target": r.target,
                "fragment_preserving": r.fragment_preserving,
            }
            for r in rules
        ],
    }


def to_nginx(rules: Iterable[RedirectRule]) -> str:
    """Render rules as nginx ``location`` blocks, in rule order.

    Browsers carry the URL fragment across a 301 themselves, so every block is
    fragment-preserving without extra directives.
    """

    lines = ["# Generated by pepsite. Rules are listed in first-match order."]
    for r in rules:
        if r.is_prefix:
            lines.append(f"location ^~ {r.literal} {{ return 301 {r.target}; }}")
            continue
        lines.append(f"location = {r.pattern} {{ return 301 {r.target}; }}")
        if r.pattern.endswith("/") and len(r.pattern) > 1:
            lines.append(f"location = {r.pattern[:-1]} {{ return 301 {r.target}; }}")
    return "\n".join(lines) + "\n"
