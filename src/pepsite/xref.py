"""Corpus-wide cross-reference resolution.

Pass 1 (``build_symbol_table``) runs once all headers are parsed and produces
a frozen ``SymbolTable``: document number -> canonical path. Pass 2 hands that
table to every body render. Resolution is a flat lookup, so reference cycles
between documents need no special handling.

Canonical layout (relative to the site root)::

    pep-0008/index.html     <- canonical_path(8) == "pep-0008/"
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass

from pepsite.errors import UnresolvedReferenceError

SLUG_PREFIX = "pep-"
SLUG_WIDTH = 4


def canonical_slug(number: int) -> str:
    if number <= 0:
        raise ValueError(f"document numbers are positive, got {number}")
    return f"{SLUG_PREFIX}{number:0{SLUG_WIDTH}d}"


def canonical_path(number: int) -> str:
    return canonical_slug(number) + "/"


def canonical_url(number: int) -> str:
    return "/" + canonical_path(number)


class SymbolTable(Mapping[int, str]):
    """Read-only number -> canonical path mapping.

    No mutators are exposed; the table is built once and passed by value into
    every render worker (it pickles as a plain dict).
    """

    __slots__ = ("_paths",)

    def __init__(self, paths: Mapping[int, str] | Iterable[tuple[int, str]] = ()) -> None:
        object.__setattr__(self, "_paths", dict(paths))

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError("SymbolTable is read-only")

    def __reduce__(self):
        return (self.__class__, (self._paths,))

    def __getitem__(self, number: int) -> str:
        return self._paths[number]

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._paths))

    def __len__(self) -> int:
        return len(self._paths)

    def __repr__(self) -> str:
        return f"SymbolTable({len(self._paths)} documents)"


def build_symbol_table(numbers: Iterable[int]) -> SymbolTable:
    """Pass 1: map every known document number to its canonical path."""

    return SymbolTable((n, canonical_path(n)) for n in numbers)


@dataclass(frozen=True)
class CrossReference:
    source: int
    target: int
    fragment: str | None
    href: str


def relative_href(from_number: int | None, target_path: str, fragment: str | None = None) -> str:
    """Link from a page to a canonical path.

    ``from_number`` None means the linking page sits at the site root
    (index pages); otherwise it sits one directory down in its own slug dir.
    """

    prefix = "" if from_number is None else "../"
    href = prefix + target_path
    if fragment:
        href += "#" + fragment
    return href


def resolve(
    symbols: Mapping[int, str],
    source: int,
    target: int,
    fragment: str | None = None,
) -> CrossReference:
    try:
        path = symbols[target]
    except KeyError:
        raise UnresolvedReferenceError((target,), None, source) from None
    return CrossReference(
        source=source,
        target=target,
        fragment=fragment or None,
        href=relative_href(source, path, fragment),
    )


class ReferenceCollector:
    """Resolves references for one document and remembers what failed.

    A document gets at most one ``UnresolvedReferenceError`` no matter how
    many broken mentions it contains.
    """

    def __init__(self, symbols: Mapping[int, str], source: int) -> None:
        self.symbols = symbols
        self.source = source
        self.resolved: list[CrossReference] = []
        self._missing: set[int] = set()

    def lookup(self, target: int, fragment: str | None = None) -> CrossReference | None:
        try:
            ref = resolve(self.symbols, self.source, target, fragment)
        except UnresolvedReferenceError:
            self._missing.add(target)
            return None
        self.resolved.append(ref)
        return ref

    @property
    def missing(self) -> tuple[int, ...]:
        return tuple(sorted(self._missing))

    def error(self, source_name: str | None = None) -> UnresolvedReferenceError | None:
        if not self._missing:
            return None
        return UnresolvedReferenceError(self.missing, source_name, self.source)
