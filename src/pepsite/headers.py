"""Parse and validate the RFC-822 style header block of a proposal document.

A document looks like::

    PEP: 8
    Title: Style Guide for Python Code
    Author: Guido van Rossum <guido@python.org>,
            Barry Warsaw <barry@python.org>
    Status: Active
    Type: Process
    Created: 05-Jul-2001

    Body markup starts after the first blank line.

Parsing is pure: no IO, no corpus-wide checks. Number uniqueness is the
orchestrator's job (see ``find_duplicate_numbers``).
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from pepsite.errors import InvalidEnumValueError, InvalidHeaderValueError, MalformedHeaderError


class Status(Enum):
    DRAFT = "Draft"
    ACTIVE = "Active"
    ACCEPTED = "Accepted"
    DEFERRED = "Deferred"
    REJECTED = "Rejected"
    WITHDRAWN = "Withdrawn"
    FINAL = "Final"
    SUPERSEDED = "Superseded"

    def can_transition_to(self, other: Status) -> bool:
        return other in _TRANSITIONS[self]

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self]


_TRANSITIONS: dict[Status, frozenset[Status]] = {
    Status.DRAFT: frozenset(
        {
            Status.ACCEPTED,
            Status.REJECTED,
            Status.WITHDRAWN,
            Status.DEFERRED,
            Status.ACTIVE,
            Status.FINAL,
        }
    ),
    Status.DEFERRED: frozenset({Status.DRAFT}),
    Status.ACCEPTED: frozenset({Status.FINAL, Status.REJECTED, Status.WITHDRAWN}),
    Status.ACTIVE: frozenset({Status.SUPERSEDED, Status.WITHDRAWN}),
    Status.FINAL: frozenset({Status.SUPERSEDED}),
    Status.REJECTED: frozenset(),
    Status.WITHDRAWN: frozenset(),
    Status.SUPERSEDED: frozenset(),
}


class DocType(Enum):
    STANDARDS_TRACK = "Standards Track"
    INFORMATIONAL = "Informational"
    PROCESS = "Process"


# Historical spellings accepted on input; output always uses the enum value.
_TYPE_ALIASES: dict[str, DocType] = {"Standards-Track": DocType.STANDARDS_TRACK}

REQUIRED_FIELDS: tuple[str, ...] = ("PEP", "Title", "Author", "Status", "Type", "Created")

_FIELD_RE = re.compile(r"^(?P<name>[A-Za-z][A-Za-z0-9-]*):[ \t]*(?P<value>.*)$")
_ANGLE_AUTHOR_RE = re.compile(r"^(?P<name>[^<]+?)\s*<(?P<contact>[^>]*)>$")
_PAREN_AUTHOR_RE = re.compile(r"^(?P<contact>\S+@\S+)\s+\((?P<name>[^)]+)\)$")
_DATE_FORMATS: tuple[str, ...] = ("%d-%b-%Y", "%Y-%m-%d")


@dataclass(frozen=True)
class Author:
    name: str
    contact: str | None = None


@dataclass(frozen=True)
class Document:
    number: int
    title: str
    authors: tuple[Author, ...]
    status: Status
    type: DocType
    created: date
    body: str
    source: str
    python_version: str | None = None
    superseded_by: int | None = None
    replaces: tuple[int, ...] = ()
    requires: tuple[int, ...] = ()
    discussions_to: str | None = None
    post_history: tuple[str, ...] = ()
    resolution: str | None = None
    # Raw header fields in declaration order, for display.
    fields: tuple[tuple[str, str], ...] = ()


def parse_header_block(
    text: str, *, source: str | None = None
) -> tuple[list[tuple[str, str]], str]:
    """Split ``text`` into ordered ``(name, value)`` header pairs and the body.

    Continuation lines (leading whitespace) are folded into the previous field
    with a single space. The header ends at the first blank line. Repeated
    field names are kept; ``parse_document`` decides how bad a repeat is.
    """

    lines = text.split("\n")
    fields: list[tuple[str, str]] = []
    body_start = len(lines)

    for i, line in enumerate(lines):
        if not line.strip():
            body_start = i + 1
            break
        if line[0] in " \t":
            if not fields:
                raise MalformedHeaderError("PEP", "header starts with a continuation line", source)
            name, value = fields[-1]
            fields[-1] = (name, f"{value} {line.strip()}".strip())
            continue
        m = _FIELD_RE.match(line)
        if not m:
            if not fields:
                raise MalformedHeaderError("PEP", "document has no header block", source)
            field = line.split(":", 1)[0]
            raise MalformedHeaderError(field, f"not a header line: {line!r}", source)
        fields.append((m.group("name"), m.group("value").strip()))

    if not fields:
        raise MalformedHeaderError("PEP", "document has no header block", source)

    body = "\n".join(lines[body_start:])
    return fields, body


def parse_authors(value: str) -> tuple[Author, ...]:
    authors: list[Author] = []
    for chunk in value.split(","):
        item = chunk.strip()
        if not item:
            continue
        m = _ANGLE_AUTHOR_RE.match(item)
        if m:
            contact = m.group("contact").strip() or None
            authors.append(Author(name=m.group("name").strip(), contact=contact))
            continue
        m = _PAREN_AUTHOR_RE.match(item)
        if m:
            authors.append(Author(name=m.group("name").strip(), contact=m.group("contact").strip()))
            continue
        authors.append(Author(name=item))
    return tuple(authors)


def parse_date(value: str) -> date:
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt).date()
        except ValueError:
            continue
    raise ValueError(f"unrecognized date {value!r}")


def _parse_number(field: str, value: str, source: str | None) -> int:
    try:
        number = int(value.strip())
    except ValueError:
        raise MalformedHeaderError(field, f"not an integer: {value!r}", source) from None
    if number <= 0:
        raise MalformedHeaderError(field, f"must be positive, got {number}", source)
    return number


def _parse_number_list(field: str, value: str, source: str | None) -> tuple[int, ...]:
    return tuple(
        _parse_number(field, item, source) for item in value.split(",") if item.strip()
    )


def _parse_references(
    field: str, value: str, source: str, number: int
) -> tuple[int, ...]:
    # Optional fields only cost the document, not the corpus.
    try:
        return _parse_number_list(field, value, source)
    except MalformedHeaderError as exc:
        raise InvalidHeaderValueError(field, exc.detail, source, number) from None


def _repeated_fields(pairs: Iterable[tuple[str, str]]) -> list[str]:
    counts: dict[str, list[str]] = {}
    for name, _value in pairs:
        counts.setdefault(name.lower(), []).append(name)
    return [names[0] for names in counts.values() if len(names) > 1]


def parse_document(text: str, *, source: str) -> Document:
    """Parse one raw document into a validated ``Document``.

    Raises ``MalformedHeaderError`` for a missing, repeated or unparseable
    required field. Document-scoped problems raise ``InvalidEnumValueError``
    (status/type outside the closed sets) or ``InvalidHeaderValueError`` (a
    repeated or unparseable optional field). The number is validated first
    so those errors can name it.
    """

    text = text.replace("\r\n", "\n").replace("\r", "\n")
    pairs, body = parse_header_block(text, source=source)
    fields = {name.lower(): value for name, value in pairs}
    repeated = _repeated_fields(pairs)
    required = {name.lower() for name in REQUIRED_FIELDS}
    for name in repeated:
        if name.lower() in required:
            raise MalformedHeaderError(name, "declared more than once", source)

    for name in REQUIRED_FIELDS:
        if not fields.get(name.lower(), "").strip():
            raise MalformedHeaderError(name, "required field is missing", source)

    number = _parse_number("PEP", fields["pep"], source)
    if repeated:
        raise InvalidHeaderValueError(repeated[0], "declared more than once", source, number)
    title = fields["title"].strip()

    authors = parse_authors(fields["author"])
    if not authors:
        raise MalformedHeaderError("Author", "at least one author is required", source)

    try:
        created = parse_date(fields["created"])
    except ValueError as exc:
        raise MalformedHeaderError("Created", str(exc), source) from None

    status_raw = fields["status"].strip()
    try:
        status = Status(status_raw)
    except ValueError:
        raise InvalidEnumValueError(
            "Status", status_raw, tuple(s.value for s in Status), source, number
        ) from None

    type_raw = fields["type"].strip()
    doc_type = _TYPE_ALIASES.get(type_raw)
    if doc_type is None:
        try:
            doc_type = DocType(type_raw)
        except ValueError:
            raise InvalidEnumValueError(
                "Type", type_raw, tuple(t.value for t in DocType), source, number
            ) from None

    superseded = _parse_references(
        "Superseded-By", fields.get("superseded-by", ""), source, number
    )
    if len(superseded) > 1:
        raise InvalidHeaderValueError(
            "Superseded-By", "expects a single document number", source, number
        )
    superseded_by = superseded[0] if superseded else None

    post_history = tuple(
        item.strip() for item in fields.get("post-history", "").split(",") if item.strip()
    )

    return Document(
        number=number,
        title=title,
        authors=authors,
        status=status,
        type=doc_type,
        created=created,
        body=body,
        source=source,
        python_version=fields.get("python-version", "").strip() or None,
        superseded_by=superseded_by,
        replaces=_parse_references("Replaces", fields.get("replaces", ""), source, number),
        requires=_parse_references("Requires", fields.get("requires", ""), source, number),
        discussions_to=fields.get("discussions-to", "").strip() or None,
        post_history=post_history,
        resolution=fields.get("resolution", "").strip() or None,
        fields=tuple(pairs),
    )


def find_duplicate_numbers(numbered: Iterable[tuple[int, str]]) -> dict[int, list[str]]:
    """Return ``{number: [sources...]}`` for every number declared more than once."""

    by_number: dict[int, list[str]] = {}
    for number, source in numbered:
        by_number.setdefault(number, []).append(source)
    return {n: sorted(sources) for n, sources in by_number.items() if len(sources) > 1}
