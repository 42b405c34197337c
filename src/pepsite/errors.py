"""Error taxonomy for a corpus build.

Two families:
- ``CorpusError``: fatal, aborts the build before any output is written.
- ``DocumentError``: recoverable, scoped to one document and reported in the
  build summary.

Every error round-trips through pickle with its structured fields intact, since
header parsing and rendering run in worker processes.
"""

from __future__ import annotations


class PepsiteError(Exception):
    """Root of every error raised by pepsite."""


class CorpusError(PepsiteError):
    """A corpus-level invariant violation. The build must stop."""


class DocumentError(PepsiteError):
    """A per-document problem. The rest of the corpus keeps building."""

    def __init__(self, message: str, source: str | None = None, number: int | None = None):
        super().__init__(message)
        self.message = message
        self.source = source
        self.number = number

    def __reduce__(self):
        return (self.__class__, (self.message, self.source, self.number))

    def describe(self) -> str:
        if self.source:
            where = self.source
        elif self.number is not None:
            where = f"pep-{self.number:04d}"
        else:
            where = "?"
        return f"{where}: {self.__class__.__name__}: {self.message}"


class UnreadableDocumentError(CorpusError):
    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"cannot read {path}: {reason}")
        self.path = path
        self.reason = reason

    def __reduce__(self):
        return (self.__class__, (self.path, self.reason))


class MalformedHeaderError(CorpusError):
    def __init__(self, field: str, detail: str, source: str | None = None) -> None:
        prefix = f"{source}: " if source else ""
        super().__init__(f"{prefix}header field {field!r}: {detail}")
        self.field = field
        self.detail = detail
        self.source = source

    def __reduce__(self):
        return (self.__class__, (self.field, self.detail, self.source))


class DuplicateNumberError(CorpusError):
    def __init__(self, duplicates: dict[int, list[str]]) -> None:
        parts = [
            f"{number} declared by {', '.join(sources)}"
            for number, sources in sorted(duplicates.items())
        ]
        super().__init__("duplicate document numbers: " + "; ".join(parts))
        self.duplicates = duplicates

    def __reduce__(self):
        return (self.__class__, (self.duplicates,))


class InvalidEnumValueError(DocumentError):
    def __init__(
        self,
        field: str,
        value: str,
        allowed: tuple[str, ...],
        source: str | None = None,
        number: int | None = None,
    ) -> None:
        super().__init__(
            f"{field} {value!r} is not one of: {', '.join(allowed)}",
            source,
            number,
        )
        self.field = field
        self.value = value
        self.allowed = allowed

    def __reduce__(self):
        return (
            self.__class__,
            (self.field, self.value, self.allowed, self.source, self.number),
        )


class InvalidHeaderValueError(DocumentError):
    """An optional header field is unusable; the document is skipped."""

    def __init__(
        self,
        field: str,
        detail: str,
        source: str | None = None,
        number: int | None = None,
    ) -> None:
        super().__init__(f"header field {field!r}: {detail}", source, number)
        self.field = field
        self.detail = detail

    def __reduce__(self):
        return (self.__class__, (self.field, self.detail, self.source, self.number))


class UnresolvedReferenceError(DocumentError):
    def __init__(
        self,
        missing: tuple[int, ...],
        source: str | None = None,
        number: int | None = None,
    ) -> None:
        listed = ", ".join(str(n) for n in missing)
        super().__init__(f"unresolved reference(s) to: {listed}", source, number)
        self.missing = missing

    def __reduce__(self):
        return (self.__class__, (self.missing, self.source, self.number))


class MissingAssetError(DocumentError):
    def __init__(
        self,
        assets: tuple[str, ...],
        source: str | None = None,
        number: int | None = None,
    ) -> None:
        listed = ", ".join(assets)
        super().__init__(f"image asset(s) missing or unusable: {listed}", source, number)
        self.assets = assets

    def __reduce__(self):
        return (self.__class__, (self.assets, self.source, self.number))


class RenderError(DocumentError):
    """The markup renderer rejected the body; the document is skipped."""
