from __future__ import annotations

import pickle

import pytest

from pepsite.errors import (
    CorpusError,
    DocumentError,
    DuplicateNumberError,
    InvalidEnumValueError,
    InvalidHeaderValueError,
    MalformedHeaderError,
    MissingAssetError,
    RenderError,
    UnreadableDocumentError,
    UnresolvedReferenceError,
)


@pytest.mark.parametrize(
    "err",
    [
        UnreadableDocumentError("peps/pep-0001.md", "permission denied"),
        MalformedHeaderError("Created", "not a date", "pep-0001.md"),
        DuplicateNumberError({42: ["a.md", "b.md"]}),
        InvalidEnumValueError("Status", "Pending", ("Draft", "Final"), "pep-0009.md", 9),
        InvalidHeaderValueError("Replaces", "not an integer: 'x'", "pep-0005.md", 5),
        UnresolvedReferenceError((7, 9999), "pep-0001.md", 1),
        MissingAssetError(("x.png",), "pep-0001.md", 1),
        RenderError("boom", "pep-0001.md", 1),
    ],
)
def test_errors_survive_pickling(err: Exception) -> None:
    clone = pickle.loads(pickle.dumps(err))
    assert type(clone) is type(err)
    assert str(clone) == str(err)
    assert vars(clone) == vars(err)


def test_families() -> None:
    assert issubclass(MalformedHeaderError, CorpusError)
    assert issubclass(DuplicateNumberError, CorpusError)
    assert issubclass(UnresolvedReferenceError, DocumentError)
    assert issubclass(InvalidHeaderValueError, DocumentError)
    assert not issubclass(RenderError, CorpusError)


def test_duplicate_message_lists_every_source() -> None:
    err = DuplicateNumberError({42: ["a.md", "b.md"], 7: ["c.md", "d.md"]})
    assert str(err) == (
        "duplicate document numbers: 7 declared by c.md, d.md; 42 declared by a.md, b.md"
    )


def test_describe_falls_back_to_number() -> None:
    assert RenderError("boom", None, 8).describe() == "pep-0008: RenderError: boom"
    assert (
        UnresolvedReferenceError((9999,), "pep-0001.md", 1).describe()
        == "pep-0001.md: UnresolvedReferenceError: unresolved reference(s) to: 9999"
    )
