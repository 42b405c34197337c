from __future__ import annotations

from datetime import date

import pytest

from pepsite.errors import InvalidEnumValueError, InvalidHeaderValueError, MalformedHeaderError
from pepsite.headers import (
    REQUIRED_FIELDS,
    Author,
    DocType,
    Status,
    find_duplicate_numbers,
    parse_authors,
    parse_document,
    parse_header_block,
)

from tests.fixtures import doc_text


def test_parse_document_required_and_optional_fields() -> None:
    text = doc_text(
        484,
        title="Type Hints",
        status="Final",
        doc_type="Standards Track",
        authors="Guido van Rossum <guido@example.org>, Jukka <jukka@example.org>",
        created="29-Sep-2014",
        extra={
            "Python-Version": "3.5",
            "Replaces": "3107",
            "Requires": "3107, 526",
            "Post-History": "16-Jan-2015, 20-Mar-2015",
        },
        body="Body.\n",
    )
    doc = parse_document(text, source="pep-0484.md")

    assert doc.number == 484
    assert doc.title == "Type Hints"
    assert doc.status is Status.FINAL
    assert doc.type is DocType.STANDARDS_TRACK
    assert doc.created == date(2014, 9, 29)
    assert doc.authors == (
        Author("Guido van Rossum", "guido@example.org"),
        Author("Jukka", "jukka@example.org"),
    )
    assert doc.python_version == "3.5"
    assert doc.replaces == (3107,)
    assert doc.requires == (3107, 526)
    assert doc.superseded_by is None
    assert doc.post_history == ("16-Jan-2015", "20-Mar-2015")
    assert doc.body == "Body.\n"
    assert doc.fields[0] == ("PEP", "484")


def test_optional_fields_default_to_absent() -> None:
    doc = parse_document(doc_text(5), source="pep-0005.md")
    assert doc.python_version is None
    assert doc.superseded_by is None
    assert doc.replaces == ()
    assert doc.requires == ()
    assert doc.discussions_to is None
    assert doc.resolution is None


@pytest.mark.parametrize("missing", REQUIRED_FIELDS)
def test_missing_required_field_is_malformed(missing: str) -> None:
    text = doc_text(7)
    lines = [ln for ln in text.split("\n") if not ln.startswith(f"{missing}:")]
    with pytest.raises(MalformedHeaderError) as excinfo:
        parse_document("\n".join(lines), source="pep-0007.md")
    assert excinfo.value.field == missing


@pytest.mark.parametrize(
    ("kwargs", "field"),
    [
        ({"status": "Pending"}, "Status"),
        ({"status": "draft"}, "Status"),
        ({"doc_type": "Meta"}, "Type"),
    ],
)
def test_enum_outside_closed_set(kwargs: dict[str, str], field: str) -> None:
    with pytest.raises(InvalidEnumValueError) as excinfo:
        parse_document(doc_text(9, **kwargs), source="pep-0009.md")
    assert excinfo.value.field == field
    assert excinfo.value.number == 9


def test_every_enum_value_is_accepted() -> None:
    for status in Status:
        for doc_type in DocType:
            doc = parse_document(
                doc_text(3, status=status.value, doc_type=doc_type.value), source="pep-0003.md"
            )
            assert doc.status is status
            assert doc.type is doc_type


def test_hyphenated_standards_track_alias() -> None:
    doc = parse_document(doc_text(3, doc_type="Standards-Track"), source="pep-0003.md")
    assert doc.type is DocType.STANDARDS_TRACK


@pytest.mark.parametrize("created", ["2001-07-05", "05-Jul-2001"])
def test_created_date_formats(created: str) -> None:
    doc = parse_document(doc_text(3, created=created), source="pep-0003.md")
    assert doc.created == date(2001, 7, 5)


@pytest.mark.parametrize("created", ["someday", "31-Feb-2001", "2001/07/05"])
def test_created_must_be_a_calendar_date(created: str) -> None:
    with pytest.raises(MalformedHeaderError) as excinfo:
        parse_document(doc_text(3, created=created), source="pep-0003.md")
    assert excinfo.value.field == "Created"


@pytest.mark.parametrize("number", ["zero", "0", "-4"])
def test_number_must_be_positive_integer(number: str) -> None:
    text = doc_text(1).replace("PEP: 1\n", f"PEP: {number}\n", 1)
    with pytest.raises(MalformedHeaderError) as excinfo:
        parse_document(text, source="pep-x.md")
    assert excinfo.value.field == "PEP"


def test_continuation_lines_fold_into_previous_field() -> None:
    text = "\n".join(
        [
            "PEP: 8",
            "Title: Style Guide",
            "Author: Guido van Rossum <guido@example.org>,",
            "        Barry Warsaw <barry@example.org>",
            "Status: Active",
            "Type: Process",
            "Created: 05-Jul-2001",
            "",
            "Body",
        ]
    )
    doc = parse_document(text, source="pep-0008.md")
    assert [a.name for a in doc.authors] == ["Guido van Rossum", "Barry Warsaw"]
    assert doc.body == "Body"


def test_header_block_stops_at_first_blank_line() -> None:
    fields, body = parse_header_block("PEP: 1\nTitle: T\n\nKey: not a header\n")
    assert fields == [("PEP", "1"), ("Title", "T")]
    assert body == "Key: not a header\n"


def test_document_without_header_block() -> None:
    with pytest.raises(MalformedHeaderError):
        parse_document("Just some prose.\n", source="pep-0001.md")


def test_repeated_header_field_is_malformed() -> None:
    text = doc_text(2, extra={"Title": "Again"})
    with pytest.raises(MalformedHeaderError) as excinfo:
        parse_document(text, source="pep-0002.md")
    assert excinfo.value.field == "Title"


def test_crlf_input_is_normalized() -> None:
    doc = parse_document(doc_text(4).replace("\n", "\r\n"), source="pep-0004.md")
    assert doc.title == "Proposal 4"
    assert "\r" not in doc.body


def test_parse_authors_shapes() -> None:
    assert parse_authors("A. Person <a@example.org>, b@example.org (B. Person), C. Person") == (
        Author("A. Person", "a@example.org"),
        Author("B. Person", "b@example.org"),
        Author("C. Person", None),
    )


def test_status_transitions() -> None:
    assert Status.DRAFT.can_transition_to(Status.ACCEPTED)
    assert Status.ACCEPTED.can_transition_to(Status.FINAL)
    assert Status.FINAL.can_transition_to(Status.SUPERSEDED)
    assert Status.DEFERRED.can_transition_to(Status.DRAFT)
    assert not Status.FINAL.can_transition_to(Status.DRAFT)
    assert not Status.REJECTED.can_transition_to(Status.ACCEPTED)
    assert Status.WITHDRAWN.is_terminal
    assert not Status.DRAFT.is_terminal


def test_find_duplicate_numbers() -> None:
    dups = find_duplicate_numbers([(42, "b.md"), (1, "x.md"), (42, "a.md")])
    assert dups == {42: ["a.md", "b.md"]}
    assert find_duplicate_numbers([(1, "a.md"), (2, "b.md")]) == {}


@pytest.mark.parametrize(
    ("extra", "field"),
    [
        ({"Replaces": "see-above"}, "Replaces"),
        ({"Requires": "12, -3"}, "Requires"),
        ({"Superseded-By": "8, 9"}, "Superseded-By"),
        ({"Resolution": "a", "resolution": "b"}, "Resolution"),
    ],
)
def test_bad_optional_field_is_scoped_to_the_document(
    extra: dict[str, str], field: str
) -> None:
    with pytest.raises(InvalidHeaderValueError) as excinfo:
        parse_document(doc_text(5, extra=extra), source="pep-0005.md")
    assert excinfo.value.field == field
    assert excinfo.value.number == 5
    assert excinfo.value.source == "pep-0005.md"


def test_repeated_required_field_differing_in_case_is_malformed() -> None:
    with pytest.raises(MalformedHeaderError) as excinfo:
        parse_document(doc_text(2, extra={"title": "Again"}), source="pep-0002.md")
    assert excinfo.value.field == "Title"
