from __future__ import annotations

from pathlib import Path


def doc_text(
    number: int,
    *,
    title: str | None = None,
    status: str = "Draft",
    doc_type: str = "Standards Track",
    authors: str = "Ada Lovelace <ada@example.org>",
    created: str = "05-Jul-2001",
    extra: dict[str, str] | None = None,
    body: str = "Body text.\n",
) -> str:
    """Return the raw text of one proposal document.

    Tests treat the result as immutable input; build variants by passing
    different arguments rather than editing the string.
    """

    lines = [
        f"PEP: {number}",
        f"Title: {title or f'Proposal {number}'}",
        f"Author: {authors}",
        f"Status: {status}",
        f"Type: {doc_type}",
        f"Created: {created}",
    ]
    for name, value in (extra or {}).items():
        lines.append(f"{name}: {value}")
    return "\n".join(lines) + "\n\n" + body


def write_corpus(source_dir: Path, docs: dict[str, str]) -> Path:
    source_dir.mkdir(parents=True, exist_ok=True)
    for name, text in docs.items():
        (source_dir / name).write_text(text, encoding="utf-8", newline="\n")
    return source_dir


def small_corpus() -> dict[str, str]:
    """Three documents that reference each other (including a cycle)."""

    return {
        "pep-0001.md": doc_text(
            1,
            title="Purpose and Guidelines",
            status="Active",
            doc_type="Process",
            authors="Barry Warsaw <barry@example.org>, Ada Lovelace <ada@example.org>",
            body="See PEP 8 for style and :pep:`12#headers` for the template.\n",
        ),
        "pep-0008.md": doc_text(
            8,
            title="Style Guide",
            status="Active",
            doc_type="Process",
            body="# Introduction\n\nFollows PEP 1.\n\n```python\nx = 1  # PEP 12\n```\n",
        ),
        "pep-0012.md": doc_text(
            12,
            title="Sample Template",
            status="Final",
            doc_type="Informational",
            authors="Grace Hopper <grace@example.org>",
            body="# Headers\n\nTemplate text.[^1]\n\n[^1]: A footnote.\n",
        ),
    }
