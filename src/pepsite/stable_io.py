"""Byte-stable file output: UTF-8, LF only, trailing newline, sorted JSON keys."""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

MANIFEST_FILE = "manifest.sha256"


def read_text_lf(path: Path) -> str:
    """Read UTF-8 text and normalize every line ending to LF."""

    text = path.read_text(encoding="utf-8")
    return text.replace("\r\n", "\n").replace("\r", "\n")


def write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if not content.endswith("\n"):
        content += "\n"
    with path.open("w", encoding="utf-8", newline="\n") as f:
        f.write(content)


def write_json(path: Path, data: Any) -> None:
    text = json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False)
    write_text(path, text)


def sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for block in iter(lambda: f.read(1 << 20), b""):
            h.update(block)
    return h.hexdigest()


def write_manifest_sha256(site_root: Path) -> Path:
    """Checksum every file of a built site into ``manifest.sha256``.

    One ``<sha256>  <posix path>`` line per file, ordered by path, so two
    builds of the same corpus yield the same manifest. The manifest itself is
    not listed.
    """

    files = sorted(
        (p.relative_to(site_root).as_posix(), p)
        for p in site_root.rglob("*")
        if p.is_file() and p.relative_to(site_root).as_posix() != MANIFEST_FILE
    )
    lines = [f"{sha256_file(p)}  {rel}" for rel, p in files]
    out = site_root / MANIFEST_FILE
    write_text(out, "\n".join(lines))
    return out
