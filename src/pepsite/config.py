"""Build configuration.

Precedence: explicit values (CLI flags) > environment > defaults.

Environment:
- ``PEPSITE_SOURCE_DIR``: directory holding ``pep-*.md`` / ``pep-*.txt``
- ``PEPSITE_OUTPUT_DIR``: output tree root
- ``PEPSITE_JOBS``: worker count (``1`` renders in-process)
- ``SOURCE_DATE_EPOCH``: if set, stamped into page footers as the build time

Without a configured timestamp nothing time-dependent is written.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

DEFAULT_PATTERNS: tuple[str, ...] = ("pep-*.md", "pep-*.txt")
DEFAULT_SOURCE_DIR = Path("peps")
DEFAULT_OUTPUT_DIR = Path("build") / "site"


def default_jobs() -> int:
    return os.cpu_count() or 1


@dataclass(frozen=True)
class BuildConfig:
    source_dir: Path
    output_dir: Path
    jobs: int = 1
    patterns: tuple[str, ...] = DEFAULT_PATTERNS
    build_timestamp: str | None = None
    write_manifest: bool = True
    check_links: bool = False

    def __post_init__(self) -> None:
        if self.jobs < 1:
            raise ValueError(f"jobs must be >= 1, got {self.jobs}")
        if not self.patterns:
            raise ValueError("at least one document pattern is required")


def timestamp_from_epoch(value: str) -> str:
    try:
        seconds = int(value.strip())
    except ValueError:
        raise ValueError(f"SOURCE_DATE_EPOCH must be an integer, got {value!r}") from None
    return datetime.fromtimestamp(seconds, UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def load_config(
    *,
    source_dir: Path | None = None,
    output_dir: Path | None = None,
    jobs: int | None = None,
    build_timestamp: str | None = None,
    write_manifest: bool = True,
    check_links: bool = False,
    environ: Mapping[str, str] | None = None,
) -> BuildConfig:
    env = os.environ if environ is None else environ

    if source_dir is None:
        source_dir = Path(env.get("PEPSITE_SOURCE_DIR") or DEFAULT_SOURCE_DIR)
    if output_dir is None:
        output_dir = Path(env.get("PEPSITE_OUTPUT_DIR") or DEFAULT_OUTPUT_DIR)

    if jobs is None:
        raw_jobs = env.get("PEPSITE_JOBS")
        if raw_jobs:
            try:
                jobs = int(raw_jobs)
            except ValueError:
                raise ValueError(f"PEPSITE_JOBS must be an integer, got {raw_jobs!r}") from None
        else:
            jobs = default_jobs()

    if build_timestamp is None and env.get("SOURCE_DATE_EPOCH"):
        build_timestamp = timestamp_from_epoch(env["SOURCE_DATE_EPOCH"])

    return BuildConfig(
        source_dir=source_dir,
        output_dir=output_dir,
        jobs=jobs,
        build_timestamp=build_timestamp,
        write_manifest=write_manifest,
        check_links=check_links,
    )
