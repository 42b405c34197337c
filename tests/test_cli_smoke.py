from __future__ import annotations

import json
import logging
import os
import subprocess
import sys
from pathlib import Path

import pytest

from pepsite.cli import main

from tests.fixtures import doc_text, small_corpus, write_corpus


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    logger = logging.getLogger("pepsite")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True


def _corpus(tmp_path: Path, docs: dict[str, str] | None = None) -> Path:
    return write_corpus(tmp_path / "peps", small_corpus() if docs is None else docs)


def test_help_works() -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--help"])
    assert excinfo.value.code == 0


def test_build_exit_codes(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    source = _corpus(tmp_path)
    out = tmp_path / "site"
    rc = main(["build", "--source-dir", str(source), "--output-dir", str(out), "--jobs", "1"])
    assert rc == 0
    assert "published=3 skipped=0" in capsys.readouterr().out

    (source / "pep-0002.md").write_text(doc_text(2, body="See PEP 9999.\n"), encoding="utf-8")
    rc = main(["build", "--source-dir", str(source), "--output-dir", str(out), "--jobs", "1"])
    assert rc == 1

    (source / "pep-0002-copy.md").write_text(doc_text(2), encoding="utf-8")
    rc = main(["build", "--source-dir", str(source), "--output-dir", str(out), "--jobs", "1"])
    assert rc == 2
    assert "duplicate document numbers" in capsys.readouterr().err


def test_bad_jobs_value_is_fatal(tmp_path: Path) -> None:
    source = _corpus(tmp_path)
    out = tmp_path / "o"
    rc = main(["build", "--source-dir", str(source), "--output-dir", str(out), "--jobs", "0"])
    assert rc == 2


def test_check_links_command(tmp_path: Path) -> None:
    source = _corpus(tmp_path)
    site = tmp_path / "site"
    rc = main(["build", "--source-dir", str(source), "--output-dir", str(site), "--jobs", "1"])
    assert rc == 0

    report_path = tmp_path / "links.json"
    assert main(["check-links", "--root", str(site), "--out", str(report_path)]) == 0
    report = json.loads(report_path.read_text(encoding="utf-8"))
    assert report["status"] == "PASS"

    (site / "index.html").write_text('<a href="gone.html">x</a>', encoding="utf-8")
    assert main(["check-links", "--root", str(site), "--out", str(report_path)]) == 2


def test_redirects_command(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    source = _corpus(tmp_path)
    rc = main(["redirects", "--source-dir", str(source), "/peps/pep-0008/#intro", "/pep-12.html"])
    assert rc == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        "/peps/pep-0008/#intro -> /pep-0008/#intro",
        "/pep-12.html -> /pep-0012/",
    ]

    assert main(["redirects", "--source-dir", str(source), "/nowhere"]) == 1


def test_module_entry_point_smoke(tmp_path: Path) -> None:
    source = _corpus(tmp_path)
    out = tmp_path / "site"

    repo_root = Path(__file__).resolve().parents[1]
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(
        p for p in (str(repo_root / "src"), env.get("PYTHONPATH", "")) if p
    )
    env["SOURCE_DATE_EPOCH"] = "0"

    subprocess.check_call(
        [
            sys.executable,
            "-m",
            "pepsite",
            "build",
            "--source-dir",
            str(source),
            "--output-dir",
            str(out),
            "--jobs",
            "1",
        ],
        env=env,
    )

    assert (out / "pep-0008" / "index.html").exists()
    assert (out / "manifest.sha256").exists()
    summary = json.loads((out / "build_summary.json").read_text(encoding="utf-8"))
    assert summary["build_timestamp"] == "1970-01-01T00:00:00Z"
