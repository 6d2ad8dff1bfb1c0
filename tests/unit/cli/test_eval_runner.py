"""Tests for the evaluation CLI artifact emission and exit behavior."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from braketwin.cli import runner


def test_runner_writes_json_and_markdown_reports(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = runner.main(
        ["--output-dir", str(tmp_path), "--seed", "3", "--models", "physics", "fusion"]
    )

    assert exit_code == 0
    payload = json.loads((tmp_path / runner.REPORT_JSON_NAME).read_text(encoding="utf-8"))
    assert payload["winner"] in {"physics", "fusion"}
    assert set(payload["reports"]) == {"physics", "fusion"}
    assert payload["run"]["seed"] == 3
    assert payload["run"]["scenario_count"] == 5
    assert payload["run"]["fusion_model"]["learned_model"]["architecture"].startswith("bidirectional")

    markdown = (tmp_path / runner.REPORT_MARKDOWN_NAME).read_text(encoding="utf-8")
    assert markdown.startswith("# Brake Digital Twin Evaluation Report")
    assert "report_json:" in capsys.readouterr().out


def test_runner_appends_synthetic_scenarios(tmp_path: Path) -> None:
    exit_code = runner.main(
        ["--output-dir", str(tmp_path), "--models", "physics", "--synthetic-laps", "2"]
    )

    assert exit_code == 0
    payload = json.loads((tmp_path / runner.REPORT_JSON_NAME).read_text(encoding="utf-8"))
    assert payload["run"]["scenario_count"] > 5


def test_runner_returns_2_on_failure(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = runner.main(["--output-dir", str(tmp_path), "--synthetic-laps", "-1"])

    assert exit_code == 2
    assert "[ERROR]" in capsys.readouterr().err
    assert not (tmp_path / runner.REPORT_JSON_NAME).exists()
