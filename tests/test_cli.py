from __future__ import annotations

import threading
import time
from pathlib import Path

import allure
import pytest
from click.testing import CliRunner

from codechecker_executor.executor.controllers import (
    AnalyzeFilesCommand,
    ExecutorCliController,
    ExecutorCliOptions,
)
from codechecker_executor.main import codechecker_executor

pytestmark = [
    allure.epic("Executor"),
    allure.feature("CLI"),
]


@pytest.fixture()
def cli_env(monkeypatch, tmp_path: Path, fake_codechecker_executable: str) -> Path:
    monkeypatch.setenv("CODECHECKER_EXECUTOR_EXECUTABLE", fake_codechecker_executable)
    monkeypatch.setenv("CODECHECKER_EXECUTOR_WORKSPACE_ROOT", str(tmp_path))
    monkeypatch.delenv("CODECHECKER_EXECUTOR_OUTPUT_FOLDER", raising=False)
    monkeypatch.delenv("CODECHECKER_FAKE_FAIL", raising=False)
    return tmp_path


def test_cli_version(cli_env: Path) -> None:
    result = CliRunner().invoke(codechecker_executor, ["version"])

    assert result.exit_code == 0, result.output
    assert "[running] version_check" in result.output
    assert "[finished] version_check exit_code=0" in result.output


def test_cli_analyze_then_parse(cli_env: Path) -> None:
    runner = CliRunner()
    source = cli_env / "file.cpp"
    source.write_text("int main() { return 0; }\n", "utf-8")

    analyzed = runner.invoke(
        codechecker_executor,
        ["analyze", str(source), "--timeout-seconds", "60"],
    )
    parsed = runner.invoke(codechecker_executor, ["parse"])

    assert analyzed.exit_code == 0, analyzed.output
    assert f"[finished] analyze:{source}" in analyzed.output
    assert f"[finished] parse:{cli_env / '.codechecker' / 'reports'}" in analyzed.output
    assert (cli_env / ".codechecker" / "reports" / "metadata.json").exists()
    assert parsed.exit_code == 0, parsed.output
    assert "[finished] parse:" in parsed.output
    assert "version_check" not in parsed.output


def test_cli_analyze_project_with_output_folder(cli_env: Path) -> None:
    result = CliRunner().invoke(
        codechecker_executor,
        ["analyze-project", "--output-folder", "${workspaceFolder}/.cc-alt"],
    )

    assert result.exit_code == 0, result.output
    assert "[finished] analyze:WHOLE_PROJECT" in result.output
    assert f"Reports folder: {cli_env / '.cc-alt' / 'reports'}" in result.output


def test_cli_reports_errored_process(cli_env: Path, monkeypatch) -> None:
    monkeypatch.setenv("CODECHECKER_FAKE_FAIL", "analyze")

    result = CliRunner().invoke(codechecker_executor, ["analyze-project"])

    assert result.exit_code != 0
    assert "[errored] analyze:WHOLE_PROJECT exit_code=1" in result.output
    assert "CodeChecker project analysis failed." in result.output


def test_cli_version_failure_blocks_analysis(cli_env: Path, monkeypatch) -> None:
    monkeypatch.setenv("CODECHECKER_FAKE_FAIL", "analyzer-version")

    result = CliRunner().invoke(codechecker_executor, ["analyze", "file.cpp"])

    assert result.exit_code != 0
    assert "[errored] version_check" in result.output
    assert "analysis was not started" in result.output
    assert "[running] analyze" not in result.output


def test_cli_timeout_stops_running_analysis(cli_env: Path, monkeypatch) -> None:
    monkeypatch.setenv("CODECHECKER_FAKE_ANALYZE_SECONDS", "30")

    result = CliRunner().invoke(
        codechecker_executor,
        ["analyze", "file.cpp", "--timeout-seconds", "3"],
    )

    assert result.exit_code != 0
    assert "[killed] analyze:" in result.output
    assert "Timed out after 3.0s; stopped." in result.output


def test_timeout_covers_version_check_and_analysis(
    monkeypatch,
    tmp_path: Path,
    fake_runner,
) -> None:
    monkeypatch.delenv("CODECHECKER_EXECUTOR_EXECUTABLE", raising=False)
    monkeypatch.delenv("CODECHECKER_EXECUTOR_OUTPUT_FOLDER", raising=False)
    controller = ExecutorCliController(runner_factory=lambda: fake_runner)
    threading.Timer(0.4, lambda: fake_runner.handles[0].exit(0)).start()

    started = time.monotonic()
    result = controller.analyze_files(
        AnalyzeFilesCommand(
            options=ExecutorCliOptions(workspace_root=tmp_path, timeout_seconds=0.6),
            files=(tmp_path / "file.cpp",),
        ),
    )
    elapsed = time.monotonic() - started

    assert not result.success
    assert "[finished] version_check exit_code=0" in result.lines
    assert "Timed out after 0.6s; stopped." in result.lines
    assert fake_runner.spawned("analyze")[0].killed
    assert elapsed < 0.9
