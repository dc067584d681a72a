from __future__ import annotations

from pathlib import Path

import allure
import pytest

from codechecker_executor.config import DEFAULT_OUTPUT_FOLDER, ExecutorSettings

pytestmark = [
    allure.epic("Executor"),
    allure.feature("Configuration"),
]


def test_from_env_reads_executor_variables(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CODECHECKER_EXECUTOR_EXECUTABLE", "/usr/bin/CodeChecker")
    monkeypatch.setenv("CODECHECKER_EXECUTOR_WORKSPACE_ROOT", str(tmp_path))
    monkeypatch.setenv("CODECHECKER_EXECUTOR_OUTPUT_FOLDER", "${workspaceFolder}/out")
    monkeypatch.setenv("CODECHECKER_EXECUTOR_ANALYZE_ARGUMENTS", "--ctu --enable 'a b'")
    monkeypatch.setenv("CODECHECKER_EXECUTOR_THREAD_COUNT", "8")
    monkeypatch.setenv("CODECHECKER_EXECUTOR_ANALYZE_ON_OPEN", "yes")

    settings = ExecutorSettings.from_env()

    assert settings.executable_argv == ("/usr/bin/CodeChecker",)
    assert settings.workspace_root == tmp_path
    assert settings.output_path == tmp_path / "out"
    assert settings.metadata_path == tmp_path / "out" / "reports" / "metadata.json"
    assert settings.analyze_arguments == ("--ctu", "--enable", "a b")
    assert settings.thread_count == 8
    assert settings.analyze_on_open is True


def test_from_env_defaults(monkeypatch, tmp_path: Path) -> None:
    for name in (
        "CODECHECKER_EXECUTOR_EXECUTABLE",
        "CODECHECKER_EXECUTOR_OUTPUT_FOLDER",
        "CODECHECKER_EXECUTOR_THREAD_COUNT",
        "CODECHECKER_EXECUTOR_ANALYZE_ON_OPEN",
        "CODECHECKER_EXECUTOR_COMPILE_COMMANDS",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = ExecutorSettings.from_env(workspace_root=tmp_path)

    assert settings.executable == "CodeChecker"
    assert settings.output_folder == DEFAULT_OUTPUT_FOLDER
    assert settings.compile_commands_path == tmp_path / ".codechecker" / "compile_commands.json"
    assert settings.thread_count is None
    assert settings.analyze_on_open is False
    settings.validate()


def test_relative_output_folder_is_anchored_at_workspace(tmp_path: Path) -> None:
    settings = ExecutorSettings(workspace_root=tmp_path, output_folder="build/cc")

    assert settings.reports_path == tmp_path / "build" / "cc" / "reports"
    assert settings.logs_path == tmp_path / "build" / "cc" / "logs"


def test_with_output_folder_falls_back_to_default(tmp_path: Path) -> None:
    settings = ExecutorSettings(workspace_root=tmp_path, output_folder="/elsewhere")

    assert settings.with_output_folder(None).output_folder == DEFAULT_OUTPUT_FOLDER
    assert settings.with_output_folder("alt").output_path == tmp_path / "alt"
    assert settings.output_folder == "/elsewhere"


def test_invalid_bool_env_raises(monkeypatch) -> None:
    monkeypatch.setenv("CODECHECKER_EXECUTOR_ANALYZE_ON_OPEN", "maybe")

    with pytest.raises(ValueError, match="Invalid boolean value"):
        ExecutorSettings.from_env()


def test_invalid_thread_count_env_raises(monkeypatch) -> None:
    monkeypatch.setenv("CODECHECKER_EXECUTOR_THREAD_COUNT", "many")

    with pytest.raises(ValueError, match="THREAD_COUNT"):
        ExecutorSettings.from_env()


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"executable": " "}, "must not be empty"),
        ({"executable": "''"}, "rendered empty command"),
        ({"output_folder": ""}, "OUTPUT_FOLDER"),
        ({"thread_count": 0}, "THREAD_COUNT"),
        ({"terminate_grace_seconds": -1.0}, "TERMINATE_GRACE_SECONDS"),
    ],
)
def test_validate_rejects_unusable_settings(kwargs, message, tmp_path: Path) -> None:
    settings = ExecutorSettings(workspace_root=tmp_path, **kwargs)

    with pytest.raises(ValueError, match=message):
        settings.validate()
