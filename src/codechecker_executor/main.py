"""CLI entrypoint for codechecker-executor."""

import logging
from pathlib import Path

import rich_click as click

from codechecker_executor import __version__
from codechecker_executor.executor.controllers import (
    AnalyzeFilesCommand,
    ExecutorCliController,
    ExecutorCliOptions,
    ExecutorCliResult,
)

click.rich_click.USE_MARKDOWN = True
EXECUTOR_CONTROLLER = ExecutorCliController()


def _common_options(func):
    func = click.option(
        "--timeout-seconds",
        type=click.FloatRange(min=0, min_open=True),
        default=None,
        help="Stop queued and running work after this many seconds.",
    )(func)
    func = click.option(
        "--output-folder",
        default=None,
        help="CodeChecker output folder. Supports ${workspaceFolder}.",
    )(func)
    return click.option(
        "--workspace",
        "workspace_root",
        type=click.Path(path_type=Path, file_okay=False),
        default=None,
        help="Workspace root. Defaults to CODECHECKER_EXECUTOR_WORKSPACE_ROOT or cwd.",
    )(func)


@click.group()
@click.version_option(version=__version__, prog_name="codechecker-executor")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default="warning",
    show_default=True,
    help="Logging verbosity.",
)
def codechecker_executor(log_level: str) -> None:
    """Run CodeChecker version checks, analyses and parses one process at a time."""

    logging.basicConfig(level=log_level.upper(), format="%(levelname)s %(name)s: %(message)s")


@codechecker_executor.command("version")
@_common_options
def version(
    workspace_root: Path | None,
    output_folder: str | None,
    timeout_seconds: float | None,
) -> None:
    """Check that the configured CodeChecker binary answers `analyzer-version`."""

    _finish(
        EXECUTOR_CONTROLLER.check_version(
            ExecutorCliOptions(
                workspace_root=workspace_root,
                output_folder=output_folder,
                timeout_seconds=timeout_seconds,
            ),
        ),
        failure="CodeChecker version check failed.",
    )


@codechecker_executor.command("analyze")
@_common_options
@click.argument("files", nargs=-1, required=True, type=click.Path(path_type=Path))
def analyze(
    workspace_root: Path | None,
    output_folder: str | None,
    timeout_seconds: float | None,
    files: tuple[Path, ...],
) -> None:
    """Analyze the given source files, one CodeChecker run per file."""

    _finish(
        EXECUTOR_CONTROLLER.analyze_files(
            AnalyzeFilesCommand(
                options=ExecutorCliOptions(
                    workspace_root=workspace_root,
                    output_folder=output_folder,
                    timeout_seconds=timeout_seconds,
                ),
                files=files,
            ),
        ),
        failure="CodeChecker analysis failed.",
    )


@codechecker_executor.command("analyze-project")
@_common_options
def analyze_project(
    workspace_root: Path | None,
    output_folder: str | None,
    timeout_seconds: float | None,
) -> None:
    """Analyze every translation unit listed in the compilation database."""

    _finish(
        EXECUTOR_CONTROLLER.analyze_project(
            ExecutorCliOptions(
                workspace_root=workspace_root,
                output_folder=output_folder,
                timeout_seconds=timeout_seconds,
            ),
        ),
        failure="CodeChecker project analysis failed.",
    )


@codechecker_executor.command("parse")
@_common_options
def parse(
    workspace_root: Path | None,
    output_folder: str | None,
    timeout_seconds: float | None,
) -> None:
    """Parse the reports folder without modifying it."""

    _finish(
        EXECUTOR_CONTROLLER.parse(
            ExecutorCliOptions(
                workspace_root=workspace_root,
                output_folder=output_folder,
                timeout_seconds=timeout_seconds,
            ),
        ),
        failure="CodeChecker parse failed.",
    )


def _finish(result: ExecutorCliResult, *, failure: str) -> None:
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException(failure)


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    codechecker_executor()
