"""Runner interface for spawning and killing external processes."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol


@dataclass(frozen=True, slots=True)
class CommandSpec:
    """Fully rendered command line for one process."""

    argv: tuple[str, ...]
    cwd: Path | None = None
    stdout_path: Path | None = None
    stderr_path: Path | None = None
    env: dict[str, str] = field(default_factory=dict)

    @property
    def head(self) -> str:
        return self.argv[0] if self.argv else ""


ExitCallback = Callable[[int | None, BaseException | None], None]
"""Receives ``(exit_code, fault)``; exactly one of the two is set."""


class ProcessSpawnError(RuntimeError):
    """The runner could not start the external process."""


class ProcessRunner(Protocol):
    """Protocol implemented by process runners.

    ``spawn`` must deliver ``on_exit`` asynchronously, never from inside the
    ``spawn`` call itself.
    """

    def spawn(self, command: CommandSpec, on_exit: ExitCallback) -> Any:
        """Start ``command`` and return an opaque handle."""

    def kill(self, handle: Any) -> None:
        """Terminate the process behind ``handle`` and wait until it is gone."""
