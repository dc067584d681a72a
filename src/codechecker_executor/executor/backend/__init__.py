"""Process runner implementations."""

from codechecker_executor.executor.backend.base import (
    CommandSpec,
    ExitCallback,
    ProcessRunner,
    ProcessSpawnError,
)
from codechecker_executor.executor.backend.subprocess_runner import SubprocessRunner

__all__ = [
    "CommandSpec",
    "ExitCallback",
    "ProcessRunner",
    "ProcessSpawnError",
    "SubprocessRunner",
]
