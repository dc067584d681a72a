"""Domain models for the executor queue and running processes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any


class ProcessKind(str, Enum):
    """Kinds of CodeChecker invocations handled by the scheduler."""

    VERSION_CHECK = "version_check"
    ANALYZE = "analyze"
    PARSE = "parse"


class ProcessStatus(str, Enum):
    """Process lifecycle states."""

    QUEUED = "queued"
    RUNNING = "running"
    FINISHED = "finished"
    ERRORED = "errored"
    KILLED = "killed"


class _WholeProject:
    """Analyze target meaning every translation unit of the project."""

    _instance: _WholeProject | None = None

    def __new__(cls) -> _WholeProject:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "WHOLE_PROJECT"


WHOLE_PROJECT = _WholeProject()

# Highest priority first. Dispatch always takes the oldest request of the first non-empty kind.
KIND_PRIORITY: tuple[ProcessKind, ...] = (
    ProcessKind.VERSION_CHECK,
    ProcessKind.PARSE,
    ProcessKind.ANALYZE,
)

TERMINAL_STATUSES = frozenset(
    {ProcessStatus.FINISHED, ProcessStatus.ERRORED, ProcessStatus.KILLED},
)

RequestTarget = Path | _WholeProject | None


@dataclass(frozen=True, slots=True)
class ProcessRequest:
    """One pending unit of work: a kind and the target it applies to."""

    kind: ProcessKind
    target: RequestTarget = None

    def __post_init__(self) -> None:
        if self.kind is ProcessKind.VERSION_CHECK:
            if self.target is not None:
                raise ValueError("Version check requests do not take a target.")
            return
        if self.target is None:
            raise ValueError(f"{self.kind.value} requests require a target.")
        if self.kind is ProcessKind.PARSE and self.target is WHOLE_PROJECT:
            raise ValueError("Parse requests must point at a metadata source.")
        if not isinstance(self.target, (Path, _WholeProject)):
            object.__setattr__(self, "target", Path(self.target))

    @classmethod
    def version_check(cls) -> ProcessRequest:
        return cls(ProcessKind.VERSION_CHECK)

    @classmethod
    def analyze(cls, target: Path | str | _WholeProject) -> ProcessRequest:
        return cls(ProcessKind.ANALYZE, target)

    @classmethod
    def parse(cls, metadata_source: Path | str) -> ProcessRequest:
        return cls(ProcessKind.PARSE, metadata_source)

    def identity(self) -> tuple[ProcessKind, RequestTarget]:
        """Key used to deduplicate pending requests."""

        return (self.kind, self.target)

    def describe(self) -> str:
        if self.target is None:
            return self.kind.value
        return f"{self.kind.value}:{self.target}"


@dataclass(eq=False, slots=True)
class Process:
    """A request materialized by the scheduler, with its runtime attributes."""

    request: ProcessRequest
    status: ProcessStatus = ProcessStatus.QUEUED
    started_at: datetime | None = None
    finished_at: datetime | None = None
    handle: Any = field(default=None, repr=False)
    exit_code: int | None = None
    error: str | None = None

    @property
    def kind(self) -> ProcessKind:
        return self.request.kind

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass(frozen=True, slots=True)
class ProcessStatusEvent:
    """Status transition delivered to subscribed listeners."""

    process: Process
    status: ProcessStatus

    @property
    def request(self) -> ProcessRequest:
        return self.process.request

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
