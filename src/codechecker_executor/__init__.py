"""Scheduling and supervision of CodeChecker invocations."""

__version__ = "0.1.0"
