"""Error kinds raised across tracebuild.

Fatal kinds (``InvalidIdentifier``, ``InvalidTimestamp``,
``ChildSpawnFailure``, ``ConfigurationError``) abort the current subcommand.
``ClockSkew`` and ``ExportFailure`` are recovered from locally and only
reported as diagnostics.
"""

from typing import Optional

from tracebuild.constants import EX_CONFIG, EX_OSERR, EX_USAGE


class TracebuildError(Exception):
    """Base class for all tracebuild errors."""

    exit_code: int = 1


class InvalidIdentifier(TracebuildError, ValueError):
    exit_code = EX_USAGE

    def __init__(self, text: str, reason: str):
        self.text = text
        self.reason = reason
        super().__init__(f"invalid identifier {text!r}: {reason}")


class InvalidTimestamp(TracebuildError, ValueError):
    exit_code = EX_USAGE

    def __init__(self, text: str, reason: str):
        self.text = text
        self.reason = reason
        super().__init__(f"invalid timestamp {text!r}: {reason}")


class ClockSkew(TracebuildError):
    """End time lies before start time."""

    def __init__(self, start: int, end: int):
        self.start = start
        self.end = end
        super().__init__(f"end time {end} is before start time {start}")


class ChildSpawnFailure(TracebuildError):
    exit_code = EX_OSERR

    def __init__(self, command: str, error: OSError):
        self.command = command
        self.error = error
        super().__init__(f"Failed to start child program {command}: {error}")


class ExportFailure(TracebuildError):
    """A backend could not deliver telemetry. Never fatal."""

    def __init__(self, backend: str, message: str, cause: Optional[BaseException] = None):
        self.backend = backend
        self.message = message
        self.cause = cause
        super().__init__(f"{backend} export failed: {message}")


class ConfigurationError(TracebuildError):
    exit_code = EX_CONFIG
