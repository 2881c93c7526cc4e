"""
Exception types raised by the detection pipeline.

Every error carries an optional `stage` naming the pipeline stage it was
raised in; the orchestrator fills it in before the error propagates so
a failure can be diagnosed without re-running.

The concrete types also derive from the closest built-in exception
(FileNotFoundError, ValueError) so callers that only know the built-ins
still catch them.
"""

from typing import Optional


class CascadeDetectError(Exception):
    """Base class for all pipeline errors."""

    def __init__(self, message: str, stage: Optional[str] = None) -> None:
        super().__init__(message)
        self.stage = stage

    def __str__(self) -> str:
        message = super().__str__()
        if self.stage:
            return f"[{self.stage}] {message}"
        return message


class LoadError(CascadeDetectError):
    """A classifier resource is missing, malformed or backend-incompatible."""


class InvalidInputError(CascadeDetectError, ValueError):
    """A zero-area image, malformed rectangle or invalid model/backend pairing."""


class NotFoundError(CascadeDetectError, FileNotFoundError):
    """An image or resource file does not exist."""


class DecodeError(CascadeDetectError, ValueError):
    """An image file exists but could not be decoded."""
