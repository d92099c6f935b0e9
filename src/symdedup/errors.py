"""Error hierarchy for deduplication runs.

Errors are distinguished by what the run does with them:

- AccessError and a top-level EnumerationError abort the run before anything is modified.
- EnumerationError below the root and RecordError are logged and the affected entries skipped.
- ReplacementError is reported for a single pair while the remaining pairs continue.
"""
from enum import StrEnum


class DedupError(Exception):
    """Base class for all errors raised by symdedup."""


class AccessError(DedupError):
    """A root path cannot be stat'ed."""

    def __init__(self, path, reason: str):
        super().__init__(path, reason)
        self.path = path
        self.reason = reason

    def __str__(self):
        return f"error accessing path {self.path}: {self.reason}"


class EnumerationError(DedupError):
    """A directory cannot be listed."""

    def __init__(self, path, reason: str):
        super().__init__(path, reason)
        self.path = path
        self.reason = reason

    def __str__(self):
        return f"error reading directory {self.path}: {self.reason}"


class RecordError(DedupError):
    """Metadata of a single directory entry cannot be read."""

    def __init__(self, path, reason: str):
        super().__init__(path, reason)
        self.path = path
        self.reason = reason

    def __str__(self):
        return f"could not get info for {self.path}: {self.reason}"


class ReplaceStep(StrEnum):
    CHECK_SOURCE = 'check_source'
    CHECK_DESTINATION = 'check_destination'
    REMOVE = 'remove'
    LINK = 'link'


class ReplacementError(DedupError):
    """One of the steps replacing a destination file with a symlink failed.

    All constructor arguments are kept in ``args`` so that instances survive pickling when raised inside a
    worker process of the Processor pool.
    """

    def __init__(self, step: str, message: str):
        super().__init__(step, message)
        self.step = ReplaceStep(step)
        self.message = message

    def __str__(self):
        return self.message
