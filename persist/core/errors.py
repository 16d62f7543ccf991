"""
Persist exception hierarchy.

Every error raised by the library itself inherits from PersistError.
Errors raised by caller-supplied validators are never wrapped, they reach
the caller unchanged.

Usage:
    try:
        record = await repo.get_or_fail("settings")
    except RecordNotFoundError as e:
        # Nothing stored under that name
    except PersistError as e:
        # Any other library failure
"""

from __future__ import annotations

from typing import Any


class PersistError(Exception):
    """Base exception for all Persist errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


# ━━━ Configuration ━━━


class ConfigError(PersistError):
    """Configuration is invalid, missing, or malformed."""

    pass


# ━━━ Storage ━━━


class StorageError(PersistError):
    """Storage backend failure, such as a file system or database error."""

    def __init__(
        self,
        message: str,
        name: str = "",
        details: dict | None = None,
    ):
        self.name = name
        super().__init__(message, details)


# ━━━ Records ━━━


class RecordError(PersistError):
    """Record lookup or lifecycle failure."""

    pass


class RecordNotFoundError(RecordError):
    """No value is stored under the requested name."""

    def __init__(self, record_class: type[Any], name: str):
        self.record_class = record_class
        self.name = name
        super().__init__(
            f"{record_class.__name__}('{name}') not found",
            {"record_class": record_class.__name__, "name": name},
        )


class RecordUpdateError(RecordError):
    """Partial update requested on a value that is not a structured object."""

    pass
