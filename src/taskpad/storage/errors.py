# src/taskpad/storage/errors.py

from __future__ import annotations


class StorageError(RuntimeError):
    """A storage backend failed to read or write."""


class StorageUnavailableError(StorageError):
    """Stored tasks exist but cannot be read (corrupt file, broken database)."""


class InvalidRecordError(ValueError):
    """A stored record cannot be turned into a task."""
