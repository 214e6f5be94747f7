"""Structured error kinds raised by the planning core."""

from __future__ import annotations


class ValidationError(ValueError):
    """Invalid goal, profile or contribution parameters. Nothing was mutated."""


class NotFoundError(LookupError):
    """A goal id (or a user's profile) is absent from the collection."""


class PersistenceError(RuntimeError):
    """The storage collaborator failed to read or write.

    In-memory and persisted state may have diverged after this is raised.
    """
