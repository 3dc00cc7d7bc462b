#!/usr/bin/env python3
"""
Exception types for keystroke statistics.

All three categories are recoverable: the engine catches them at its
boundary so that keystroke recording is never aborted.
"""


class KeyStatsError(Exception):
    """Base class for keystats errors."""


class MalformedInputError(KeyStatsError, ValueError):
    """A keystroke event or imported snapshot does not have the expected shape."""


class ResourceUnavailableError(KeyStatsError, RuntimeError):
    """An equivalence table source could not be fetched or parsed."""


class PersistenceError(KeyStatsError, OSError):
    """Writing or reading persisted statistics failed."""
