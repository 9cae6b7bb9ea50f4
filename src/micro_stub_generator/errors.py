"""Exceptions raised while generating bindings."""

from __future__ import annotations


class GenerationError(Exception):
    """Raised when a schema cannot be turned into bindings, e.g. on unresolved types or name collisions."""

    pass
