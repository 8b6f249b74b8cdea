"""Errors raised synchronously to callers of the engine (bad input)."""

from __future__ import annotations


class SnipstreamError(Exception):
    """Base class for engine errors."""


class InvalidEventError(SnipstreamError, ValueError):
    """A domain event is malformed (unknown kind, missing recipient)."""


class UnknownMetricError(SnipstreamError, ValueError):
    """A metric id does not match any known metric or alias."""

    def __init__(self, metric: str) -> None:
        super().__init__(f"Unknown metric: {metric!r}")
        self.metric = metric


class InvalidMetricValueError(SnipstreamError, ValueError):
    """A metric reading is not a finite, non-negative absolute total."""

    def __init__(self, value: object) -> None:
        super().__init__(f"Invalid metric value: {value!r}")
        self.value = value


class CatalogError(SnipstreamError, ValueError):
    """The achievement catalog failed validation at load time."""
