"""Exception types raised by the stats registry and its collaborators."""

from __future__ import annotations


class StatsError(RuntimeError):
    """Base class for usage errors surfaced by runstats."""


class UnregisteredFieldError(StatsError, KeyError):
    """Raised when a W3C field is logged that was not declared up front."""

    def __init__(self, field: str) -> None:
        super().__init__(f"trying to log unregistered field: {field}")
        self.field = field

    def __str__(self) -> str:
        return self.args[0]


class UnknownAttributeError(StatsError, KeyError):
    """Raised when an introspection attribute name does not resolve to a metric."""

    def __init__(self, name: str) -> None:
        super().__init__(f"unknown stats attribute: {name}")
        self.name = name

    def __str__(self) -> str:
        return self.args[0]
