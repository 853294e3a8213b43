"""Errors raised at the edges of anchorsched: input parsing and explicit validation.

The engines themselves report problems in their results (stuck items,
skips, per-entity errors) instead of raising.
"""

from __future__ import annotations

from collections.abc import Sequence


class AnchorschedError(Exception):
    """Base class; the CLI reports any of these as ``Error: ...`` and exits 1."""

    pass


class ValidationError(AnchorschedError):
    """Schedule items or a project document failed structural checks.

    ``problems`` holds the individual validator messages, when there are any.
    """

    def __init__(self, message: str, problems: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.problems = list(problems)


class CircularDependencyError(ValidationError):
    """Schedule items anchor to each other in a loop (or to themselves)."""

    pass


class MissingReferenceError(ValidationError):
    """An anchor names a schedule item that is not in the group."""

    pass


class ParseError(AnchorschedError):
    """A project document could not be read or is not a YAML mapping."""

    pass
