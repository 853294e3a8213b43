"""Structural validation of schedule items before they are saved."""

from __future__ import annotations

from collections.abc import Sequence

from anchorsched.exceptions import (
    CircularDependencyError,
    MissingReferenceError,
    ValidationError,
)
from anchorsched.models import FixedDateAnchor, ItemAnchor, MilestoneAnchor, ScheduleItem

CIRCULAR_DEPENDENCY_PREFIX = "Circular dependency detected"
MISSING_REFERENCE_MARKER = "references a non-existent schedule item"
SELF_REFERENCE_SUFFIX = "references itself"


def validate(items: Sequence[ScheduleItem]) -> list[str]:
    """Enumerate structural problems in a group of schedule items.

    Checks self-references, references to unknown items, FIXED_DATE items
    without a date, PROJECT_MILESTONE items without a milestone, and cycles
    through SCHEDULE_ITEM anchors. COMPLETION anchors wait on a recorded
    actual date rather than a computed one, so they never close a cycle. No dates are computed.

    Returns:
        Human-readable problem descriptions, empty if the items are valid
    """
    problems: list[str] = []
    by_id = {item.id: item for item in items}

    for item in items:
        ref = item.anchor_ref
        if ref is not None:
            if ref == item.id:
                problems.append(f'"{item.name}" {SELF_REFERENCE_SUFFIX}')
                continue
            if ref not in by_id:
                problems.append(f'"{item.name}" {MISSING_REFERENCE_MARKER} (ID {ref})')

        if item.override_enabled:
            continue
        if isinstance(item.anchor, FixedDateAnchor) and item.anchor.fixed_date is None:
            problems.append(f'"{item.name}" is FIXED_DATE but has no date set')
        if isinstance(item.anchor, MilestoneAnchor) and item.anchor.milestone_id is None:
            problems.append(f'"{item.name}" is PROJECT_MILESTONE but has no milestone reference')

    problems.extend(_find_cycles(items, by_id))
    return problems


def _find_cycles(items: Sequence[ScheduleItem], by_id: dict[str, ScheduleItem]) -> list[str]:
    """Report each distinct SCHEDULE_ITEM cycle once, as a path of item IDs."""
    reported: set[frozenset[str]] = set()
    finished: set[str] = set()
    messages: list[str] = []

    for start in items:
        path: list[str] = []
        current: str | None = start.id
        # Each item has at most one outgoing anchor edge, so a walk is enough
        while current is not None and current in by_id and current not in finished:
            if current in path:
                cycle = path[path.index(current) :]
                key = frozenset(cycle)
                if len(cycle) > 1 and key not in reported:
                    reported.add(key)
                    chain = " -> ".join([*cycle, current])
                    messages.append(f"{CIRCULAR_DEPENDENCY_PREFIX}: {chain}")
                break
            path.append(current)
            anchor = by_id[current].anchor
            current = anchor.ref_id if isinstance(anchor, ItemAnchor) else None
        finished.update(path)

    return messages


def _is_cycle(problem: str) -> bool:
    return problem.startswith(CIRCULAR_DEPENDENCY_PREFIX) or problem.endswith(SELF_REFERENCE_SUFFIX)


def _is_reference_problem(problem: str) -> bool:
    return _is_cycle(problem) or MISSING_REFERENCE_MARKER in problem


def _raise_for(problems: list[str]) -> None:
    message = "Invalid schedule items:\n  " + "\n  ".join(problems)
    if any(_is_cycle(p) for p in problems):
        raise CircularDependencyError(message, problems)
    if any(MISSING_REFERENCE_MARKER in p for p in problems):
        raise MissingReferenceError(message, problems)
    raise ValidationError(message, problems)


def ensure_valid(items: Sequence[ScheduleItem]) -> None:
    """Raise if validate() reports any problem.

    Raises:
        CircularDependencyError: If any problem is an anchor cycle, a
            self-reference included
        MissingReferenceError: If an anchor points at an unknown item
        ValidationError: For any other structural problem
    """
    problems = validate(items)
    if problems:
        _raise_for(problems)


def ensure_anchors_valid(items: Sequence[ScheduleItem]) -> None:
    """Like ensure_valid(), but only anchor wiring counts.

    FIXED_DATE items without a date and PROJECT_MILESTONE items without a
    milestone are accepted; freshly synced items are expected to have them
    filled in later.
    """
    problems = [p for p in validate(items) if _is_reference_problem(p)]
    if problems:
        _raise_for(problems)
