"""Wave-based planned date resolution for schedule items."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date

from anchorsched.dates import add_days
from anchorsched.logger import get_logger
from anchorsched.models import (
    CompletionAnchor,
    FixedDateAnchor,
    ItemAnchor,
    MilestoneAnchor,
    ResolvedItem,
    ScheduleItem,
)

logger = get_logger()

CIRCULAR_DEPENDENCY_ERROR = "Cannot compute date: circular dependency or missing anchor"


class _Deferred:
    """Marker for an item whose dependency has not resolved yet."""

    def __repr__(self) -> str:
        return "DEFERRED"


DEFERRED = _Deferred()


def _attempt(
    item: ScheduleItem,
    resolved: Mapping[str, date | None],
    use_business_days: bool,
    actual_dates: Mapping[str, date | None],
    milestone_dates: Mapping[str, date | None],
) -> date | None | _Deferred:
    """Try to compute one item's date from dates committed in earlier waves."""
    if item.has_override:
        return item.override_date

    anchor = item.anchor
    offset = item.offset_days or 0

    if isinstance(anchor, FixedDateAnchor):
        return anchor.fixed_date

    if isinstance(anchor, MilestoneAnchor):
        if anchor.milestone_id is None:
            return None
        milestone_date = milestone_dates.get(anchor.milestone_id)
        if milestone_date is None:
            return None
        return add_days(milestone_date, offset, use_business_days)

    if isinstance(anchor, ItemAnchor):
        if anchor.ref_id not in resolved:
            return DEFERRED
        ref_date = resolved[anchor.ref_id]
        if ref_date is None:
            return None
        return add_days(ref_date, offset, use_business_days)

    if isinstance(anchor, CompletionAnchor):
        if anchor.ref_id in actual_dates:
            actual = actual_dates[anchor.ref_id]
            if actual is None:
                return None  # Pending completion
            return add_days(actual, offset, use_business_days)
        # No completion tracked at all: wait for the referenced item, then pending
        if anchor.ref_id in resolved:
            return None
        return DEFERRED

    return None


def resolve(
    items: Sequence[ScheduleItem],
    use_business_days: bool = False,
    actual_dates: Mapping[str, date | None] | None = None,
    milestone_dates: Mapping[str, date | None] | None = None,
) -> list[ResolvedItem]:
    """Resolve planned dates for a group of schedule items.

    Items are resolved in waves: each wave computes every item whose anchor
    is already known from earlier waves. When a wave makes no progress, all
    remaining items are stuck (a cycle, a dangling reference, or something
    downstream of one) and are returned with a null date and an error.

    Null dates without an error mean "pending": a missing fixed date, a
    milestone with no date, a completion not yet recorded, or anything
    anchored to one of those.

    Args:
        items: All schedule items of one group; anchor refs must point inside it
        use_business_days: Offset by weekdays instead of calendar days
        actual_dates: Completion date per schedule item ID (None = known but incomplete)
        milestone_dates: Date per project milestone ID

    Returns:
        One ResolvedItem per input item, in input order
    """
    actual_dates = actual_dates or {}
    milestone_dates = milestone_dates or {}

    resolved: dict[str, date | None] = {}
    errors: dict[str, str] = {}
    remaining = list(items)
    wave = 0

    while remaining:
        wave += 1
        committed: dict[str, date | None] = {}
        still_waiting: list[ScheduleItem] = []

        for item in remaining:
            outcome = _attempt(item, resolved, use_business_days, actual_dates, milestone_dates)
            if isinstance(outcome, _Deferred):
                still_waiting.append(item)
            else:
                committed[item.id] = outcome

        if not committed:
            for item in still_waiting:
                errors[item.id] = CIRCULAR_DEPENDENCY_ERROR
                resolved[item.id] = None
                logger.changes(f"Cannot resolve '{item.id}' ({item.name}): stuck after wave {wave}")
            break

        logger.debug(f"Wave {wave}: resolved {len(committed)}, waiting {len(still_waiting)}")
        resolved.update(committed)
        remaining = still_waiting

    return [
        ResolvedItem(item=item, planned_date=resolved.get(item.id), error=errors.get(item.id))
        for item in items
    ]


@dataclass(frozen=True)
class ResolutionSummary:
    """Counts of resolution outcomes for reporting."""

    dated: int
    pending: int
    errored: int

    @property
    def total(self) -> int:
        return self.dated + self.pending + self.errored


def summarize(resolved_items: Iterable[ResolvedItem]) -> ResolutionSummary:
    """Count dated, pending and errored items."""
    dated = pending = errored = 0
    for resolved in resolved_items:
        if resolved.error is not None:
            errored += 1
        elif resolved.planned_date is None:
            pending += 1
        else:
            dated += 1
    return ResolutionSummary(dated=dated, pending=pending, errored=errored)
