"""Data models for anchorsched.

All models are transient value objects built by the caller from persisted
storage. The engines read them and return new objects; nothing here is
mutated in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import ClassVar, Union


class ItemKind(str, Enum):
    """Kind of schedule item. Cosmetic to the scheduling algorithm."""

    MILESTONE = "MILESTONE"
    TASK = "TASK"


class AnchorType(str, Enum):
    """How a schedule item's date is derived."""

    FIXED_DATE = "FIXED_DATE"
    SCHEDULE_ITEM = "SCHEDULE_ITEM"
    COMPLETION = "COMPLETION"
    PROJECT_MILESTONE = "PROJECT_MILESTONE"


@dataclass(frozen=True)
class FixedDateAnchor:
    """Anchored to a calendar date. A missing date resolves to null."""

    fixed_date: date | None = None

    type: ClassVar[AnchorType] = AnchorType.FIXED_DATE


@dataclass(frozen=True)
class ItemAnchor:
    """Anchored to the planned date of another schedule item."""

    ref_id: str

    type: ClassVar[AnchorType] = AnchorType.SCHEDULE_ITEM


@dataclass(frozen=True)
class CompletionAnchor:
    """Anchored to the actual completion date of another schedule item."""

    ref_id: str

    type: ClassVar[AnchorType] = AnchorType.COMPLETION


@dataclass(frozen=True)
class MilestoneAnchor:
    """Anchored to an external project milestone date."""

    milestone_id: str | None = None

    type: ClassVar[AnchorType] = AnchorType.PROJECT_MILESTONE


Anchor = Union[FixedDateAnchor, ItemAnchor, CompletionAnchor, MilestoneAnchor]


@dataclass(frozen=True)
class ScheduleItem:
    """A dated checklist item whose due date comes from its anchor.

    Template items share this shape; their anchor refs point at other
    template item IDs and ``template_item_id`` is unset.
    """

    id: str
    name: str
    anchor: Anchor
    kind: ItemKind = ItemKind.TASK
    offset_days: int | None = None  # None and 0 both mean "no offset" to the scheduler
    override_enabled: bool = False
    override_date: date | None = None
    template_item_id: str | None = None  # Origin template item for materialized copies

    @property
    def anchor_type(self) -> AnchorType:
        """Get the anchor type tag."""
        return self.anchor.type

    @property
    def anchor_ref(self) -> str | None:
        """Get the referenced item ID for item and completion anchors."""
        if isinstance(self.anchor, (ItemAnchor, CompletionAnchor)):
            return self.anchor.ref_id
        return None

    @property
    def has_override(self) -> bool:
        """True if an enabled override date supersedes the anchor."""
        return self.override_enabled and self.override_date is not None


@dataclass(frozen=True)
class ResolvedItem:
    """A schedule item together with its computed planned date.

    ``planned_date`` is None both for pending items (no error) and for
    stuck items (``error`` set).
    """

    item: ScheduleItem
    planned_date: date | None
    error: str | None = None

    @property
    def id(self) -> str:
        return self.item.id

    @property
    def name(self) -> str:
        return self.item.name

    @property
    def is_pending(self) -> bool:
        """True if the date is null for a non-error reason."""
        return self.planned_date is None and self.error is None


# --- Applicability ---


class RuleOperator(str, Enum):
    """How clause results combine."""

    ALL = "ALL"
    ANY = "ANY"


class ClauseSubject(str, Enum):
    """Which fact of the context a clause tests."""

    SUPPLIER_NMR = "SUPPLIER_NMR"
    PART_PA = "PART_PA"


class Comparator(str, Enum):
    """Comparison applied between a subject value and a clause value."""

    EQ = "EQ"
    NEQ = "NEQ"
    IN = "IN"
    NOT_IN = "NOT_IN"
    GTE = "GTE"
    LTE = "LTE"


@dataclass(frozen=True)
class ApplicabilityRule:
    """Rule header: operator plus enabled flag."""

    operator: RuleOperator = RuleOperator.ALL
    enabled: bool = True


@dataclass(frozen=True)
class ApplicabilityClause:
    """A single test. ``value`` is comma-separated for IN/NOT_IN."""

    subject: ClauseSubject
    comparator: Comparator
    value: str


@dataclass(frozen=True)
class ApplicabilityContext:
    """Facts about a supplier/part combination to test rules against."""

    supplier_nmr_rank: str | None = None
    part_pa_ranks: tuple[str, ...] = ()


@dataclass(frozen=True)
class TemplateApplicability:
    """A template's rule and clauses for batch evaluation. No rule means always applicable."""

    template_id: str
    rule: ApplicabilityRule | None = None
    clauses: tuple[ApplicabilityClause, ...] = ()


# --- Propagation ---


class InstanceStatus(str, Enum):
    """Tracked status of a supplier's schedule item instance."""

    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    UNDER_REVIEW = "Under Review"
    BLOCKED = "Blocked"
    COMPLETE = "Complete"
    NOT_REQUIRED = "Not Required"


@dataclass(frozen=True)
class TrackedInstance:
    """A supplier's tracked copy of one project schedule item."""

    id: str
    schedule_item_id: str
    planned_date: date | None = None
    actual_date: date | None = None
    status: InstanceStatus = InstanceStatus.NOT_STARTED
    locked: bool = False
    planned_date_override: bool = False


def _default_instances() -> tuple[TrackedInstance, ...]:
    return ()


def _default_names() -> dict[str, str]:
    return {}


@dataclass(frozen=True)
class SupplierBundle:
    """Everything propagation needs about one supplier's project."""

    supplier_project_id: str
    supplier_id: str
    supplier_name: str
    instances: tuple[TrackedInstance, ...] = field(default_factory=_default_instances)
    item_names: dict[str, str] = field(default_factory=_default_names)  # schedule item id -> name


@dataclass(frozen=True)
class PropagationChange:
    """An instance whose planned date will be updated."""

    instance_id: str
    supplier_project_id: str
    supplier_id: str
    supplier_name: str
    schedule_item_id: str
    item_name: str
    current_date: date | None
    new_date: date | None


@dataclass(frozen=True)
class PropagationSkip:
    """An instance left untouched, with the reason."""

    instance_id: str
    supplier_project_id: str
    supplier_id: str
    supplier_name: str
    schedule_item_id: str
    item_name: str
    current_date: date | None
    reason: str


def _default_changes() -> list[PropagationChange]:
    return []


def _default_skips() -> list[PropagationSkip]:
    return []


def _default_errors() -> list[tuple[str, str]]:
    return []


@dataclass
class PropagationPreview:
    """Classified outcome of re-running the scheduler for one project."""

    project_id: str
    will_change: list[PropagationChange] = field(default_factory=_default_changes)
    wont_change: list[PropagationSkip] = field(default_factory=_default_skips)


@dataclass
class PropagationResult:
    """Changes to write, instances skipped, and per-entity errors."""

    updated: list[PropagationChange] = field(default_factory=_default_changes)
    skipped: list[PropagationSkip] = field(default_factory=_default_skips)
    errors: list[tuple[str, str]] = field(default_factory=_default_errors)  # (entity id, message)


# --- Template sync ---


class SyncChangeType(str, Enum):
    """Structural change kinds produced by a template diff."""

    ADD = "add"
    REMOVE = "remove"
    UPDATE = "update"


@dataclass(frozen=True)
class TemplateSyncChange:
    """One difference between a template and its materialized copy."""

    type: SyncChangeType
    item_name: str
    details: str


def _default_items() -> tuple[ScheduleItem, ...]:
    return ()


def _default_sync_changes() -> tuple[TemplateSyncChange, ...]:
    return ()


@dataclass(frozen=True)
class BatchSyncResult:
    """Outcome of syncing one entity's items in a batch.

    On success ``items`` holds the synced project items and ``changes`` what
    was applied. On failure both are empty and ``error`` says why.
    """

    entity_id: str
    success: bool
    items: tuple[ScheduleItem, ...] = field(default_factory=_default_items)
    changes: tuple[TemplateSyncChange, ...] = field(default_factory=_default_sync_changes)
    error: str | None = None
