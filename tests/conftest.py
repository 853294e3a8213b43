"""Pytest configuration and fixtures for anchorsched tests."""

from __future__ import annotations

from datetime import date
from typing import Any

import pytest

from anchorsched import context
from anchorsched.logger import reset_logger
from anchorsched.models import (
    Anchor,
    CompletionAnchor,
    FixedDateAnchor,
    InstanceStatus,
    ItemAnchor,
    ItemKind,
    MilestoneAnchor,
    ScheduleItem,
    SupplierBundle,
    TrackedInstance,
)


@pytest.fixture(autouse=True)
def clean_logger() -> None:
    """Reset logger state before each test for isolation."""
    reset_logger()


@pytest.fixture(autouse=True)
def clean_context() -> None:
    """Clear the global settings path before each test."""
    context.set_settings_path(None)


def _item(  # noqa: PLR0913 - mirrors ScheduleItem fields
    item_id: str,
    anchor: Anchor,
    *,
    name: str | None = None,
    kind: ItemKind = ItemKind.TASK,
    offset: int | None = None,
    override: date | None = None,
    template_item_id: str | None = None,
) -> ScheduleItem:
    return ScheduleItem(
        id=item_id,
        name=name or item_id,
        anchor=anchor,
        kind=kind,
        offset_days=offset,
        override_enabled=override is not None,
        override_date=override,
        template_item_id=template_item_id,
    )


def fixed(item_id: str, on: date | None, **kwargs: Any) -> ScheduleItem:
    """Create a FIXED_DATE item.

    Example:
        fixed("a", date(2025, 1, 1), name="Kickoff")
    """
    return _item(item_id, FixedDateAnchor(fixed_date=on), **kwargs)


def after(item_id: str, ref_id: str, offset: int | None = None, **kwargs: Any) -> ScheduleItem:
    """Create a SCHEDULE_ITEM item anchored to another item's planned date."""
    return _item(item_id, ItemAnchor(ref_id=ref_id), offset=offset, **kwargs)


def on_completion(
    item_id: str, ref_id: str, offset: int | None = None, **kwargs: Any
) -> ScheduleItem:
    """Create a COMPLETION item anchored to another item's actual date."""
    return _item(item_id, CompletionAnchor(ref_id=ref_id), offset=offset, **kwargs)


def at_milestone(
    item_id: str, milestone_id: str | None, offset: int | None = None, **kwargs: Any
) -> ScheduleItem:
    """Create a PROJECT_MILESTONE item."""
    return _item(item_id, MilestoneAnchor(milestone_id=milestone_id), offset=offset, **kwargs)


def instance(  # noqa: PLR0913 - mirrors TrackedInstance fields
    instance_id: str,
    item_id: str,
    planned: date | None = None,
    *,
    actual: date | None = None,
    status: InstanceStatus = InstanceStatus.NOT_STARTED,
    locked: bool = False,
    overridden: bool = False,
) -> TrackedInstance:
    """Create a tracked instance."""
    return TrackedInstance(
        id=instance_id,
        schedule_item_id=item_id,
        planned_date=planned,
        actual_date=actual,
        status=status,
        locked=locked,
        planned_date_override=overridden,
    )


def bundle(
    supplier_id: str, *instances: TrackedInstance, names: dict[str, str] | None = None
) -> SupplierBundle:
    """Create a supplier bundle whose name is derived from its ID."""
    return SupplierBundle(
        supplier_project_id=f"sp-{supplier_id}",
        supplier_id=supplier_id,
        supplier_name=f"Supplier {supplier_id}",
        instances=tuple(instances),
        item_names=names or {},
    )
