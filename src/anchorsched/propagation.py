"""Propagation of recomputed planned dates to suppliers' tracked instances.

Pure functions: the caller loads instances from storage, asks for a preview,
and writes the ``updated`` entries of the filtered result back (ideally in a
single transaction).
"""

from __future__ import annotations

from collections.abc import Collection, Mapping, Sequence
from dataclasses import replace
from datetime import date

from .config import PropagationPolicy
from .logger import get_logger
from .models import (
    InstanceStatus,
    PropagationChange,
    PropagationPreview,
    PropagationResult,
    PropagationSkip,
    ScheduleItem,
    SupplierBundle,
    TrackedInstance,
)
from .scheduler import resolve

logger = get_logger()

REASON_LOCKED = "Locked"
REASON_OVERRIDDEN = "Manually overridden"
REASON_COMPLETE = "Already complete"
REASON_NO_CHANGE = "No change needed"
REASON_SUPPLIER_EXCLUDED = "Supplier excluded from propagation"
UNKNOWN_ITEM_NAME = "Unknown"
DEFAULT_MAX_ITERATIONS = 10


def skip_reason(instance: TrackedInstance, policy: PropagationPolicy) -> str | None:
    """Get the protection reason for an instance, or None if it may change.

    Precedence: locked, then overridden, then complete.
    """
    if policy.skip_locked and instance.locked:
        return REASON_LOCKED
    if policy.skip_overridden and instance.planned_date_override:
        return REASON_OVERRIDDEN
    if policy.skip_complete and instance.status == InstanceStatus.COMPLETE:
        return REASON_COMPLETE
    return None


def preview(
    project_id: str,
    items: Sequence[ScheduleItem],
    milestone_dates: Mapping[str, date | None],
    suppliers: Sequence[SupplierBundle],
    policy: PropagationPolicy,
) -> PropagationPreview:
    """Recompute dates per supplier and classify every tracked instance.

    Each supplier gets its own scheduler run, because COMPLETION anchors
    depend on that supplier's actual completion dates.

    Args:
        project_id: Project being propagated
        items: The project's schedule items with their current anchors
        milestone_dates: Project milestone dates, shared by all suppliers
        suppliers: Per-supplier instance bundles
        policy: Protection flags and business-day setting

    Returns:
        PropagationPreview with will-change and won't-change instances
    """
    result = PropagationPreview(project_id=project_id)

    for supplier in suppliers:
        actual_dates = {inst.schedule_item_id: inst.actual_date for inst in supplier.instances}
        recalculated = resolve(items, policy.use_business_days, actual_dates, milestone_dates)
        new_dates = {r.id: r.planned_date for r in recalculated}

        for instance in supplier.instances:
            new_date = new_dates.get(instance.schedule_item_id)
            item_name = supplier.item_names.get(instance.schedule_item_id, UNKNOWN_ITEM_NAME)
            base = {
                "instance_id": instance.id,
                "supplier_project_id": supplier.supplier_project_id,
                "supplier_id": supplier.supplier_id,
                "supplier_name": supplier.supplier_name,
                "schedule_item_id": instance.schedule_item_id,
                "item_name": item_name,
                "current_date": instance.planned_date,
            }

            reason = skip_reason(instance, policy)
            if reason is None and new_date == instance.planned_date:
                reason = REASON_NO_CHANGE

            if reason is not None:
                logger.checks(f"  {supplier.supplier_name} / {item_name}: skip ({reason})")
                result.wont_change.append(PropagationSkip(**base, reason=reason))
                continue

            logger.changes(
                f"{supplier.supplier_name} / {item_name}: {instance.planned_date} -> {new_date}"
            )
            result.will_change.append(PropagationChange(**base, new_date=new_date))

    return result


def filter_changes(
    preview_result: PropagationPreview,
    selected_supplier_ids: Collection[str] | None = None,
) -> PropagationResult:
    """Select which previewed changes to apply.

    With no selection every change is applied. Changes for unselected
    suppliers are skipped; won't-change entries are always skipped.
    """
    result = PropagationResult()

    for change in preview_result.will_change:
        if selected_supplier_ids is not None and change.supplier_id not in selected_supplier_ids:
            result.skipped.append(
                PropagationSkip(
                    instance_id=change.instance_id,
                    supplier_project_id=change.supplier_project_id,
                    supplier_id=change.supplier_id,
                    supplier_name=change.supplier_name,
                    schedule_item_id=change.schedule_item_id,
                    item_name=change.item_name,
                    current_date=change.current_date,
                    reason=REASON_SUPPLIER_EXCLUDED,
                )
            )
        else:
            result.updated.append(change)

    result.skipped.extend(preview_result.wont_change)
    return result


def apply_changes(
    suppliers: Sequence[SupplierBundle], changes: Sequence[PropagationChange]
) -> list[SupplierBundle]:
    """Return copies of the bundles with the changed planned dates written in."""
    new_dates = {change.instance_id: change.new_date for change in changes}
    updated: list[SupplierBundle] = []
    for supplier in suppliers:
        instances = tuple(
            replace(inst, planned_date=new_dates[inst.id]) if inst.id in new_dates else inst
            for inst in supplier.instances
        )
        updated.append(replace(supplier, instances=instances))
    return updated


def cascade(  # noqa: PLR0913 - mirrors preview() plus selection and bound
    project_id: str,
    items: Sequence[ScheduleItem],
    milestone_dates: Mapping[str, date | None],
    suppliers: Sequence[SupplierBundle],
    policy: PropagationPolicy,
    selected_supplier_ids: Collection[str] | None = None,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> tuple[PropagationResult, int]:
    """Preview and apply repeatedly until no further changes appear.

    Works on in-memory copies of the bundles. Each instance appears at most
    once in ``updated``, carrying its original date and its final new date.
    If the bound is hit, instances still changing are reported in ``errors``.

    Returns:
        Tuple of (accumulated result, iterations run)
    """
    current = list(suppliers)
    accumulated: dict[str, PropagationChange] = {}
    last = PropagationResult()

    for iteration in range(1, max_iterations + 1):
        last = filter_changes(
            preview(project_id, items, milestone_dates, current, policy), selected_supplier_ids
        )
        if not last.updated:
            return _merge(accumulated, last, []), iteration

        logger.debug(f"Propagation iteration {iteration}: {len(last.updated)} updates")
        for change in last.updated:
            earlier = accumulated.get(change.instance_id)
            if earlier is not None:
                accumulated[change.instance_id] = replace(
                    change, current_date=earlier.current_date
                )
            else:
                accumulated[change.instance_id] = change
        current = apply_changes(current, last.updated)

    logger.warning(
        f"Propagation for project {project_id} did not settle after {max_iterations} iterations"
    )
    errors = [
        (change.instance_id, f"Date still changing after {max_iterations} iterations")
        for change in last.updated
    ]
    return _merge(accumulated, last, errors), max_iterations


def _merge(
    accumulated: dict[str, PropagationChange],
    last: PropagationResult,
    errors: list[tuple[str, str]],
) -> PropagationResult:
    skipped = [skip for skip in last.skipped if skip.instance_id not in accumulated]
    return PropagationResult(updated=list(accumulated.values()), skipped=skipped, errors=errors)
