"""Reconcile template schedule items with their materialized project copies."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import replace

from .exceptions import AnchorschedError
from .logger import get_logger
from .models import (
    Anchor,
    BatchSyncResult,
    CompletionAnchor,
    FixedDateAnchor,
    ItemAnchor,
    ScheduleItem,
    SyncChangeType,
    TemplateSyncChange,
)
from .scheduler import ensure_anchors_valid

logger = get_logger()

# (entity id, current project items, template items)
SyncEntry = tuple[str, Sequence[ScheduleItem], Sequence[ScheduleItem]]


def _format_offset(offset: int | None) -> str:
    return "none" if offset is None else str(offset)


def _field_diffs(current: ScheduleItem, template: ScheduleItem) -> list[str]:
    """Describe each synced field that differs, as 'field: old -> new'."""
    diffs: list[str] = []
    if current.name != template.name:
        diffs.append(f'name: "{current.name}" -> "{template.name}"')
    if current.kind != template.kind:
        diffs.append(f"kind: {current.kind.value} -> {template.kind.value}")
    if current.anchor_type != template.anchor_type:
        diffs.append(f"anchor: {current.anchor_type.value} -> {template.anchor_type.value}")
    if current.offset_days != template.offset_days:
        diffs.append(
            f"offset: {_format_offset(current.offset_days)} -> "
            f"{_format_offset(template.offset_days)}"
        )
    return diffs


def diff(
    current_items: Sequence[ScheduleItem], template_items: Sequence[ScheduleItem]
) -> list[TemplateSyncChange]:
    """Describe the changes needed to bring project items in line with a template.

    Project items are matched to template items through ``template_item_id``.
    Template items with no copy are adds, copies whose template item is gone
    are removes, and matched pairs whose name, kind, anchor type or offset
    differ are updates. Nothing is modified.
    """
    changes: list[TemplateSyncChange] = []
    current_by_template = {
        item.template_item_id: item for item in current_items if item.template_item_id is not None
    }
    template_ids = {item.id for item in template_items}

    for t_item in template_items:
        if t_item.id not in current_by_template:
            changes.append(
                TemplateSyncChange(
                    type=SyncChangeType.ADD,
                    item_name=t_item.name,
                    details=f'New {t_item.kind.value.lower()} "{t_item.name}" will be added',
                )
            )

    for c_item in current_items:
        if c_item.template_item_id is not None and c_item.template_item_id not in template_ids:
            changes.append(
                TemplateSyncChange(
                    type=SyncChangeType.REMOVE,
                    item_name=c_item.name,
                    details=(
                        f'"{c_item.name}" no longer exists in the template and will be removed'
                    ),
                )
            )

    for t_item in template_items:
        c_item = current_by_template.get(t_item.id)
        if c_item is None:
            continue
        diffs = _field_diffs(c_item, t_item)
        if diffs:
            changes.append(
                TemplateSyncChange(
                    type=SyncChangeType.UPDATE, item_name=t_item.name, details="; ".join(diffs)
                )
            )

    return changes


def _remap_anchor(
    template_anchor: Anchor, id_map: dict[str, str], previous: Anchor | None
) -> Anchor:
    """Translate a template anchor into project terms.

    Item refs go through the template-id -> project-id map. Dates and
    milestone refs are project data, so an existing copy keeps its own.
    """
    if isinstance(template_anchor, (ItemAnchor, CompletionAnchor)):
        new_ref = id_map.get(template_anchor.ref_id)
        if new_ref is None:
            return FixedDateAnchor()
        return replace(template_anchor, ref_id=new_ref)
    if previous is not None and type(previous) is type(template_anchor):
        return previous
    return template_anchor


def materialize(
    current_items: Sequence[ScheduleItem],
    template_items: Sequence[ScheduleItem],
    new_id: Callable[[], str],
) -> list[ScheduleItem]:
    """Produce the project items that result from syncing with the template.

    Two passes: first every template item gets a project ID (existing copies
    keep theirs, new ones draw from ``new_id``), then items are built with
    anchor refs wired through that map. Copies of deleted template items are
    dropped; items with no template origin are kept unchanged at the end.

    Returns:
        A new list of project items; the inputs are not modified
    """
    current_by_template = {
        item.template_item_id: item for item in current_items if item.template_item_id is not None
    }

    # Pass 1: allocate project IDs
    id_map: dict[str, str] = {}
    for t_item in template_items:
        existing = current_by_template.get(t_item.id)
        id_map[t_item.id] = existing.id if existing is not None else new_id()

    # Pass 2: build items with anchors wired through the map
    result: list[ScheduleItem] = []
    for t_item in template_items:
        existing = current_by_template.get(t_item.id)
        if existing is None:
            logger.changes(f"Adding '{t_item.name}' as {id_map[t_item.id]}")
            result.append(
                ScheduleItem(
                    id=id_map[t_item.id],
                    name=t_item.name,
                    anchor=_remap_anchor(t_item.anchor, id_map, None),
                    kind=t_item.kind,
                    offset_days=t_item.offset_days,
                    template_item_id=t_item.id,
                )
            )
        elif _field_diffs(existing, t_item):
            logger.changes(f"Updating '{existing.name}' ({existing.id}) from template")
            result.append(
                replace(
                    existing,
                    name=t_item.name,
                    kind=t_item.kind,
                    anchor=_remap_anchor(t_item.anchor, id_map, existing.anchor),
                    offset_days=t_item.offset_days,
                )
            )
        else:
            result.append(existing)

    for item in current_items:
        if item.template_item_id is None:
            result.append(item)
        elif item.template_item_id not in id_map:
            logger.changes(f"Removing '{item.name}' ({item.id})")

    return result


def out_of_sync(entries: Iterable[SyncEntry]) -> list[str]:
    """Get the IDs of entities whose items differ from their template."""
    return [
        entity_id
        for entity_id, current_items, template_items in entries
        if diff(current_items, template_items)
    ]


def sync_all(
    entries: Iterable[SyncEntry], new_id: Callable[[str], str]
) -> list[BatchSyncResult]:
    """Materialize the template into several entities, one result per entity.

    Each entity is synced independently: a failure is recorded in its result
    and the batch moves on to the next one. A sync fails when the synced items
    have broken anchor wiring (a cycle or a reference to an unknown item);
    items still waiting for a date or milestone are fine.

    Args:
        entries: (entity id, current items, template items) per entity
        new_id: Factory for project item IDs, called with the entity ID

    Returns:
        One BatchSyncResult per entry, in input order
    """
    results: list[BatchSyncResult] = []
    for entity_id, current_items, template_items in entries:
        try:
            changes = diff(current_items, template_items)
            items = materialize(current_items, template_items, lambda e=entity_id: new_id(e))
            ensure_anchors_valid(items)
        except AnchorschedError as e:
            logger.warning(f"Template sync failed for {entity_id}: {e}")
            results.append(BatchSyncResult(entity_id=entity_id, success=False, error=str(e)))
            continue

        logger.changes(f"Synced {entity_id}: {len(changes)} change(s)")
        results.append(
            BatchSyncResult(
                entity_id=entity_id, success=True, items=tuple(items), changes=tuple(changes)
            )
        )
    return results
