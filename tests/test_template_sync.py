"""Tests for template diff and materialization."""

from collections.abc import Callable, Iterator
from datetime import date

import pytest

from anchorsched.models import (
    CompletionAnchor,
    FixedDateAnchor,
    ItemAnchor,
    ItemKind,
    MilestoneAnchor,
    ScheduleItem,
    SyncChangeType,
    TemplateSyncChange,
)
from anchorsched.template_sync import diff, materialize, out_of_sync, sync_all
from tests.conftest import after, at_milestone, fixed, on_completion


@pytest.fixture
def new_id() -> Callable[[], str]:
    counter: Iterator[int] = iter(range(1, 1000))
    return lambda: f"new-{next(counter)}"


class TestDiff:
    """Test diff()."""

    def test_in_sync(self) -> None:
        template = [
            fixed("t1", date(2025, 1, 1), name="Kickoff"),
            after("t2", "t1", 5, name="PPAP"),
        ]
        current = [
            fixed("c1", date(2025, 3, 3), name="Kickoff", template_item_id="t1"),
            after("c2", "c1", 5, name="PPAP", template_item_id="t2"),
        ]
        assert diff(current, template) == []

    def test_add_remove_update(self) -> None:
        template = [
            fixed("t1", date(2025, 1, 1), name="Kickoff Meeting"),
            after("t2", "t1", 14, name="PPAP"),
            at_milestone("t3", "sop", name="SOP", kind=ItemKind.MILESTONE),
        ]
        current = [
            fixed("c1", date(2025, 1, 1), name="Kickoff", template_item_id="t1"),
            after("c2", "c1", 10, name="PPAP", template_item_id="t2"),
            fixed("c3", None, name="Old step", template_item_id="t-old"),
            fixed("c4", None, name="Local item"),
        ]

        assert diff(current, template) == [
            TemplateSyncChange(SyncChangeType.ADD, "SOP", 'New milestone "SOP" will be added'),
            TemplateSyncChange(
                SyncChangeType.REMOVE,
                "Old step",
                '"Old step" no longer exists in the template and will be removed',
            ),
            TemplateSyncChange(
                SyncChangeType.UPDATE, "Kickoff Meeting", 'name: "Kickoff" -> "Kickoff Meeting"'
            ),
            TemplateSyncChange(SyncChangeType.UPDATE, "PPAP", "offset: 10 -> 14"),
        ]

    def test_update_lists_every_field(self) -> None:
        template = [after("t1", "t0", 3, name="Gate", kind=ItemKind.MILESTONE)]
        current = [fixed("c1", None, name="Gate", template_item_id="t1")]

        (change,) = diff(current, template)
        assert change.type == SyncChangeType.UPDATE
        assert change.details == (
            "kind: TASK -> MILESTONE; anchor: FIXED_DATE -> SCHEDULE_ITEM; offset: none -> 3"
        )

    def test_anchor_ref_and_dates_not_compared(self) -> None:
        template = [fixed("t1", date(2025, 1, 1)), after("t2", "t1")]
        current = [
            fixed(
                "c1", date(2026, 6, 6), name="t1", template_item_id="t1", override=date(2026, 1, 1)
            ),
            after("c2", "elsewhere", name="t2", template_item_id="t2"),
        ]
        assert diff(current, template) == []

    def test_new_task_wording(self) -> None:
        (change,) = diff([], [fixed("t1", None, name="Audit")])
        assert change.details == 'New task "Audit" will be added'


class TestMaterialize:
    """Test materialize()."""

    def test_new_items_wired_through_new_ids(self, new_id: Callable[[], str]) -> None:
        template = [
            fixed("t1", date(2025, 1, 1)),
            after("t2", "t1", 10),
            on_completion("t3", "t2", 2),
        ]
        result = materialize([], template, new_id)

        assert [item.id for item in result] == ["new-1", "new-2", "new-3"]
        assert [item.template_item_id for item in result] == ["t1", "t2", "t3"]
        assert result[0].anchor == FixedDateAnchor(fixed_date=date(2025, 1, 1))
        assert result[1].anchor == ItemAnchor(ref_id="new-1")
        assert result[1].offset_days == 10
        assert result[2].anchor == CompletionAnchor(ref_id="new-2")

    def test_forward_reference_resolved(self, new_id: Callable[[], str]) -> None:
        """An anchor may point at a template item listed later."""
        template = [after("t2", "t1", 1), fixed("t1", date(2025, 1, 1))]
        result = materialize([], template, new_id)
        assert result[0].anchor == ItemAnchor(ref_id="new-2")

    def test_existing_copies_keep_ids_and_data(self, new_id: Callable[[], str]) -> None:
        template = [fixed("t1", date(2025, 1, 1)), after("t2", "t1", 10), after("t3", "t2", 1)]
        kept = fixed("c1", date(2025, 3, 3), name="t1", template_item_id="t1")
        current = [
            kept,
            after("c2", "c1", 3, name="old", template_item_id="t2", override=date(2025, 5, 5)),
            fixed("c9", None, name="Local"),
            fixed("c5", None, name="Retired", template_item_id="t-old"),
        ]
        result = materialize(current, template, new_id)

        assert [item.id for item in result] == ["c1", "c2", "new-1", "c9"]
        assert result[0] is kept

        updated = result[1]
        assert updated.name == "t2"
        assert updated.anchor == ItemAnchor(ref_id="c1")
        assert updated.offset_days == 10
        assert updated.override_enabled
        assert updated.override_date == date(2025, 5, 5)

        assert result[2].anchor == ItemAnchor(ref_id="c2")

    def test_existing_date_kept_on_update(self, new_id: Callable[[], str]) -> None:
        template = [fixed("t1", date(2025, 1, 1), name="Kickoff", offset=2)]
        current = [fixed("c1", date(2025, 3, 3), name="Kickoff", template_item_id="t1")]
        (item,) = materialize(current, template, new_id)
        assert item.offset_days == 2
        assert item.anchor == FixedDateAnchor(fixed_date=date(2025, 3, 3))

    def test_anchor_type_change_takes_template_anchor(self, new_id: Callable[[], str]) -> None:
        template = [at_milestone("t1", "sop", -5)]
        current = [fixed("c1", date(2025, 3, 3), name="t1", template_item_id="t1")]
        (item,) = materialize(current, template, new_id)
        assert item.anchor == MilestoneAnchor(milestone_id="sop")
        assert item.offset_days == -5

    def test_unmappable_reference_becomes_empty_fixed_date(
        self, new_id: Callable[[], str]
    ) -> None:
        (item,) = materialize([], [after("t1", "missing", 2)], new_id)
        assert item.anchor == FixedDateAnchor()

    def test_result_is_in_sync(self, new_id: Callable[[], str]) -> None:
        template = [
            fixed("t1", date(2025, 1, 1), name="Kickoff"),
            after("t2", "t1", 10, name="PPAP"),
            on_completion("t3", "t2", 2, name="Review"),
        ]
        current = [after("c2", "c1", 3, name="Old PPAP", template_item_id="t2")]
        result = materialize(current, template, new_id)
        assert diff(result, template) == []

    def test_inputs_unchanged(self, new_id: Callable[[], str]) -> None:
        current = [after("c2", "c1", 3, name="old", template_item_id="t2")]
        snapshot = list(current)
        materialize(current, [fixed("t1", None), after("t2", "t1", 10)], new_id)
        assert current == snapshot


class TestBatchSync:
    """Test out_of_sync() and sync_all() over several entities."""

    @pytest.fixture
    def template(self) -> list[ScheduleItem]:
        return [fixed("t1", None, name="Kickoff"), after("t2", "t1", 10, name="PPAP")]

    def test_out_of_sync(self, template: list[ScheduleItem]) -> None:
        synced = [
            fixed("a1", date(2025, 1, 1), name="Kickoff", template_item_id="t1"),
            after("a2", "a1", 10, name="PPAP", template_item_id="t2"),
        ]
        stale = [fixed("b1", date(2025, 1, 1), name="Kickoff", template_item_id="t1")]
        entries = [("alpha", synced, template), ("beta", stale, template)]
        assert out_of_sync(entries) == ["beta"]

    def test_one_failure_does_not_stop_the_batch(self, template: list[ScheduleItem]) -> None:
        broken = [
            fixed("b1", None, name="Kickoff", template_item_id="t1"),
            # Local item anchored to a copy the sync removes
            after("b9", "b5", name="Local follow-up"),
            fixed("b5", None, name="Retired", template_item_id="t-old"),
        ]
        entries = [
            ("alpha", [], template),
            ("beta", broken, template),
            ("gamma", [fixed("g1", None, name="Kickoff", template_item_id="t1")], template),
        ]
        ids = iter(range(1, 100))
        results = sync_all(entries, lambda entity: f"{entity}-{next(ids)}")

        assert [(r.entity_id, r.success) for r in results] == [
            ("alpha", True),
            ("beta", False),
            ("gamma", True),
        ]

        alpha, beta, gamma = results
        assert [item.id for item in alpha.items] == ["alpha-1", "alpha-2"]
        assert alpha.items[1].anchor == ItemAnchor(ref_id="alpha-1")
        assert [c.type for c in alpha.changes] == [SyncChangeType.ADD, SyncChangeType.ADD]
        assert alpha.error is None

        assert beta.items == ()
        assert beta.error is not None
        assert "non-existent schedule item (ID b5)" in beta.error

        assert [item.id for item in gamma.items] == ["g1", "gamma-4"]
        assert gamma.items[1].anchor == ItemAnchor(ref_id="g1")

    def test_template_cycle_fails_entity(self) -> None:
        template = [after("t1", "t2"), after("t2", "t1")]
        ids = iter(range(1, 100))
        (result,) = sync_all([("alpha", [], template)], lambda entity: f"{entity}-{next(ids)}")
        assert not result.success
        assert result.error is not None
        assert "Circular dependency detected" in result.error

    def test_missing_dates_do_not_fail(self) -> None:
        template = [fixed("t1", None), at_milestone("t2", None)]
        ids = iter(range(1, 100))
        (result,) = sync_all([("alpha", [], template)], lambda entity: f"{entity}-{next(ids)}")
        assert result.success
        assert len(result.items) == 2

    def test_empty_batch(self) -> None:
        assert sync_all([], lambda entity: entity) == []
