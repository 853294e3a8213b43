"""YAML parser for anchorsched project documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ParseError, ValidationError
from .models import (
    Anchor,
    AnchorType,
    ApplicabilityClause,
    ApplicabilityContext,
    ApplicabilityRule,
    CompletionAnchor,
    FixedDateAnchor,
    ItemAnchor,
    MilestoneAnchor,
    ScheduleItem,
    SupplierBundle,
    TemplateApplicability,
    TrackedInstance,
)
from .schemas import (
    AnchorSchema,
    ItemSchema,
    ProjectDocumentSchema,
    SupplierSchema,
    TemplateRuleSchema,
)


def _default_items() -> list[ScheduleItem]:
    return []


def _default_dates() -> dict[str, date | None]:
    return {}


def _default_suppliers() -> list[SupplierBundle]:
    return []


def _default_templates() -> list[TemplateApplicability]:
    return []


@dataclass
class ProjectDocument:
    """Everything a project document supplies to the engines."""

    project_id: str
    items: list[ScheduleItem] = field(default_factory=_default_items)
    template_items: list[ScheduleItem] = field(default_factory=_default_items)
    milestone_dates: dict[str, date | None] = field(default_factory=_default_dates)
    actual_dates: dict[str, date | None] = field(default_factory=_default_dates)
    suppliers: list[SupplierBundle] = field(default_factory=_default_suppliers)
    applicability_context: ApplicabilityContext = field(default_factory=ApplicabilityContext)
    templates: list[TemplateApplicability] = field(default_factory=_default_templates)


def build_anchor(schema: AnchorSchema) -> Anchor:
    """Convert an anchor schema into its tagged variant."""
    if schema.type == AnchorType.SCHEDULE_ITEM:
        assert schema.ref is not None  # enforced by AnchorSchema
        return ItemAnchor(ref_id=schema.ref)
    if schema.type == AnchorType.COMPLETION:
        assert schema.ref is not None
        return CompletionAnchor(ref_id=schema.ref)
    if schema.type == AnchorType.PROJECT_MILESTONE:
        return MilestoneAnchor(milestone_id=schema.milestone)
    return FixedDateAnchor(fixed_date=schema.fixed_date)


def build_item(item_id: str, schema: ItemSchema) -> ScheduleItem:
    """Convert an item schema into a ScheduleItem."""
    return ScheduleItem(
        id=item_id,
        name=schema.name,
        anchor=build_anchor(schema.anchor),
        kind=schema.kind,
        offset_days=schema.offset_days,
        override_enabled=schema.override_enabled,
        override_date=schema.override_date,
        template_item_id=schema.template_item,
    )


def _build_supplier(schema: SupplierSchema, item_names: dict[str, str]) -> SupplierBundle:
    instances = tuple(
        TrackedInstance(
            id=inst.id,
            schedule_item_id=inst.item,
            planned_date=inst.planned_date,
            actual_date=inst.actual_date,
            status=inst.status,
            locked=inst.locked,
            planned_date_override=inst.planned_date_override,
        )
        for inst in schema.instances
    )
    return SupplierBundle(
        supplier_project_id=schema.supplier_project or schema.id,
        supplier_id=schema.id,
        supplier_name=schema.name,
        instances=instances,
        item_names={
            inst.schedule_item_id: item_names[inst.schedule_item_id]
            for inst in instances
            if inst.schedule_item_id in item_names
        },
    )


def _build_template(template_id: str, schema: TemplateRuleSchema) -> TemplateApplicability:
    rule = None
    if schema.rule is not None:
        rule = ApplicabilityRule(operator=schema.rule.operator, enabled=schema.rule.enabled)
    clauses = tuple(
        ApplicabilityClause(subject=c.subject, comparator=c.comparator, value=c.value)
        for c in schema.clauses
    )
    return TemplateApplicability(template_id=template_id, rule=rule, clauses=clauses)


class ScheduleFileParser:
    """Parser for project document YAML files.

    Only parses and converts; structural checks on the items are done by
    anchorsched.scheduler.validate.
    """

    def parse_file(self, file_path: Path | str) -> ProjectDocument:
        """Parse a YAML file into a ProjectDocument."""
        path = Path(file_path)
        if not path.exists():
            raise ParseError(f"File not found: {file_path}")

        try:
            with path.open(encoding="utf-8") as f:
                data: Any = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ParseError(f"Failed to parse YAML: {e}") from e

        if not isinstance(data, dict):
            raise ParseError("YAML must contain a dictionary at the root level")

        return self.parse_data(data)  # type: ignore[arg-type]

    def parse_data(self, data: dict[str, Any]) -> ProjectDocument:
        """Convert loaded YAML data into a ProjectDocument."""
        try:
            schema = ProjectDocumentSchema(**data)
        except PydanticValidationError as e:
            problems = [
                f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
            ]
            raise ValidationError(f"Invalid YAML structure: {e}", problems) from e

        items = [build_item(item_id, item) for item_id, item in schema.items.items()]
        template_items = [
            build_item(item_id, item) for item_id, item in schema.template_items.items()
        ]
        item_names = {item.id: item.name for item in items}

        document = ProjectDocument(
            project_id=schema.project,
            items=items,
            template_items=template_items,
            milestone_dates=dict(schema.milestones),
            actual_dates=dict(schema.actual_dates),
            suppliers=[_build_supplier(s, item_names) for s in schema.suppliers],
        )

        if schema.applicability is not None:
            ctx = schema.applicability.context
            document.applicability_context = ApplicabilityContext(
                supplier_nmr_rank=ctx.supplier_nmr_rank,
                part_pa_ranks=tuple(ctx.part_pa_ranks),
            )
            document.templates = [
                _build_template(template_id, rule)
                for template_id, rule in schema.applicability.templates.items()
            ]

        return document
