"""Pydantic schemas for YAML project documents."""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from .models import (
    AnchorType,
    ClauseSubject,
    Comparator,
    InstanceStatus,
    ItemKind,
    RuleOperator,
)


def _stringify_keys(v: Any) -> Any:
    """YAML reads bare numeric IDs as ints; IDs are strings everywhere else."""
    if isinstance(v, dict):
        return {str(key): value for key, value in v.items()}  # type: ignore[misc]
    return v


def _stringify(v: Any) -> Any:
    if v is None or isinstance(v, str):
        return v
    return str(v)


class AnchorSchema(BaseModel):
    """Schema for an item's anchor declaration."""

    type: AnchorType
    ref: str | None = None  # SCHEDULE_ITEM / COMPLETION
    milestone: str | None = None  # PROJECT_MILESTONE
    fixed_date: date | None = None  # FIXED_DATE

    @field_validator("ref", "milestone", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        """Accept numeric IDs."""
        return _stringify(v)

    @model_validator(mode="after")
    def check_ref(self) -> AnchorSchema:
        """Item-relative anchors must name the item they follow."""
        if self.type in (AnchorType.SCHEDULE_ITEM, AnchorType.COMPLETION) and self.ref is None:
            raise ValueError(f"{self.type.value} anchor requires 'ref'")
        return self


class ItemSchema(BaseModel):
    """Schema for a schedule item (project or template)."""

    name: str
    kind: ItemKind = ItemKind.TASK
    anchor: AnchorSchema
    offset_days: int | None = None
    override_enabled: bool = False
    override_date: date | None = None
    template_item: str | None = None

    @field_validator("template_item", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        """Accept numeric IDs."""
        return _stringify(v)


class InstanceSchema(BaseModel):
    """Schema for a supplier's tracked instance of a project item."""

    id: str
    item: str
    planned_date: date | None = None
    actual_date: date | None = None
    status: InstanceStatus = InstanceStatus.NOT_STARTED
    locked: bool = False
    planned_date_override: bool = False

    @field_validator("id", "item", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        """Accept numeric IDs."""
        return _stringify(v)


class SupplierSchema(BaseModel):
    """Schema for one supplier's participation in the project."""

    id: str
    name: str
    supplier_project: str | None = None  # Defaults to the supplier id
    instances: list[InstanceSchema] = Field(default_factory=list)

    @field_validator("id", "supplier_project", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        """Accept numeric IDs."""
        return _stringify(v)


class ClauseSchema(BaseModel):
    """Schema for an applicability clause."""

    subject: ClauseSubject
    comparator: Comparator
    value: str

    @field_validator("value", mode="before")
    @classmethod
    def coerce_value(cls, v: Any) -> Any:
        """Join list values for IN/NOT_IN into the comma-separated form."""
        if isinstance(v, list):
            return ",".join(str(item) for item in v)  # type: ignore[misc]
        return _stringify(v)


class RuleSchema(BaseModel):
    """Schema for an applicability rule header."""

    operator: RuleOperator = RuleOperator.ALL
    enabled: bool = True


class TemplateRuleSchema(BaseModel):
    """Schema for one template's rule and clauses."""

    rule: RuleSchema | None = None
    clauses: list[ClauseSchema] = Field(default_factory=list)


class ContextSchema(BaseModel):
    """Schema for the supplier/part facts rules are tested against."""

    supplier_nmr_rank: str | None = None
    part_pa_ranks: list[str] = Field(default_factory=list)

    @field_validator("part_pa_ranks", mode="before")
    @classmethod
    def ensure_list(cls, v: Any) -> list[str]:
        """Ensure value is a list."""
        if v is None:
            return []
        if isinstance(v, list):
            return [str(item) for item in v]  # type: ignore[misc]
        return [str(v)]


class ApplicabilitySchema(BaseModel):
    """Schema for the applicability section."""

    context: ContextSchema = Field(default_factory=ContextSchema)
    templates: dict[str, TemplateRuleSchema] = Field(default_factory=dict)

    @field_validator("templates", mode="before")
    @classmethod
    def coerce_keys(cls, v: Any) -> Any:
        """Accept numeric template IDs."""
        return _stringify_keys(v)


class ProjectDocumentSchema(BaseModel):
    """Schema for an entire project document."""

    project: str = "project"
    milestones: dict[str, date | None] = Field(default_factory=dict)
    actual_dates: dict[str, date | None] = Field(default_factory=dict)
    items: dict[str, ItemSchema] = Field(default_factory=dict)
    template_items: dict[str, ItemSchema] = Field(default_factory=dict)
    suppliers: list[SupplierSchema] = Field(default_factory=list)
    applicability: ApplicabilitySchema | None = None

    @field_validator("project", mode="before")
    @classmethod
    def coerce_project(cls, v: Any) -> Any:
        """Accept numeric project IDs."""
        return _stringify(v)

    @field_validator("milestones", "actual_dates", "items", "template_items", mode="before")
    @classmethod
    def coerce_keys(cls, v: Any) -> Any:
        """Accept numeric IDs as mapping keys."""
        return _stringify_keys(v)
