"""Applicability rules: decide which checklist items apply to a supplier."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .logger import get_logger
from .models import (
    ApplicabilityClause,
    ApplicabilityContext,
    ApplicabilityRule,
    ClauseSubject,
    Comparator,
    RuleOperator,
    TemplateApplicability,
)

logger = get_logger()


def parse_value_list(value: str) -> list[str]:
    """Split a comma-separated clause value into trimmed, non-empty tokens."""
    return [token.strip() for token in value.split(",") if token.strip()]


def _rank_index(value: str, rank_order: Sequence[str]) -> int | None:
    try:
        return list(rank_order).index(value)
    except ValueError:
        return None


def compare_value(  # noqa: PLR0911 - one branch per comparator
    subject: str | None,
    comparator: Comparator,
    clause_value: str,
    rank_order: Sequence[str],
) -> bool:
    """Compare a subject value against a clause value.

    Rank comparisons use position in ``rank_order``, where earlier entries are
    higher ranks: GTE means "at least as high as", LTE "at most as high as".
    Values missing from the rank order never satisfy GTE/LTE. A null subject
    only satisfies NEQ and NOT_IN.
    """
    if subject is None:
        return comparator in (Comparator.NEQ, Comparator.NOT_IN)

    if comparator == Comparator.EQ:
        return subject == clause_value
    if comparator == Comparator.NEQ:
        return subject != clause_value
    if comparator == Comparator.IN:
        return subject in parse_value_list(clause_value)
    if comparator == Comparator.NOT_IN:
        return subject not in parse_value_list(clause_value)

    subject_index = _rank_index(subject, rank_order)
    target_index = _rank_index(clause_value, rank_order)
    if subject_index is None or target_index is None:
        return False
    if comparator == Comparator.GTE:
        return subject_index <= target_index
    if comparator == Comparator.LTE:
        return subject_index >= target_index
    return False


def evaluate_clause(
    clause: ApplicabilityClause,
    context: ApplicabilityContext,
    rank_order: Sequence[str],
) -> bool:
    """Evaluate one clause. PART_PA passes if any part satisfies it."""
    if clause.subject == ClauseSubject.SUPPLIER_NMR:
        return compare_value(context.supplier_nmr_rank, clause.comparator, clause.value, rank_order)
    if clause.subject == ClauseSubject.PART_PA:
        return any(
            compare_value(rank, clause.comparator, clause.value, rank_order)
            for rank in context.part_pa_ranks
        )
    return False


def evaluate_rule(
    rule: ApplicabilityRule,
    clauses: Sequence[ApplicabilityClause],
    context: ApplicabilityContext,
    rank_order: Sequence[str],
    part_rank_order: Sequence[str] | None = None,
) -> bool:
    """Decide whether a rule includes the item for this context.

    A disabled rule, or one without clauses, always applies.

    Args:
        rule: Operator and enabled flag
        clauses: Clauses belonging to the rule
        context: Supplier rank and part ranks to test
        rank_order: Rank labels, highest first
        part_rank_order: Separate rank order for PART_PA clauses (defaults to rank_order)
    """
    if not rule.enabled or not clauses:
        return True

    part_order = rank_order if part_rank_order is None else part_rank_order
    results: list[bool] = []
    for clause in clauses:
        order = part_order if clause.subject == ClauseSubject.PART_PA else rank_order
        result = evaluate_clause(clause, context, order)
        logger.checks(
            f"  clause {clause.subject.value} {clause.comparator.value} {clause.value!r}: {result}"
        )
        results.append(result)

    if rule.operator == RuleOperator.ALL:
        return all(results)
    return any(results)


def evaluate_many(
    templates: Iterable[TemplateApplicability],
    context: ApplicabilityContext,
    rank_order: Sequence[str],
    part_rank_order: Sequence[str] | None = None,
) -> dict[str, bool]:
    """Evaluate applicability for several templates. Templates without a rule apply."""
    result: dict[str, bool] = {}
    for template in templates:
        if template.rule is None:
            result[template.template_id] = True
        else:
            result[template.template_id] = evaluate_rule(
                template.rule, template.clauses, context, rank_order, part_rank_order
            )
    return result
