"""Tests for applicability rule evaluation."""

import io

import pytest

from anchorsched.applicability import (
    compare_value,
    evaluate_clause,
    evaluate_many,
    evaluate_rule,
    parse_value_list,
)
from anchorsched.logger import setup_logger
from anchorsched.models import (
    ApplicabilityClause,
    ApplicabilityContext,
    ApplicabilityRule,
    ClauseSubject,
    Comparator,
    RuleOperator,
    TemplateApplicability,
)

NMR_RANKS = ["A1", "A2", "B1", "B2", "C1"]
PA_RANKS = ["Critical", "High", "Medium", "Low"]


def nmr(comparator: Comparator, value: str) -> ApplicabilityClause:
    return ApplicabilityClause(ClauseSubject.SUPPLIER_NMR, comparator, value)


def part(comparator: Comparator, value: str) -> ApplicabilityClause:
    return ApplicabilityClause(ClauseSubject.PART_PA, comparator, value)


class TestParseValueList:
    """Test comma-separated value parsing."""

    def test_trims_and_drops_empty(self) -> None:
        assert parse_value_list(" A1, B1 ,,C1,") == ["A1", "B1", "C1"]

    def test_empty(self) -> None:
        assert parse_value_list("") == []
        assert parse_value_list(" , ") == []


class TestCompareValue:
    """Test compare_value for each comparator."""

    @pytest.mark.parametrize(
        ("subject", "comparator", "value", "expected"),
        [
            ("A1", Comparator.EQ, "A1", True),
            ("A1", Comparator.EQ, "a1", False),
            ("A1", Comparator.NEQ, "B1", True),
            ("A1", Comparator.NEQ, "A1", False),
            ("B1", Comparator.IN, "A1, B1", True),
            ("C1", Comparator.IN, "A1,B1", False),
            ("C1", Comparator.NOT_IN, "A1,B1", True),
            ("A1", Comparator.NOT_IN, "A1,B1", False),
            ("A1", Comparator.GTE, "B1", True),
            ("B1", Comparator.GTE, "B1", True),
            ("C1", Comparator.GTE, "B1", False),
            ("C1", Comparator.LTE, "B1", True),
            ("A1", Comparator.LTE, "B1", False),
            ("B1", Comparator.LTE, "B1", True),
        ],
    )
    def test_comparators(
        self, subject: str, comparator: Comparator, value: str, expected: bool
    ) -> None:
        assert compare_value(subject, comparator, value, NMR_RANKS) is expected

    @pytest.mark.parametrize(
        ("comparator", "expected"),
        [
            (Comparator.EQ, False),
            (Comparator.NEQ, True),
            (Comparator.IN, False),
            (Comparator.NOT_IN, True),
            (Comparator.GTE, False),
            (Comparator.LTE, False),
        ],
    )
    def test_null_subject(self, comparator: Comparator, expected: bool) -> None:
        assert compare_value(None, comparator, "A1", NMR_RANKS) is expected

    @pytest.mark.parametrize("comparator", [Comparator.GTE, Comparator.LTE])
    def test_unranked_values_fail_rank_comparisons(self, comparator: Comparator) -> None:
        assert compare_value("Z9", comparator, "B1", NMR_RANKS) is False
        assert compare_value("B1", comparator, "Z9", NMR_RANKS) is False


class TestEvaluateClause:
    """Test clause evaluation against a context."""

    def test_supplier_clause(self) -> None:
        context = ApplicabilityContext(supplier_nmr_rank="A1")
        assert evaluate_clause(nmr(Comparator.GTE, "B1"), context, NMR_RANKS)

    def test_part_clause_any_part(self) -> None:
        context = ApplicabilityContext(part_pa_ranks=("Low", "Critical"))
        assert evaluate_clause(part(Comparator.EQ, "Critical"), context, PA_RANKS)

    def test_part_clause_no_matching_part(self) -> None:
        context = ApplicabilityContext(part_pa_ranks=("Low", "Medium"))
        assert not evaluate_clause(part(Comparator.EQ, "Critical"), context, PA_RANKS)

    def test_part_clause_without_parts(self) -> None:
        context = ApplicabilityContext(part_pa_ranks=())
        assert not evaluate_clause(part(Comparator.NEQ, "Critical"), context, PA_RANKS)


class TestEvaluateRule:
    """Test rule evaluation."""

    def test_disabled_rule_applies(self) -> None:
        rule = ApplicabilityRule(enabled=False)
        context = ApplicabilityContext(supplier_nmr_rank="C1")
        assert evaluate_rule(rule, [nmr(Comparator.EQ, "A1")], context, NMR_RANKS)

    def test_rule_without_clauses_applies(self) -> None:
        assert evaluate_rule(ApplicabilityRule(), [], ApplicabilityContext(), NMR_RANKS)

    def test_all_operator(self) -> None:
        rule = ApplicabilityRule(operator=RuleOperator.ALL)
        context = ApplicabilityContext(supplier_nmr_rank="A2")
        clauses = [nmr(Comparator.GTE, "B1"), nmr(Comparator.NEQ, "A1")]
        assert evaluate_rule(rule, clauses, context, NMR_RANKS)
        clauses.append(nmr(Comparator.EQ, "A1"))
        assert not evaluate_rule(rule, clauses, context, NMR_RANKS)

    def test_any_operator(self) -> None:
        rule = ApplicabilityRule(operator=RuleOperator.ANY)
        context = ApplicabilityContext(supplier_nmr_rank="C1")
        assert evaluate_rule(
            rule, [nmr(Comparator.EQ, "A1"), nmr(Comparator.IN, "B2,C1")], context, NMR_RANKS
        )
        assert not evaluate_rule(
            rule, [nmr(Comparator.EQ, "A1"), nmr(Comparator.GTE, "B1")], context, NMR_RANKS
        )

    def test_separate_part_rank_order(self) -> None:
        rule = ApplicabilityRule(operator=RuleOperator.ALL)
        context = ApplicabilityContext(supplier_nmr_rank="A1", part_pa_ranks=("High",))
        clauses = [nmr(Comparator.GTE, "B1"), part(Comparator.GTE, "Medium")]
        assert evaluate_rule(rule, clauses, context, NMR_RANKS, PA_RANKS)
        # Without the PA order, "High" is unranked and GTE fails
        assert not evaluate_rule(rule, clauses, context, NMR_RANKS)


class TestEvaluateMany:
    """Test evaluation across templates."""

    def test_mixed_templates(self) -> None:
        context = ApplicabilityContext(supplier_nmr_rank="B2", part_pa_ranks=("Critical",))
        templates = [
            TemplateApplicability("no-rule"),
            TemplateApplicability(
                "high-risk-only",
                ApplicabilityRule(),
                (nmr(Comparator.GTE, "A2"),),
            ),
            TemplateApplicability(
                "critical-parts",
                ApplicabilityRule(),
                (part(Comparator.EQ, "Critical"),),
            ),
        ]
        results = evaluate_many(templates, context, NMR_RANKS, PA_RANKS)
        assert results == {"no-rule": True, "high-risk-only": False, "critical-parts": True}

    def test_empty(self) -> None:
        assert evaluate_many([], ApplicabilityContext(), NMR_RANKS) == {}


class TestLogging:
    """Test per-clause logging."""

    def test_checks_level_logs_clauses(self) -> None:
        stream = io.StringIO()
        setup_logger(2, stream=stream)
        context = ApplicabilityContext(supplier_nmr_rank="A1")
        evaluate_rule(ApplicabilityRule(), [nmr(Comparator.EQ, "A1")], context, NMR_RANKS)
        assert "clause SUPPLIER_NMR EQ 'A1': True" in stream.getvalue()
