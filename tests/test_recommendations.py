# flake8: noqa

from lab_analyzer.analysis.aggregator import aggregate
from lab_analyzer.analysis.recommendations import immediate_actions, synthesize, triggered_families
from lab_analyzer.parsers.models import (
    ConditionFamily,
    Finding,
    ParameterKind,
    Severity,
    Status,
)
from lab_analyzer.validation.rules import load_advice_catalog

ADVICE = load_advice_catalog()


def finding(key, severity, families=(), status=None):
    if status is None:
        status = Status.NORMAL if severity is Severity.NONE else Status.HIGH
    return Finding(
        parameter_name=key.title(),
        rule_key=key,
        kind=ParameterKind.QUANTITATIVE,
        value=1.0,
        unit="",
        status=status,
        severity=severity,
        message=f"{key} message",
        families=tuple(families),
    )


def test_aggregate_counts_and_tier_order():
    fs = [
        finding("a", Severity.HIGH),
        finding("b", Severity.NONE),
        finding("c", Severity.CRITICAL),
        finding("d", Severity.HIGH),
        finding("e", Severity.MILD),
    ]
    b = aggregate(fs)
    assert (b.total_tests, b.normal_count, b.abnormal_count) == (5, 1, 4)
    assert [f.rule_key for f in b.high] == ["a", "d"]  # insertion order, not magnitude
    assert [f.rule_key for f in b.critical] == ["c"]
    assert [f.rule_key for f in b.mild] == ["e"]
    assert b.moderate == ()
    assert [f.rule_key for f in b.normal_findings] == ["b"]


def test_aggregate_empty():
    b = aggregate([])
    assert (b.total_tests, b.normal_count, b.abnormal_count) == (0, 0, 0)


def test_immediate_actions_precedence():
    crit = aggregate([finding("x", Severity.CRITICAL), finding("y", Severity.HIGH)])
    assert immediate_actions(crit, ADVICE) == ADVICE.immediate.critical

    high = aggregate([finding("y", Severity.HIGH), finding("z", Severity.MODERATE)])
    assert immediate_actions(high, ADVICE) == ADVICE.immediate.high

    normal = aggregate([finding("n", Severity.NONE)])
    assert immediate_actions(normal, ADVICE) == ADVICE.immediate.all_normal

    moderate = aggregate([finding("m", Severity.MODERATE)])
    assert immediate_actions(moderate, ADVICE) == ADVICE.immediate.moderate


def test_family_advice_emitted_once_for_many_findings():
    b = aggregate(
        [
            finding("total_cholesterol", Severity.HIGH, [ConditionFamily.LIPID]),
            finding("ldl", Severity.HIGH, [ConditionFamily.LIPID]),
            finding("triglycerides", Severity.CRITICAL, [ConditionFamily.LIPID]),
        ]
    )
    rec = synthesize(b, ADVICE)
    lipid = ADVICE.families[ConditionFamily.LIPID]
    assert list(rec.lifestyle_recommendations) == lipid.lifestyle
    assert list(rec.dietary_advice) == lipid.dietary
    assert list(rec.follow_up_advice) == lipid.follow_up


def test_families_follow_enum_order_and_never_duplicate_strings():
    b = aggregate(
        [
            finding("tsh", Severity.MODERATE, [ConditionFamily.THYROID]),
            finding("b12", Severity.MODERATE, [ConditionFamily.VITAMINS, ConditionFamily.ANEMIA]),
            finding("hb", Severity.HIGH, [ConditionFamily.ANEMIA]),
        ]
    )
    assert triggered_families(b) == [
        ConditionFamily.ANEMIA,
        ConditionFamily.THYROID,
        ConditionFamily.VITAMINS,
    ]
    rec = synthesize(b, ADVICE)
    for items in (rec.lifestyle_recommendations, rec.dietary_advice, rec.follow_up_advice):
        assert len(items) == len(set(items))


def test_mild_findings_do_not_trigger_families_but_get_fallback():
    b = aggregate([finding("hdl", Severity.MILD, [ConditionFamily.LIPID])])
    assert triggered_families(b) == []
    rec = synthesize(b, ADVICE)
    assert list(rec.lifestyle_recommendations) == ADVICE.fallback.lifestyle
    assert list(rec.dietary_advice) == ADVICE.fallback.dietary
    assert rec.follow_up_advice == ()


def test_fallback_fills_only_the_empty_lists():
    # thyroid advice has follow-up only, so lifestyle/dietary fall back to generic
    b = aggregate([finding("tsh", Severity.MODERATE, [ConditionFamily.THYROID])])
    rec = synthesize(b, ADVICE)
    assert list(rec.lifestyle_recommendations) == ADVICE.fallback.lifestyle
    assert list(rec.dietary_advice) == ADVICE.fallback.dietary
    assert list(rec.follow_up_advice) == ADVICE.families[ConditionFamily.THYROID].follow_up


def test_abnormal_without_family_still_gets_advice():
    b = aggregate([finding("wbc", Severity.HIGH)])
    rec = synthesize(b, ADVICE)
    assert rec.lifestyle_recommendations and rec.dietary_advice


def test_all_normal_path():
    rec = synthesize(aggregate([finding("glucose", Severity.NONE)]), ADVICE)
    assert list(rec.immediate_actions) == ADVICE.immediate.all_normal
    assert list(rec.lifestyle_recommendations) == ADVICE.all_normal.lifestyle
    assert list(rec.dietary_advice) == ADVICE.all_normal.dietary
    assert rec.follow_up_advice == ()
