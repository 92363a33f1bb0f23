from typing import Iterable, List, Set

from lab_analyzer.parsers.models import (
    ConditionFamily,
    Recommendations,
    Severity,
    SeverityBuckets,
)
from lab_analyzer.validation.rules import AdviceCatalog

# mild findings (e.g. high HDL) count as abnormal but do not pull in family advice
FAMILY_TRIGGER = Severity.MODERATE


def _append_unique(target: List[str], items: Iterable[str]) -> None:
    for item in items:
        if item not in target:
            target.append(item)


def triggered_families(buckets: SeverityBuckets) -> List[ConditionFamily]:
    """Families attached to findings at or above the trigger tier, in enum order."""
    hit: Set[ConditionFamily] = set()
    for f in buckets.findings:
        if not f.is_normal and f.severity >= FAMILY_TRIGGER:
            hit.update(f.families)
    return [fam for fam in ConditionFamily if fam in hit]


def immediate_actions(buckets: SeverityBuckets, advice: AdviceCatalog) -> List[str]:
    # critical > high > none abnormal; only one policy applies
    if buckets.critical:
        return list(advice.immediate.critical)
    if buckets.high:
        return list(advice.immediate.high)
    if buckets.abnormal_count == 0:
        return list(advice.immediate.all_normal)
    return list(advice.immediate.moderate)


def synthesize(buckets: SeverityBuckets, advice: AdviceCatalog) -> Recommendations:
    lifestyle: List[str] = []
    dietary: List[str] = []
    follow_up: List[str] = []

    for fam in triggered_families(buckets):
        entry = advice.families[fam]
        _append_unique(lifestyle, entry.lifestyle)
        _append_unique(dietary, entry.dietary)
        _append_unique(follow_up, entry.follow_up)

    has_abnormal = buckets.abnormal_count > 0
    if has_abnormal:
        if not lifestyle:
            _append_unique(lifestyle, advice.fallback.lifestyle)
        if not dietary:
            _append_unique(dietary, advice.fallback.dietary)
    else:
        _append_unique(lifestyle, advice.all_normal.lifestyle)
        _append_unique(dietary, advice.all_normal.dietary)

    return Recommendations(
        immediate_actions=tuple(immediate_actions(buckets, advice)),
        lifestyle_recommendations=tuple(lifestyle),
        dietary_advice=tuple(dietary),
        follow_up_advice=tuple(follow_up),
    )
