from typing import Dict, Iterable, List

from lab_analyzer.parsers.models import SEVERITY_TIERS, Finding, Severity, SeverityBuckets


def aggregate(findings: Iterable[Finding]) -> SeverityBuckets:
    """Bucket abnormal findings by tier, keeping rule-table order inside each tier."""
    ordered = tuple(findings)
    tiers: Dict[Severity, List[Finding]] = {sev: [] for sev in SEVERITY_TIERS}
    normal = 0
    for f in ordered:
        if f.is_normal:
            normal += 1
            continue
        tiers[f.severity].append(f)

    return SeverityBuckets(
        total_tests=len(ordered),
        normal_count=normal,
        abnormal_count=len(ordered) - normal,
        findings=ordered,
        critical=tuple(tiers[Severity.CRITICAL]),
        high=tuple(tiers[Severity.HIGH]),
        moderate=tuple(tiers[Severity.MODERATE]),
        mild=tuple(tiers[Severity.MILD]),
    )
