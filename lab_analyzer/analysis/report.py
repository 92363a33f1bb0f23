from typing import Iterable, List, Tuple

from lab_analyzer.parsers.models import AnalysisResult, Severity

TITLE = "LAB REPORT ANALYSIS"
RULE = "=" * 60
DISCLAIMER = (
    "This automated summary is rule-based triage of OCR text, not a diagnosis. "
    "Always review results with your doctor."
)

TIER_HEADERS: Tuple[Tuple[Severity, str], ...] = (
    (Severity.CRITICAL, "CRITICAL CONCERNS"),
    (Severity.HIGH, "HIGH PRIORITY CONCERNS"),
    (Severity.MODERATE, "MODERATE CONCERNS"),
    (Severity.MILD, "MILD CONCERNS"),
)


def _section(header: str, lines: Iterable[str]) -> List[str]:
    items = list(lines)
    if not items:
        return []
    return ["", header, "-" * len(header)] + [f"  - {line}" for line in items]


def render_report(result: AnalysisResult) -> str:
    out = [
        TITLE,
        RULE,
        (
            f"Tests analyzed: {result.total_tests} | "
            f"Normal: {result.normal_count} | Abnormal: {result.abnormal_count}"
        ),
    ]
    for severity, header in TIER_HEADERS:
        out += _section(header, (f.message for f in result.buckets.tier(severity)))
    out += _section("NORMAL RESULTS", result.normal_results)
    out += _section("IMMEDIATE ACTIONS", result.immediate_actions)
    out += _section("LIFESTYLE RECOMMENDATIONS", result.lifestyle_recommendations)
    out += _section("DIETARY ADVICE", result.dietary_advice)
    out += _section("FOLLOW-UP ADVICE", result.follow_up_advice)
    out += ["", RULE, DISCLAIMER]
    return "\n".join(out) + "\n"
