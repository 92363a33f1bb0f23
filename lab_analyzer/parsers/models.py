# ===============================
# File: lab_analyzer/parsers/models.py
# ===============================
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


class Severity(str, Enum):
    """Severity tier, ordered none < mild < moderate < high < critical."""

    NONE = "none"
    MILD = "mild"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def __lt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


_SEVERITY_RANK = {
    Severity.NONE: 0,
    Severity.MILD: 1,
    Severity.MODERATE: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}

# Tiers that receive abnormal findings, highest first
SEVERITY_TIERS: Tuple[Severity, ...] = (
    Severity.CRITICAL,
    Severity.HIGH,
    Severity.MODERATE,
    Severity.MILD,
)


class Status(str, Enum):
    NORMAL = "normal"
    LOW = "low"
    HIGH = "high"
    ABNORMAL = "abnormal"


class ParameterKind(str, Enum):
    QUANTITATIVE = "quantitative"
    QUALITATIVE = "qualitative"


class Category(str, Enum):
    BLOOD = "blood"
    LIPID = "lipid"
    DIABETES = "diabetes"
    LIVER = "liver"
    KIDNEY = "kidney"
    THYROID = "thyroid"
    VITAMINS = "vitamins"
    URINE = "urine"


class ConditionFamily(str, Enum):
    # declaration order == order advice is emitted in
    LIPID = "lipid"
    DIABETES = "diabetes"
    LIVER = "liver"
    KIDNEY = "kidney"
    ANEMIA = "anemia"
    THYROID = "thyroid"
    VITAMINS = "vitamins"


class Normalizer(str, Enum):
    DECIMAL_SHIFT = "decimal_shift"
    LAKH_TO_COUNT = "lakh_to_count"
    THOUSANDS_TO_COUNT = "thousands_to_count"


Value = Union[float, str]


@dataclass(frozen=True)
class Observation:
    parameter_name: str
    rule_key: str
    kind: ParameterKind
    raw_value: str  # substring as matched in the text
    value: Value  # float after normalizer, or lower-cased token


@dataclass(frozen=True)
class Finding:
    parameter_name: str
    rule_key: str
    kind: ParameterKind
    value: Value
    unit: str
    status: Status
    severity: Severity
    message: str
    families: Tuple[ConditionFamily, ...] = ()
    reference: Optional[str] = None  # "13.5-17.5" or the normal token

    @property
    def is_normal(self) -> bool:
        return self.status is Status.NORMAL


@dataclass(frozen=True)
class SeverityBuckets:
    total_tests: int
    normal_count: int
    abnormal_count: int
    findings: Tuple[Finding, ...] = ()
    critical: Tuple[Finding, ...] = ()
    high: Tuple[Finding, ...] = ()
    moderate: Tuple[Finding, ...] = ()
    mild: Tuple[Finding, ...] = ()

    def tier(self, severity: Severity) -> Tuple[Finding, ...]:
        return {
            Severity.CRITICAL: self.critical,
            Severity.HIGH: self.high,
            Severity.MODERATE: self.moderate,
            Severity.MILD: self.mild,
        }.get(severity, ())

    @property
    def normal_findings(self) -> Tuple[Finding, ...]:
        return tuple(f for f in self.findings if f.is_normal)


@dataclass(frozen=True)
class Recommendations:
    immediate_actions: Tuple[str, ...] = ()
    lifestyle_recommendations: Tuple[str, ...] = ()
    dietary_advice: Tuple[str, ...] = ()
    follow_up_advice: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AnalysisResult:
    buckets: SeverityBuckets
    recommendations: Recommendations = field(default_factory=Recommendations)

    @property
    def total_tests(self) -> int:
        return self.buckets.total_tests

    @property
    def normal_count(self) -> int:
        return self.buckets.normal_count

    @property
    def abnormal_count(self) -> int:
        return self.buckets.abnormal_count

    @property
    def findings(self) -> Tuple[Finding, ...]:
        return self.buckets.findings

    @property
    def normal_results(self) -> List[str]:
        return [f.message for f in self.buckets.normal_findings]

    @property
    def immediate_actions(self) -> Tuple[str, ...]:
        return self.recommendations.immediate_actions

    @property
    def lifestyle_recommendations(self) -> Tuple[str, ...]:
        return self.recommendations.lifestyle_recommendations

    @property
    def dietary_advice(self) -> Tuple[str, ...]:
        return self.recommendations.dietary_advice

    @property
    def follow_up_advice(self) -> Tuple[str, ...]:
        return self.recommendations.follow_up_advice

    def as_payload(self) -> Dict[str, Any]:
        """Plain dict/list/str/number view, safe to JSON-encode or persist."""
        return {
            "total_tests": self.total_tests,
            "normal_count": self.normal_count,
            "abnormal_count": self.abnormal_count,
            "findings": [_finding_payload(f) for f in self.findings],
            "normal_results": self.normal_results,
            "concerns": {
                sev.value: [f.message for f in self.buckets.tier(sev)] for sev in SEVERITY_TIERS
            },
            "immediate_actions": list(self.immediate_actions),
            "lifestyle_recommendations": list(self.lifestyle_recommendations),
            "dietary_advice": list(self.dietary_advice),
            "follow_up_advice": list(self.follow_up_advice),
        }


def _finding_payload(f: Finding) -> Dict[str, Any]:
    return {
        "parameter": f.parameter_name,
        "key": f.rule_key,
        "kind": f.kind.value,
        "value": f.value,
        "unit": f.unit,
        "status": f.status.value,
        "severity": f.severity.value,
        "message": f.message,
        "families": [fam.value for fam in f.families],
        "reference": f.reference,
    }
