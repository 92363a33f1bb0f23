from typing import Dict, Iterable, List, Optional, Tuple

from lab_analyzer.parsers.base import format_number
from lab_analyzer.parsers.models import (
    ConditionFamily,
    Finding,
    Observation,
    ParameterKind,
    Severity,
    Status,
)
from lab_analyzer.validation.rules import ParameterRule


def _families(rule: ParameterRule, status: Status) -> Tuple[ConditionFamily, ...]:
    if status is Status.NORMAL:
        return ()
    override = None
    if status is Status.LOW:
        override = rule.low_families
    elif status is Status.HIGH:
        override = rule.high_families
    return tuple(override if override is not None else rule.families)


def _classify_quantitative(obs: Observation, rule: ParameterRule) -> Finding:
    value = float(obs.value)
    rng = rule.normal_range
    crit = rule.critical_range
    unit = rule.unit
    shown = f"{rule.name}: {format_number(value)} {unit}".rstrip()
    reference = f"{format_number(rng.min)}-{format_number(rng.max)}"

    if rng.min <= value <= rng.max:
        status, severity = Status.NORMAL, Severity.NONE
        message = f"{shown} (Normal)"
    elif value < rng.min:
        status = Status.LOW
        severity = rule.low_severity
        if crit is not None and crit.min is not None and value < crit.min:
            severity = Severity.CRITICAL
        text = rule.low_message or f"Low {rule.name}"
        message = f"{shown} (LOW - Normal: {reference}) - {text}"
    else:
        status = Status.HIGH
        severity = rule.high_severity
        if crit is not None and crit.max is not None and value > crit.max:
            severity = Severity.CRITICAL
        text = rule.high_message or f"High {rule.name}"
        message = f"{shown} (HIGH - Normal: {reference}) - {text}"

    return Finding(
        parameter_name=rule.name,
        rule_key=rule.key,
        kind=rule.kind,
        value=value,
        unit=unit,
        status=status,
        severity=severity,
        message=message,
        families=_families(rule, status),
        reference=reference,
    )


def _classify_qualitative(obs: Observation, rule: ParameterRule) -> Finding:
    token = str(obs.value).strip().lower()
    if token == rule.normal_token or token in rule.normal_synonyms:
        status, severity = Status.NORMAL, Severity.NONE
        message = f"{rule.name}: {token.upper()}"
    else:
        status, severity = Status.ABNORMAL, rule.severity
        text = rule.abnormal_message or f"Abnormal {rule.name}"
        message = f"{rule.name}: {token.upper()} - {text}"

    return Finding(
        parameter_name=rule.name,
        rule_key=rule.key,
        kind=rule.kind,
        value=token,
        unit=rule.unit,
        status=status,
        severity=severity,
        message=message,
        families=_families(rule, status),
        reference=rule.normal_token,
    )


def classify(obs: Observation, rule: ParameterRule) -> Finding:
    """Judge one observation against its rule. Works on the parsed value only."""
    if rule.kind is ParameterKind.QUANTITATIVE:
        return _classify_quantitative(obs, rule)
    return _classify_qualitative(obs, rule)


def classify_all(
    observations: Iterable[Observation], rules: Iterable[ParameterRule]
) -> List[Finding]:
    by_key: Dict[str, ParameterRule] = {r.key: r for r in rules}
    findings: List[Finding] = []
    for obs in observations:
        rule: Optional[ParameterRule] = by_key.get(obs.rule_key)
        if rule is None:
            # observation from a different table; nothing to judge it against
            continue
        findings.append(classify(obs, rule))
    return findings
