import re
from functools import lru_cache
from typing import Iterable, List, Optional

from lab_analyzer.commons.logger import logger
from lab_analyzer.validation.rules import ParameterRule

from .base import apply_normalizer, parse_number
from .models import Observation, ParameterKind


@lru_cache(maxsize=512)
def _compile(pattern: str) -> "re.Pattern[str]":
    return re.compile(pattern, re.IGNORECASE)


def extract_observation(text: str, rule: ParameterRule) -> Optional[Observation]:
    """First pattern of the rule that yields a usable value wins."""
    for pattern in rule.patterns:
        m = _compile(pattern).search(text)
        if not m:
            continue
        raw = (m.group(1) or "").strip()

        if rule.kind is ParameterKind.QUANTITATIVE:
            number = parse_number(raw)
            if number is None:
                # corrupt OCR digits: behave as if this pattern never matched
                logger.debug(f"{rule.key}: non-numeric value {raw!r} ignored")
                continue
            value = apply_normalizer(rule.normalizer, number, m.groupdict().get("unit"))
        else:
            if not raw:
                continue
            value = raw.lower()

        return Observation(
            parameter_name=rule.name,
            rule_key=rule.key,
            kind=rule.kind,
            raw_value=raw,
            value=value,
        )
    return None


def extract_observations(text: str, rules: Iterable[ParameterRule]) -> List[Observation]:
    """Scan text against every rule, in declaration order; at most one Observation per rule.

    Rules are independent: overlapping patterns (blood vs urine glucose) may both fire.
    """
    observations: List[Observation] = []
    if not text:
        return observations
    for rule in rules:
        obs = extract_observation(text, rule)
        if obs is not None:
            observations.append(obs)
    return observations
