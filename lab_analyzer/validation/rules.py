# lab_analyzer/validation/rules.py
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from lab_analyzer.parsers.models import (
    Category,
    ConditionFamily,
    Normalizer,
    ParameterKind,
    Severity,
)

CONFIG_DIR = Path(__file__).resolve().parent.parent / "configs"
DEFAULT_RULES_FILE = CONFIG_DIR / "lab_rules.yaml"
DEFAULT_ADVICE_FILE = CONFIG_DIR / "advice.yaml"


class NormalRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: float
    max: float
    unit: str = ""

    @model_validator(mode="after")
    def _ordered(self):
        if self.min > self.max:
            raise ValueError(f"normal_range min {self.min} > max {self.max}")
        return self


class CriticalRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: Optional[float] = None
    max: Optional[float] = None


class ParameterRule(BaseModel):
    """One clinical parameter: how to find it and how to judge it."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    key: str
    name: str
    category: Category
    kind: ParameterKind
    patterns: List[str] = Field(min_length=1)
    families: List[ConditionFamily] = []
    low_families: Optional[List[ConditionFamily]] = None
    high_families: Optional[List[ConditionFamily]] = None

    # quantitative
    normal_range: Optional[NormalRange] = None
    critical_range: Optional[CriticalRange] = None
    low_severity: Severity = Severity.MODERATE
    high_severity: Severity = Severity.MODERATE
    low_message: Optional[str] = None
    high_message: Optional[str] = None
    normalizer: Optional[Normalizer] = None

    # qualitative
    normal_token: Optional[str] = None
    normal_synonyms: List[str] = ["nil"]
    abnormal_message: Optional[str] = None
    severity: Severity = Severity.MODERATE

    @field_validator("patterns")
    @classmethod
    def _compilable(cls, v: List[str]):
        for p in v:
            try:
                compiled = re.compile(p)
            except re.error as ex:
                raise ValueError(f"pattern {p!r} does not compile: {ex}")
            if compiled.groups < 1:
                raise ValueError(f"pattern {p!r} needs a capture group for the value")
        return v

    @field_validator("low_severity", "high_severity", "severity")
    @classmethod
    def _not_none(cls, v: Severity):
        if v is Severity.NONE:
            raise ValueError("declared severity cannot be 'none'")
        return v

    @field_validator("normal_token")
    @classmethod
    def _lower_token(cls, v: Optional[str]):
        return v.strip().lower() if v is not None else v

    @field_validator("normal_synonyms")
    @classmethod
    def _lower_synonyms(cls, v: List[str]):
        return [s.strip().lower() for s in v]

    @model_validator(mode="after")
    def _range_xor_token(self):
        has_range = self.normal_range is not None
        has_token = self.normal_token is not None
        if has_range == has_token:
            raise ValueError(
                f"rule {self.key!r} must define exactly one of normal_range / normal_token"
            )
        if has_range and self.kind is not ParameterKind.QUANTITATIVE:
            raise ValueError(f"rule {self.key!r}: normal_range requires kind=quantitative")
        if has_token and self.kind is not ParameterKind.QUALITATIVE:
            raise ValueError(f"rule {self.key!r}: normal_token requires kind=qualitative")
        if self.normalizer is not None and not has_range:
            raise ValueError(f"rule {self.key!r}: normalizer only applies to quantitative rules")
        return self

    @property
    def unit(self) -> str:
        return self.normal_range.unit if self.normal_range else ""


class RuleTable(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: str = "1"
    rules: List[ParameterRule]

    @model_validator(mode="after")
    def _unique_keys(self):
        seen = set()
        for r in self.rules:
            if r.key in seen:
                raise ValueError(f"duplicated rule key {r.key!r}")
            seen.add(r.key)
        return self

    def get(self, key: str) -> Optional[ParameterRule]:
        return next((r for r in self.rules if r.key == key), None)


class FamilyAdvice(BaseModel):
    model_config = ConfigDict(frozen=True)

    lifestyle: List[str] = []
    dietary: List[str] = []
    follow_up: List[str] = []


class ImmediateActions(BaseModel):
    model_config = ConfigDict(frozen=True)

    critical: List[str]
    high: List[str]
    moderate: List[str] = []
    all_normal: List[str]


class GeneralAdvice(BaseModel):
    model_config = ConfigDict(frozen=True)

    lifestyle: List[str] = []
    dietary: List[str] = []


class AdviceCatalog(BaseModel):
    model_config = ConfigDict(frozen=True)

    immediate: ImmediateActions
    families: Dict[ConditionFamily, FamilyAdvice]
    fallback: GeneralAdvice
    all_normal: GeneralAdvice

    @field_validator("families")
    @classmethod
    def _every_family(cls, v: Dict[ConditionFamily, FamilyAdvice]):
        missing = [f.value for f in ConditionFamily if f not in v]
        if missing:
            raise ValueError(f"advice missing for families: {', '.join(missing)}")
        return v


# --------- Loaders ----------
def _read_yaml(source: Union[str, Path, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(source, dict):
        return source
    with open(source, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_rule_table(source: Union[str, Path, Dict[str, Any], None] = None) -> RuleTable:
    """Load and validate the rule table; raises pydantic.ValidationError."""
    return RuleTable.model_validate(_read_yaml(source or DEFAULT_RULES_FILE))


def load_advice_catalog(source: Union[str, Path, Dict[str, Any], None] = None) -> AdviceCatalog:
    return AdviceCatalog.model_validate(_read_yaml(source or DEFAULT_ADVICE_FILE))
