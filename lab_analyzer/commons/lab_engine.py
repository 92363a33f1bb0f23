from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from lab_analyzer.analysis.aggregator import aggregate
from lab_analyzer.analysis.classifier import classify_all
from lab_analyzer.analysis.recommendations import synthesize
from lab_analyzer.analysis.report import render_report
from lab_analyzer.commons.logger import logger
from lab_analyzer.parsers.base import normalize_text
from lab_analyzer.parsers.extractor import extract_observations
from lab_analyzer.parsers.models import AnalysisResult
from lab_analyzer.validation.rules import (
    CONFIG_DIR,
    AdviceCatalog,
    RuleTable,
    load_advice_catalog,
    load_rule_table,
)
from lab_analyzer.validation.validators import validate_input_text_or_raise


def analyze_text(raw_text: Optional[str], rules: RuleTable, advice: AdviceCatalog) -> AnalysisResult:
    """Pure pipeline: text -> observations -> findings -> buckets -> advice.

    Never raises on text content; empty or unrecognised text yields zero findings
    and the all-normal advice.
    """
    text = normalize_text(raw_text or "")
    observations = extract_observations(text, rules.rules)
    for obs in observations:
        logger.debug(f"{obs.parameter_name}: {obs.raw_value!r} -> {obs.value!r}")
    buckets = aggregate(classify_all(observations, rules.rules))
    return AnalysisResult(buckets=buckets, recommendations=synthesize(buckets, advice))


class LabAnalysisEngine:
    """Facade that loads config + rule table once and runs analyses against them.
    Instances hold only read-only tables, so one engine can serve many threads.
    """

    def __init__(self, config_path_or_obj: Any = None):
        # path, dict already loaded, or nothing (bundled defaults)
        if isinstance(config_path_or_obj, (str, Path)):
            with open(config_path_or_obj, "r", encoding="utf-8") as f:
                self.cfg = yaml.safe_load(f) or {}
        elif isinstance(config_path_or_obj, dict):
            self.cfg = config_path_or_obj
        else:
            self.cfg = {}

        engine_cfg: Dict[str, Any] = self.cfg.get("engine", {}) or {}
        self.reject_empty = bool(engine_cfg.get("reject_empty", True))
        self.min_confidence = float(engine_cfg.get("min_confidence", 0.6))
        self.rules = load_rule_table(self._resolve(engine_cfg.get("rules_file")))
        self.advice = load_advice_catalog(self._resolve(engine_cfg.get("advice_file")))
        logger.info(f"Rule table v{self.rules.version} loaded: {len(self.rules.rules)} parameters")

    @staticmethod
    def _resolve(name: Optional[str]) -> Optional[Path]:
        # bare file names are looked up next to the bundled configs
        if not name:
            return None
        p = Path(name)
        if p.is_absolute() or p.exists():
            return p
        return CONFIG_DIR / p

    def analyze(self, raw_text: Optional[str]) -> AnalysisResult:
        if self.reject_empty:
            validate_input_text_or_raise(raw_text)
        result = analyze_text(raw_text, self.rules, self.advice)
        logger.info(
            f"Analysis done: {result.total_tests} tests, {result.abnormal_count} abnormal, "
            f"{len(result.buckets.critical)} critical"
        )
        return result

    def render(self, result: AnalysisResult) -> str:
        return render_report(result)

    def to_payload(self, result: AnalysisResult) -> Dict:
        return result.as_payload()

    def analyze_and_render(self, raw_text: Optional[str]) -> str:
        return self.render(self.analyze(raw_text))
