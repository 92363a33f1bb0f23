import asyncio
import json
import os
import sys
from pathlib import Path

import typer
import yaml

from lab_analyzer.commons.lab_engine import LabAnalysisEngine
from lab_analyzer.commons.logger import setup_logging
from lab_analyzer.commons.types import Settings
from lab_analyzer.helpers.router import DocumentRouter
from lab_analyzer.services.analysis_service import AnalysisService
from lab_analyzer.validation.validators import EmptyInputError

app = typer.Typer(add_completion=False, help="Lab Report Analyzer")

DEFAULT_SETTINGS = Path(__file__).resolve().parent / "lab_analyzer" / "configs" / "settings.yaml"


def resource_path(relative_path: str) -> str:
    """Absolute path to a bundled resource, both frozen (.exe) and in development."""
    if hasattr(sys, "_MEIPASS"):
        base_path = sys._MEIPASS
    else:
        base_path = os.path.abspath(".")
    return os.path.join(base_path, relative_path)


def load_cfg(path: str = "") -> dict:
    """Read settings.yaml (or $LAB_ANALYZER_SETTINGS) and validate it."""
    config_path = path or os.getenv("LAB_ANALYZER_SETTINGS") or str(DEFAULT_SETTINGS)
    if not os.path.isabs(config_path) and not os.path.exists(config_path):
        config_path = resource_path(config_path)
    with open(config_path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    return Settings.model_validate(raw).model_dump()


@app.command()
def analyze(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="OCR .txt or .json file"),
    as_json: bool = typer.Option(False, "--json", help="print the stored payload instead of the report"),
    settings: str = typer.Option("", help="alternate settings.yaml"),
):
    """Analyze a single OCR document and print the result."""
    cfg = load_cfg(settings)
    setup_logging(None, os.getenv("LOG_LEVEL", "WARNING"))
    engine = LabAnalysisEngine(cfg)
    router = DocumentRouter(engine, cfg)

    try:
        payload = router.transform_text(path.read_text(encoding="utf-8"), str(path))
    except EmptyInputError as ex:
        typer.echo(f"{path}: {ex}", err=True)
        raise typer.Exit(code=2)

    if as_json:
        typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        typer.echo(payload["report"])


@app.command()
def watch(settings: str = typer.Option("", help="alternate settings.yaml")):
    """Process the inbox backlog, then keep watching it for new OCR documents."""
    cfg = load_cfg(settings)
    logger = setup_logging(cfg["paths"]["logs_root"], os.getenv("LOG_LEVEL", "INFO"))
    logger.info("Starting lab report analyzer (file mode)")
    engine = LabAnalysisEngine(cfg)
    router = DocumentRouter(engine, cfg)
    svc = AnalysisService(router, cfg["paths"])
    asyncio.run(svc.run_file_mode(cfg["watch"]["filename_globs"]))


@app.command()
def rules(settings: str = typer.Option("", help="alternate settings.yaml")):
    """List the parameters the analyzer knows about."""
    cfg = load_cfg(settings)
    setup_logging(None, os.getenv("LOG_LEVEL", "WARNING"))
    engine = LabAnalysisEngine(cfg)
    for r in engine.rules.rules:
        typer.echo(f"{r.key:<18} {r.kind.value:<13} {r.category.value:<9} {r.name}")


if __name__ == "__main__":
    app()
