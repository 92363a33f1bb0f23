"""
test_analysis_service.py

Tests for the inbox -> analysis -> archive flow.

Covers:
- Plain-text and JSON envelope documents.
- Report persistence keyed by document id.
- Rejected documents routed to the error folder.
- Backlog processing on startup.
"""

import asyncio
import json

import pytest
from watchdog.events import FileCreatedEvent, FileModifiedEvent

from lab_analyzer.commons.lab_engine import LabAnalysisEngine
from lab_analyzer.helpers.file_transport import FileWatcher, ReportWriter
from lab_analyzer.helpers.router import DocumentRouter, safe_document_id
from lab_analyzer.services.analysis_service import AnalysisService


def cfg_min(tmp_path):
    return {
        "paths": {
            "logs_root": str(tmp_path / "logs"),
            "inbox": str(tmp_path / "inbox"),
            "archive": str(tmp_path / "archive"),
            "error": str(tmp_path / "error"),
        },
        "engine": {"reject_empty": True, "min_confidence": 0.6},
    }


def make_service(tmp_path):
    cfg = cfg_min(tmp_path)
    router = DocumentRouter(LabAnalysisEngine(cfg), cfg)
    (tmp_path / "inbox").mkdir()
    return AnalysisService(router, cfg["paths"])


def drop(tmp_path, name, text):
    p = tmp_path / "inbox" / name
    p.write_text(text, encoding="utf-8")
    return p


# ----------------- Sample documents -----------------
CBC_TXT = """CITY DIAGNOSTIC CENTER
Hemoglobin: 12.8 g/dL
Platelet count: 2,10,000
Glucose: 95 mg/dL
"""

ENVELOPE = {
    "document_id": "LAB 42/b",
    "text": "Platelet count: 45000\nCreatinine: 1.1 mg/dL",
    "confidence": 0.31,
}


def test_safe_document_id():
    assert safe_document_id("rep-001") == "rep-001"
    assert safe_document_id(" LAB 42/b ") == "LAB_42_b"
    assert safe_document_id("   ") == "document"


def test_report_writer_overwrites_without_leftovers(tmp_path):
    w = ReportWriter(str(tmp_path / "archive"))
    w.write("doc", {"n": 1})
    p = w.write("doc", {"n": 2})
    assert json.loads(p.read_text(encoding="utf-8")) == {"n": 2}
    assert [f.name for f in (tmp_path / "archive").iterdir()] == ["doc.json"]


@pytest.mark.asyncio
async def test_text_document_is_analyzed_and_archived(tmp_path):
    svc = make_service(tmp_path)
    src = drop(tmp_path, "rep-001.txt", CBC_TXT)

    out = await svc._process_text(CBC_TXT, str(src))

    assert out == tmp_path / "archive" / "rep-001.json"
    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload["document_id"] == "rep-001"
    assert payload["ocr"] == {"confidence": None, "text_length": len(CBC_TXT), "low_confidence": False}
    assert payload["analysis"]["total_tests"] == 3
    assert payload["analysis"]["abnormal_count"] == 1
    assert payload["report"].startswith("LAB REPORT ANALYSIS")

    assert not src.exists()
    assert (tmp_path / "archive" / "source" / "rep-001.txt").exists()
    assert list((tmp_path / "logs" / "raw" / "recv").glob("*_rep-001.txt"))


@pytest.mark.asyncio
async def test_json_envelope_flags_low_confidence(tmp_path):
    svc = make_service(tmp_path)
    raw = json.dumps(ENVELOPE)
    src = drop(tmp_path, "scan.json", raw)

    out = await svc._process_text(raw, str(src))

    assert out.name == "LAB_42_b.json"
    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload["document_id"] == "LAB 42/b"
    assert payload["ocr"]["low_confidence"] is True
    assert payload["analysis"]["concerns"]["critical"]
    assert payload["analysis"]["immediate_actions"][0].startswith("🚨 URGENT")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "name,text",
    [
        ("blank.txt", "  \n  "),
        ("broken.json", "{not json"),
        ("no_text.json", '{"document_id": "x"}'),
        ("bad_conf.json", '{"text": "Hb: 9", "confidence": 3}'),
    ],
)
async def test_rejected_documents_go_to_error(tmp_path, name, text):
    svc = make_service(tmp_path)
    src = drop(tmp_path, name, text)

    assert await svc._process_text(text, str(src)) is None

    assert not src.exists()
    assert (tmp_path / "error" / name).read_text(encoding="utf-8") == text
    assert not list((tmp_path / "archive").glob("*.json"))


@pytest.mark.asyncio
async def test_backlog_processes_matching_files_only(tmp_path):
    svc = make_service(tmp_path)
    drop(tmp_path, "a.txt", "Glucose: 95")
    drop(tmp_path, "b.json", json.dumps({"text": "TSH: 6.8"}))
    drop(tmp_path, "notes.md", "Glucose: 300")

    count = await svc._process_backlog(["*.txt", "*.json"])

    assert count == 2
    assert sorted(f.name for f in (tmp_path / "archive").glob("*.json")) == ["a.json", "b.json"]
    assert (tmp_path / "inbox" / "notes.md").exists()


@pytest.mark.asyncio
async def test_run_file_mode_drains_backlog_and_stops(tmp_path):
    svc = make_service(tmp_path)
    drop(tmp_path, "early.txt", "Hemoglobin: 15.0")
    stop = asyncio.Event()
    stop.set()

    await svc.run_file_mode(["*.txt"], stop_event=stop)

    assert (tmp_path / "archive" / "early.json").exists()


@pytest.mark.asyncio
async def test_watcher_submits_each_drop_once(tmp_path):
    seen = []

    async def on_document(text, src):
        seen.append((src, text))

    watcher = FileWatcher(str(tmp_path / "inbox"), ["*.txt"], on_document, asyncio.get_running_loop())
    src = drop(tmp_path, "r.txt", "Glucose: 95")

    watcher.handler.on_created(FileCreatedEvent(str(src)))
    watcher.handler.on_modified(FileModifiedEvent(str(src)))
    await asyncio.sleep(0.05)
    assert seen == [(str(src), "Glucose: 95")]

    # once the first analysis finished, a rewrite of the same file is picked up again
    watcher.handler.on_modified(FileModifiedEvent(str(src)))
    await asyncio.sleep(0.05)
    assert len(seen) == 2
