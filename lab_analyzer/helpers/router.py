import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict

from lab_analyzer.commons.lab_engine import LabAnalysisEngine
from lab_analyzer.commons.logger import logger
from lab_analyzer.validation.validators import OcrDocument, parse_ocr_document


def safe_document_id(document_id: str) -> str:
    """Document id usable as a file name: 'rep 12/b' -> 'rep_12_b'."""
    return re.sub(r"[^a-zA-Z0-9_\-]", "_", document_id.strip()) or "document"


class DocumentRouter:
    """Glue between OCR output and the engine: envelope in, storable payload out."""

    def __init__(self, engine: LabAnalysisEngine, cfg):
        self.engine = engine
        self.cfg = cfg
        self.paths = cfg["paths"]

    def archive_raw(self, direction: str, text: str, tag: str) -> Path:
        base = Path(self.paths["logs_root"]) / "raw" / direction
        base.mkdir(parents=True, exist_ok=True)
        name = f'{datetime.now().strftime("%Y%m%d_%H%M%S")}_{safe_document_id(tag)}.txt'
        p = base / name
        p.write_text(text, encoding="utf-8")
        return p

    def load_document(self, raw: str, source: str) -> OcrDocument:
        return parse_ocr_document(raw, source)

    def transform_document(self, doc: OcrDocument) -> Dict:
        """Analyze one document; raises EmptyInputError when it carries no text."""
        low_confidence = doc.confidence is not None and doc.confidence < self.engine.min_confidence
        if low_confidence:
            logger.warning(
                f"Document {doc.document_id}: OCR confidence {doc.confidence:.2f} "
                f"< {self.engine.min_confidence:.2f}, findings may be incomplete"
            )

        result = self.engine.analyze(doc.text)
        return {
            "document_id": doc.document_id,
            "analyzed_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "ocr": {
                "confidence": doc.confidence,
                "text_length": len(doc.text),
                "low_confidence": low_confidence,
            },
            "analysis": self.engine.to_payload(result),
            "report": self.engine.render(result),
        }

    def transform_text(self, raw: str, source: str) -> Dict:
        return self.transform_document(self.load_document(raw, source))
