# lab_analyzer/validation/validators.py
import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class EmptyInputError(ValueError):
    """Raised when the OCR text to analyze is empty or whitespace only."""


class OcrDocument(BaseModel):
    """OCR output for one stored document: the text plus the provider's confidence."""

    document_id: str
    text: str
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    @field_validator("document_id")
    @classmethod
    def _not_empty(cls, v: str):
        if not v or not v.strip():
            raise ValueError("document_id is required")
        return v.strip()


def validate_input_text_or_raise(text: Optional[str]) -> str:
    if text is None or not text.strip():
        raise EmptyInputError("no text available for analysis")
    return text


# --------- Build the envelope from an inbox file ----------
def parse_ocr_document(raw: str, source: str) -> OcrDocument:
    """`.json` files carry the full envelope; anything else is bare OCR text
    whose document id is the file stem. Raises ValidationError / JSONDecodeError."""
    path = Path(source)
    if path.suffix.lower() == ".json":
        data = json.loads(raw)
        if isinstance(data, dict):
            data.setdefault("document_id", path.stem)
        return OcrDocument.model_validate(data)
    return OcrDocument(document_id=path.stem, text=raw)
