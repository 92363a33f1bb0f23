import re
from typing import Callable, Dict, Optional

from .models import Normalizer

_TABLE_NOISE = re.compile(r"[|│┃]")  # table borders from OCR'd grids
_HSPACE = re.compile(r"[ \t\u00a0]+")


def normalize_text(text: str) -> str:
    """Lower-case OCR text and collapse layout noise; line breaks are kept."""
    if not text:
        return ""
    text = _TABLE_NOISE.sub(" ", text.lower())
    lines = [_HSPACE.sub(" ", line).strip() for line in re.split(r"\r\n|\n|\r", text)]
    return "\n".join(line for line in lines if line)


def parse_number(raw: str) -> Optional[float]:
    """Parse '1,50,000' / '12.8' style values; None when it is not a number."""
    cleaned = (raw or "").replace(",", "").strip()
    if not cleaned:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


# --------- Normalizers (OCR magnitude / unit corrections) ----------
_LAKH_UNITS = ("lakh", "lac")
_THOUSAND_UNITS = ("10^3", "10*3", "10³", "10^9", "10*9", "10⁹", "k", "thou")


def _count_multiplier(unit: Optional[str]) -> Optional[float]:
    """Multiplier for a printed count unit; None when no unit was captured."""
    u = (unit or "").replace(" ", "").lower()
    if not u:
        return None
    if any(tok in u for tok in _LAKH_UNITS):
        return 100000.0
    if any(tok in u for tok in _THOUSAND_UNITS):
        return 1000.0
    return 1.0


def _decimal_shift(value: float, unit: Optional[str] = None) -> float:
    # 128 -> 12.8 (dropped decimal point) and g/L -> g/dL
    return value / 10 if value > 25 else value


def _lakh_to_count(value: float, unit: Optional[str] = None) -> float:
    # 2.5 lakh -> 250000, 45 x10^3/uL -> 45000; bare values: < 10 lakh, < 1000 thousands
    mult = _count_multiplier(unit)
    if mult is None:
        mult = 100000.0 if value < 10 else 1000.0 if value < 1000 else 1.0
    return value * mult


def _thousands_to_count(value: float, unit: Optional[str] = None) -> float:
    # 7.5 x10^3/uL -> 7500; bare values below 1000 are read as thousands
    mult = _count_multiplier(unit)
    if mult is None:
        mult = 1000.0 if value < 1000 else 1.0
    return value * mult


NORMALIZERS: Dict[Normalizer, Callable[[float, Optional[str]], float]] = {
    Normalizer.DECIMAL_SHIFT: _decimal_shift,
    Normalizer.LAKH_TO_COUNT: _lakh_to_count,
    Normalizer.THOUSANDS_TO_COUNT: _thousands_to_count,
}


def apply_normalizer(name: Optional[Normalizer], value: float, unit: Optional[str] = None) -> float:
    """`unit` is the optional `unit` group a pattern captured after the value."""
    if name is None:
        return value
    return NORMALIZERS[name](value, unit)


def format_number(value: float) -> str:
    """12.8 -> '12.8', 45000.0 -> '45000'."""
    if float(value).is_integer():
        return str(int(value))
    return f"{round(value, 4):g}" if abs(value) < 1e6 else str(value)
