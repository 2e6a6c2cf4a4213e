
from __future__ import annotations
import re
from typing import Any

UNIT_SUFFIX_RE = re.compile(r"\s*(kcal|cal|mg|kg|g)\s*$", re.IGNORECASE)
_NUM_RE = re.compile(r"[-+]?\d+(?:[.,]\d+)?")
_KG_RE = re.compile(r"([\d.]+)\s*kg")
_LB_RE = re.compile(r"([\d.]+)\s*lbs?\b")
_G_RE = re.compile(r"([\d.]+)\s*g(?!\w)")
_ANY_NUM_RE = re.compile(r"([\d.]+)")

LB_TO_G = 453.592


def strip_unit(value: str | None) -> str:
    """'12.5g' -> '12.5', '250 kcal' -> '250'."""
    if not value:
        return ""
    return UNIT_SUFFIX_RE.sub("", str(value).strip()).strip()


def unit_of(value: str | None, default: str = "") -> str:
    if not value:
        return default
    m = UNIT_SUFFIX_RE.search(str(value).strip())
    return m.group(1).lower() if m else default


def norm_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    s = strip_unit(str(value)).replace("\u00A0", " ").replace(" ", "")
    # virgule décimale (12,5) ; point + virgule -> point de milliers
    if "," in s and s.count(",") == 1 and "." in s:
        s = s.replace(".", "").replace(",", ".")
    elif "," in s and s.count(",") == 1:
        s = s.replace(",", ".")
    try:
        return float(s)
    except ValueError:
        m = _NUM_RE.search(s)
        if not m:
            return None
        try:
            return float(m.group(0).replace(",", "."))
        except ValueError:
            return None


def format_number(value: float | None) -> str:
    if value is None:
        return ""
    return str(int(value)) if float(value).is_integer() else str(value)


def parse_weight_to_grams(weight: Any) -> int | None:
    if weight is None or weight == "":
        return None
    s = str(weight).lower().strip()
    for rx, factor in ((_KG_RE, 1000.0), (_LB_RE, LB_TO_G), (_G_RE, 1.0)):
        m = rx.search(s)
        if m:
            try:
                return round(float(m.group(1)) * factor)
            except ValueError:
                return None
    # nombre nu : grammes par défaut
    m = _ANY_NUM_RE.search(s)
    if not m:
        return None
    try:
        return round(float(m.group(1)))
    except ValueError:
        return None


def norm_count(value: Any) -> str:
    """'1,234' -> '1234' ; tout ce qui n'est pas un entier -> ''."""
    if value is None or isinstance(value, bool):
        return ""
    s = str(value).replace(",", "").strip()
    return s if s.isascii() and s.isdigit() else ""
