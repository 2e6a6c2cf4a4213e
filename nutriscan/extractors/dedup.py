# nutriscan/extractors/dedup.py
from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .records import CandidateRecord

DEDUP_KEYS = ("brand", "name", "flavor")


def _get(record: Any, key: str) -> Any:
    if isinstance(record, dict):
        return record.get(key)
    return getattr(record, key, None)


def _key(record: Any) -> Tuple[Any, ...]:
    return tuple(_get(record, k) for k in DEDUP_KEYS)


def dedup(existing: Iterable[Any], candidates: Sequence[CandidateRecord]) -> List[CandidateRecord]:
    """
    Retire les candidats déjà connus : égalité stricte (casse incluse)
    sur brand + name + flavor. Aucune normalisation ici.
    """
    known = [_key(r) for r in existing]
    out: List[CandidateRecord] = []
    for cand in candidates:
        k = _key(cand)
        if any(k == other for other in known):
            continue
        out.append(cand)
    return out


def infer_brand(name: Optional[str]) -> Optional[str]:
    parts = (name or "").split()
    return parts[0] if parts else None


def listing_key_view(record: Any) -> Dict[str, Any]:
    """brand/name/flavor d'un enregistrement ; flavor absente -> "" comme dans les listings."""
    view = {k: _get(record, k) for k in DEDUP_KEYS}
    view["flavor"] = view["flavor"] or ""
    return view
