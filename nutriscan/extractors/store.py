# nutriscan/extractors/store.py
from __future__ import annotations
import json
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Protocol

from ..log import get_logger
from .errors import RecordStoreCorrupt
from .records import ProductRecord

log = get_logger(__name__)


class RecordStore(Protocol):
    def add(self, record: ProductRecord) -> ProductRecord: ...

    def list(self) -> List[ProductRecord]: ...


class JsonRecordStore:
    """{"products": [...]} dans un seul fichier ; pas de moteur, pas d'index."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self, strict: bool = False) -> Dict[str, Any]:
        """strict=True (écriture) : un fichier illisible lève au lieu d'être écrasé."""
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {"products": []}
        except (OSError, ValueError) as e:
            if strict:
                raise RecordStoreCorrupt(f"record store unreadable: {self.path}: {e}") from e
            log.warning("record_store_unreadable", path=str(self.path), error=str(e))
            return {"products": []}
        if not isinstance(data, dict) or not isinstance(data.get("products"), list):
            if strict:
                raise RecordStoreCorrupt(f"record store has no products list: {self.path}")
            return {"products": []}
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    def list(self) -> List[ProductRecord]:
        return [ProductRecord.from_dict(p) for p in self._read()["products"] if isinstance(p, dict)]

    def add(self, record: ProductRecord) -> ProductRecord:
        record.id = record.id or str(uuid.uuid4())
        record.created_at = record.created_at or datetime.now(timezone.utc).isoformat()
        with self._lock:
            data = self._read(strict=True)
            data["products"].append(record.to_dict())
            self._write(data)
        log.info("record_added", id=record.id, name=record.name)
        return record
