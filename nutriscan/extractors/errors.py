# nutriscan/extractors/errors.py
from __future__ import annotations
from typing import Optional


class ExtractionError(Exception):
    code = "extraction_error"
    status = 500


class InvalidInput(ExtractionError):
    code = "invalid_input"
    status = 400


class CollaboratorUnavailable(ExtractionError):
    code = "collaborator_unavailable"
    status = 502


class UnrecoverableParse(ExtractionError):
    code = "unrecoverable_parse"
    status = 422

    def __init__(self, message: str, raw_text: Optional[str] = None):
        super().__init__(message)
        self.raw_text = raw_text


class RecordStoreCorrupt(ExtractionError):
    code = "record_store_corrupt"
    status = 500


# ---- erreurs des collaborateurs (transport)

class OcrUnavailable(Exception):
    pass


class GenerationUnavailable(Exception):
    pass
