# nutriscan/extractors/io_image.py
from __future__ import annotations
import base64
import binascii
import io
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Tuple, Union

from PIL import Image, ImageOps, UnidentifiedImageError
import pypdfium2 as pdfium

from .errors import InvalidInput

PDF_DPI = 300
MIME_BY_FORMAT = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "GIF": "image/gif",
    "BMP": "image/bmp",
    "TIFF": "image/tiff",
}

RawImage = Union[bytes, bytearray, str, Path, "ImagePayload"]


@dataclass(frozen=True)
class ImagePayload:
    data: bytes
    mime_type: str
    width: int
    height: int

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def to_pil(self) -> Image.Image:
        img = Image.open(io.BytesIO(self.data))
        # photos smartphone : appliquer l'orientation EXIF
        return ImageOps.exif_transpose(img)

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


def _decode_str(s: str) -> bytes:
    s = s.strip()
    if not s:
        raise InvalidInput("empty image payload")
    # data:image/jpeg;base64,....
    if s.startswith("data:"):
        s = s.split(",", 1)[1] if "," in s else ""
    s = "".join(s.split())
    try:
        return base64.b64decode(s, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidInput(f"image payload is not valid base64: {e}") from e


def _render_pdf_first_page(data: bytes, dpi: int = PDF_DPI) -> bytes:
    try:
        doc = pdfium.PdfDocument(data)
    except pdfium.PdfiumError as e:
        raise InvalidInput(f"unreadable PDF payload: {e}") from e
    try:
        if len(doc) == 0:
            raise InvalidInput("PDF payload has no pages")
        page = doc.get_page(0)
        pil = page.render(scale=dpi / 72.0).to_pil()
        page.close()
    finally:
        doc.close()
    buf = io.BytesIO()
    pil.convert("RGB").save(buf, format="PNG")
    return buf.getvalue()


def load_image(image: Any) -> ImagePayload:
    """bytes | base64 | data URL | Path | ImagePayload -> ImagePayload validé."""
    if isinstance(image, ImagePayload):
        return image
    if image is None:
        raise InvalidInput("missing image payload")

    if isinstance(image, Path):
        try:
            data = image.read_bytes()
        except OSError as e:
            raise InvalidInput(f"cannot read image file: {e}") from e
    elif isinstance(image, (bytes, bytearray)):
        data = bytes(image)
    elif isinstance(image, str):
        data = _decode_str(image)
    else:
        raise InvalidInput(f"unsupported image payload type: {type(image).__name__}")

    if not data:
        raise InvalidInput("empty image payload")

    if data[:5] == b"%PDF-":
        data = _render_pdf_first_page(data)

    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format or ""
            img.verify()
        with Image.open(io.BytesIO(data)) as img:
            width, height = ImageOps.exif_transpose(img).size
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise InvalidInput(f"payload is not a readable image: {e}") from e

    return ImagePayload(
        data=data,
        mime_type=MIME_BY_FORMAT.get(fmt, "image/jpeg"),
        width=width,
        height=height,
    )
