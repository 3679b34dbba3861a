from __future__ import annotations

import base64
import io
import logging
from dataclasses import dataclass
from urllib.parse import quote

import barcode
import qrcode
from barcode.writer import ImageWriter

from ..core.exceptions import ProofGenerationError

logger = logging.getLogger(__name__)


def verification_url(base_url: str, identifier: str) -> str:
    return f"{base_url.rstrip('/')}/verify/{quote(identifier, safe='')}"


def to_data_url(png: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")


@dataclass(frozen=True)
class ProofBundle:
    """QR of the verification URL plus a Code 128 barcode of the identifier."""

    qr_png: bytes
    barcode_png: bytes

    @property
    def qr_data_url(self) -> str:
        return to_data_url(self.qr_png)

    @property
    def barcode_data_url(self) -> str:
        return to_data_url(self.barcode_png)


class ProofGenerator:
    """Stateless renderer for the scannable proofs of an identifier."""

    def __init__(self, *, qr_box_size: int = 10, qr_border: int = 2, barcode_module_height: float = 12.0):
        self._qr_box_size = qr_box_size
        self._qr_border = qr_border
        self._barcode_module_height = barcode_module_height

    def qr_png(self, text: str) -> bytes:
        if not text:
            raise ProofGenerationError("Cannot encode an empty QR payload")
        try:
            qr = qrcode.QRCode(
                version=None,
                error_correction=qrcode.constants.ERROR_CORRECT_M,
                box_size=self._qr_box_size,
                border=self._qr_border,
            )
            qr.add_data(text)
            qr.make(fit=True)

            img = qr.make_image(fill_color="black", back_color="white")

            buf = io.BytesIO()
            img.save(buf, format="PNG")
            return buf.getvalue()
        except Exception as e:
            raise ProofGenerationError(f"QR generation failed: {e}") from e

    def barcode_png(self, text: str) -> bytes:
        if not text:
            raise ProofGenerationError("Cannot encode an empty barcode payload")
        try:
            code = barcode.get("code128", text, writer=ImageWriter())
            buf = io.BytesIO()
            code.write(buf, options={"module_height": self._barcode_module_height, "write_text": False})
            return buf.getvalue()
        except Exception as e:
            raise ProofGenerationError(f"Barcode generation failed: {e}") from e

    def generate(self, identifier: str, verify_url: str) -> ProofBundle:
        return ProofBundle(qr_png=self.qr_png(verify_url), barcode_png=self.barcode_png(identifier))
