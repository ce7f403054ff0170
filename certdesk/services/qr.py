import io
from typing import Optional
from urllib.parse import quote

import qrcode
from qrcode.constants import ERROR_CORRECT_M

from certdesk.core.config import settings

def build_verify_url(certificate_no: str, base_url: Optional[str] = None) -> str:
    # número vai codificado num único segmento (as barras viram %2F)
    base = (base_url or settings.VERIFY_BASE_URL).rstrip("/")
    return f"{base}/{quote(certificate_no, safe='')}"

def qr_png_bytes(text: str, box_size: int = 10, border: int = 1) -> bytes:
    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, box_size=box_size, border=border)
    qr.add_data(text)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()

