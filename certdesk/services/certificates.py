# certdesk/services/certificates.py
from __future__ import annotations

import io
import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Tuple, Union

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError
from pypdf.generic import NameObject
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from certdesk.core.config import settings
from certdesk.core.errors import CertificateValidationError, FieldFillError, TemplateError
from certdesk.services.qr import build_verify_url, qr_png_bytes

log = logging.getLogger(__name__)

# -------------------------- Layout --------------------------

@dataclass
class TextPosition:
    """Posição em pontos PDF (origem no canto inferior esquerdo). None = automático."""
    x: Optional[float] = None
    y: Optional[float] = None
    font_size: float = 14
    align: str = "center"  # center | left | right
    font: str = "Helvetica"
    padding_left: float = 0
    padding_top: float = 0
    margin_left: float = 0
    margin_top: float = 0

@dataclass
class QrPlacement:
    x: Optional[float] = None      # None = centralizado
    y: Optional[float] = None      # None = bottom_margin
    size: float = 100
    bottom_margin: float = 50
    padding_left: float = 0
    padding_top: float = 10
    margin_left: float = 0
    margin_top: float = 0

@dataclass
class CertificateLayout:
    name_field: str = "student_name"
    number_field: str = "certificate_no"
    name_position: TextPosition = field(
        default_factory=lambda: TextPosition(font_size=28, align="center", font="Helvetica-Bold", padding_top=10)
    )
    number_position: TextPosition = field(
        default_factory=lambda: TextPosition(font_size=14, align="right", font="Helvetica", padding_left=-5, padding_top=-10)
    )
    qr: QrPlacement = field(default_factory=QrPlacement)
    verify_base_url: Optional[str] = None

DEFAULT_LAYOUT = CertificateLayout()

# -------------------------- Template --------------------------

def load_template(template: Union[str, bytes, None] = None) -> Tuple[bytes, str]:
    """Devolve (bytes, rótulo) do template; rótulo vai nas mensagens de erro."""
    if isinstance(template, (bytes, bytearray)):
        data, label = bytes(template), "<bytes>"
    else:
        path = template or settings.CERT_TEMPLATE_PATH
        label = path
        if not os.path.isfile(path):
            raise TemplateError(
                f"Failed to load PDF template from {path}. File not found.",
                details={"template": path},
            )
        with open(path, "rb") as f:
            data = f.read()
    if not data.startswith(b"%PDF"):
        raise TemplateError(
            f"Invalid PDF file: the template at {label} is not a valid PDF (missing %PDF header).",
            details={"template": label},
        )
    return data, label

def _open_template(data: bytes, label: str) -> PdfReader:
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = len(reader.pages)
    except (PyPdfError, ValueError, KeyError) as exc:
        raise TemplateError(
            f"Failed to load PDF document {label}. The template file may be corrupted. Error: {exc}",
            details={"template": label},
        ) from exc
    if pages == 0:
        raise TemplateError("PDF template has no pages", details={"template": label})
    return reader

# -------------------------- Overlays --------------------------

def _page_size(page) -> Tuple[float, float]:
    box = page.mediabox
    return float(box.width), float(box.height)

def _overlay(width: float, height: float, draw: Callable[[canvas.Canvas], None]):
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=(width, height))
    draw(c)
    c.showPage()
    c.save()
    buf.seek(0)
    return PdfReader(buf).pages[0]

def _text_origin(c: canvas.Canvas, text: str, pos: TextPosition, default_x: float, default_y: float) -> Tuple[float, float]:
    x = pos.x if pos.x is not None else default_x
    y = pos.y if pos.y is not None else default_y
    w = c.stringWidth(text, pos.font, pos.font_size)
    if pos.align == "center":
        x -= w / 2
    elif pos.align == "right":
        x -= w
    return x + pos.padding_left + pos.margin_left, y + pos.padding_top + pos.margin_top

def _draw_text_fields(page, name: str, certificate_no: str, layout: CertificateLayout) -> None:
    width, height = _page_size(page)

    def draw(c: canvas.Canvas) -> None:
        for text, pos, default_y in (
            (name, layout.name_position, height / 2 + 100),
            (certificate_no, layout.number_position, height / 2 - 150),
        ):
            if not text:
                continue
            c.setFont(pos.font, pos.font_size)
            x, y = _text_origin(c, text, pos, width / 2, default_y)
            c.drawString(x, y, text)
            log.debug("drew %r at (%.2f, %.2f)", text, x, y)

    page.merge_page(_overlay(width, height, draw))

def qr_position(page_width: float, qr: QrPlacement) -> Tuple[float, float]:
    x = qr.x if qr.x is not None else page_width / 2 - qr.size / 2
    y = qr.y if qr.y is not None else qr.bottom_margin
    return x + qr.padding_left + qr.margin_left, y + qr.padding_top + qr.margin_top

def _draw_qr(page, verify_url: str, qr: QrPlacement) -> None:
    width, height = _page_size(page)
    image = ImageReader(io.BytesIO(qr_png_bytes(verify_url)))
    x, y = qr_position(width, qr)

    def draw(c: canvas.Canvas) -> None:
        c.drawImage(image, x, y, width=qr.size, height=qr.size)

    page.merge_page(_overlay(width, height, draw))
    log.info("QR code inserted at (%.2f, %.2f) for %s", x, y, verify_url)

# -------------------------- Form fill --------------------------

def _fill_form(writer: PdfWriter, fields: Dict, values: Dict[str, str]) -> None:
    for name, value in values.items():
        if name not in fields:
            raise FieldFillError(name, "no such field in the template")
    for page in writer.pages:
        if "/Annots" not in page:
            continue
        try:
            writer.update_page_form_field_values(page, values, auto_regenerate=False, flatten=True)
        except (PyPdfError, KeyError, ValueError) as exc:
            failed = next(iter(values))
            raise FieldFillError(failed, str(exc)) from exc
    # flatten: remove widgets e o AcroForm, deixando só o conteúdo da página
    writer.remove_annotations(subtypes="/Widget")
    if NameObject("/AcroForm") in writer.root_object:
        del writer.root_object[NameObject("/AcroForm")]

# -------------------------- Render --------------------------

def render_certificate_pdf(
    *,
    name: str,
    certificate_no: str,
    template: Union[str, bytes, None] = None,
    layout: Optional[CertificateLayout] = None,
) -> bytes:
    """
    Preenche os campos do template (nome em maiúsculas + número), achata o
    formulário e sobrepõe o QR de verificação. Sem campos no template, desenha
    o texto direto na primeira página. Falha no QR não interrompe.
    """
    if not name or not name.strip():
        raise CertificateValidationError("Student name is required")
    if not certificate_no or not certificate_no.strip():
        raise CertificateValidationError("Certificate number is required")

    layout = layout or DEFAULT_LAYOUT
    name_value = name.strip().upper()
    number_value = certificate_no.strip()

    data, label = load_template(template)
    reader = _open_template(data, label)
    writer = PdfWriter(clone_from=reader)
    first_page = writer.pages[0]

    fields = reader.get_fields() or {}
    log.info("rendering %s from %s (%d form fields)", number_value, label, len(fields))
    if fields:
        _fill_form(writer, fields, {layout.name_field: name_value, layout.number_field: number_value})
    else:
        log.warning("template %s has no form fields; drawing text directly", label)
        _draw_text_fields(first_page, name_value, number_value, layout)

    verify_url = build_verify_url(number_value, layout.verify_base_url)
    try:
        _draw_qr(first_page, verify_url, layout.qr)
    except Exception:  # QR é opcional: segue sem ele
        log.warning("failed to generate QR code for %s; continuing without it", number_value, exc_info=True)

    out = io.BytesIO()
    writer.write(out)
    return out.getvalue()

def certificate_filename(certificate_no: str) -> str:
    return f"{certificate_no.replace('/', '_')}.pdf"
