import io

import pytest
from pypdf import PdfReader

from certdesk.core.errors import CertificateValidationError, FieldFillError, TemplateError
from certdesk.services import certificates
from certdesk.services.certificates import (
    CertificateLayout,
    QrPlacement,
    certificate_filename,
    qr_position,
    render_certificate_pdf,
)

NUMBER = "DARE/AIR/LP/25-26/001"


def test_fills_and_flattens_form_fields(template_bytes):
    pdf = render_certificate_pdf(name="Asha Verma", certificate_no=NUMBER, template=template_bytes)

    assert pdf.startswith(b"%PDF")
    reader = PdfReader(io.BytesIO(pdf))
    assert len(reader.pages) == 1
    assert not reader.get_fields()
    assert "/AcroForm" not in reader.trailer["/Root"]


def test_template_from_path(template_path):
    pdf = render_certificate_pdf(name="Asha", certificate_no=NUMBER, template=template_path)
    assert pdf.startswith(b"%PDF")


def test_draws_text_when_template_has_no_fields(plain_template_bytes):
    pdf = render_certificate_pdf(name="asha verma", certificate_no=NUMBER, template=plain_template_bytes)

    text = PdfReader(io.BytesIO(pdf)).pages[0].extract_text()
    assert "ASHA VERMA" in text
    assert NUMBER in text


def test_qr_overlay_is_added(plain_template_bytes):
    pdf = render_certificate_pdf(name="Asha", certificate_no=NUMBER, template=plain_template_bytes)
    page = PdfReader(io.BytesIO(pdf)).pages[0]
    assert "/XObject" in page["/Resources"]


def test_qr_failure_does_not_stop_rendering(plain_template_bytes, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("qr backend down")

    monkeypatch.setattr(certificates, "qr_png_bytes", boom)
    pdf = render_certificate_pdf(name="Asha", certificate_no=NUMBER, template=plain_template_bytes)

    page = PdfReader(io.BytesIO(pdf)).pages[0]
    assert "ASHA" in page.extract_text()
    assert "/XObject" not in page["/Resources"]


@pytest.mark.parametrize("name,number", [("", NUMBER), ("   ", NUMBER), ("Asha", ""), ("Asha", None)])
def test_missing_name_or_number_yields_no_document(name, number):
    # o template nem chega a ser lido
    with pytest.raises(CertificateValidationError):
        render_certificate_pdf(name=name, certificate_no=number, template="/nonexistent/template.pdf")


def test_missing_template_file():
    with pytest.raises(TemplateError, match="File not found"):
        render_certificate_pdf(name="Asha", certificate_no=NUMBER, template="/nonexistent/template.pdf")


def test_template_without_pdf_header():
    with pytest.raises(TemplateError, match="%PDF"):
        render_certificate_pdf(name="Asha", certificate_no=NUMBER, template=b"<html></html>")


def test_missing_named_field(template_bytes):
    layout = CertificateLayout(name_field="full_name")
    with pytest.raises(FieldFillError) as exc:
        render_certificate_pdf(name="Asha", certificate_no=NUMBER, template=template_bytes, layout=layout)
    assert exc.value.field == "full_name"


def test_qr_position_is_centered_above_bottom_margin():
    assert qr_position(842, QrPlacement()) == (371, 60)
    assert qr_position(842, QrPlacement(x=10, y=20, padding_top=0)) == (10, 20)


def test_certificate_filename():
    assert certificate_filename(NUMBER) == "DARE_AIR_LP_25-26_001.pdf"
