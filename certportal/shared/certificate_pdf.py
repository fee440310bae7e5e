"""Fixed-layout certificate PDFs.

Both layouts are A4 landscape and are described in millimetres from the
top-left corner of the page; ``_Page`` flips them into reportlab's
bottom-left point space. Only the interpolated strings change between two
certificates. The canvas is created with ``invariant=1`` so rendering the
same input twice yields the same bytes.
"""

from __future__ import annotations

from io import BytesIO
from typing import Any, Mapping

from reportlab.lib.pagesizes import A4, landscape
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from ..backend.base import CertificateWithRelations
from ..constants import (
    DEFAULT_CERT_PREFIX,
    DEFAULT_CUSTOM_TEXT,
    DEFAULT_VENUE,
    PARTICIPATION_AUTHORITY,
    PARTICIPATION_CUSTOM_TEXT,
)
from .certificates import TemplateData
from .time import fmt_issue_date, parse_iso_date

PAGE_W_MM = 297.0
PAGE_H_MM = 210.0
CENTER_X_MM = PAGE_W_MM / 2
_PT_PER_MM = 72.0 / 25.4

ACHIEVEMENT = "achievement"
PARTICIPATION = "participation"

FONT_REGULAR = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
FONT_ITALIC = "Helvetica-Oblique"

# achievement palette
LAVENDER = (240, 230, 255)
LAVENDER_MID = (230, 220, 250)
LAVENDER_DEEP = (220, 210, 245)
PLUM_DARK = (80, 10, 120)
PLUM_LIGHT = (120, 40, 160)
PLUM_NODE = (100, 50, 150)
NAME_PURPLE = (60, 0, 100)
NAME_RULE = (100, 20, 140)
TITLE_NAVY = (20, 20, 80)
TITLE_SHADOW = (60, 30, 110)
INK = (20, 20, 20)
APPRECIATION = (40, 10, 70)
STAMP_GREY = (60, 60, 60)
WHITE = (255, 255, 255)
BLACK = (0, 0, 0)

# participation palette
SLATE = (44, 62, 80)
SKY = (41, 128, 185)


class CertificateRenderError(RuntimeError):
    """Rendering was aborted; no document was produced."""


def _mm(value: float) -> float:
    return value * _PT_PER_MM


class _Page:
    """Thin mm/top-left adapter over a reportlab canvas."""

    def __init__(self, buffer: BytesIO, title: str):
        self.c = canvas.Canvas(buffer, pagesize=landscape(A4), invariant=1)
        self.c.setTitle(title)
        self.c.setAuthor("certportal")
        self.c.setCreator("certportal")

    def _y(self, y_mm: float) -> float:
        return _mm(PAGE_H_MM - y_mm)

    def fill(self, rgb: tuple[int, int, int], alpha: float = 1.0) -> None:
        r, g, b = rgb
        self.c.setFillColorRGB(r / 255, g / 255, b / 255, alpha)

    def stroke(self, rgb: tuple[int, int, int]) -> None:
        r, g, b = rgb
        self.c.setStrokeColorRGB(r / 255, g / 255, b / 255)

    def line_width(self, width_mm: float) -> None:
        self.c.setLineWidth(_mm(width_mm))

    def rect(self, x: float, y: float, w: float, h: float, fill: bool = True) -> None:
        self.c.rect(
            _mm(x),
            self._y(y + h),
            _mm(w),
            _mm(h),
            stroke=0 if fill else 1,
            fill=1 if fill else 0,
        )

    def triangle(self, *points: float) -> None:
        x1, y1, x2, y2, x3, y3 = points
        path = self.c.beginPath()
        path.moveTo(_mm(x1), self._y(y1))
        path.lineTo(_mm(x2), self._y(y2))
        path.lineTo(_mm(x3), self._y(y3))
        path.close()
        self.c.drawPath(path, stroke=0, fill=1)

    def circle(self, x: float, y: float, r: float) -> None:
        self.c.circle(_mm(x), self._y(y), _mm(r), stroke=0, fill=1)

    def line(self, x1: float, y1: float, x2: float, y2: float) -> None:
        self.c.line(_mm(x1), self._y(y1), _mm(x2), self._y(y2))

    def font(self, name: str, size: float) -> None:
        self.c.setFont(name, size)

    def text(self, value: str, x: float, y: float, align: str = "center") -> None:
        if align == "center":
            self.c.drawCentredString(_mm(x), self._y(y), value)
        elif align == "right":
            self.c.drawRightString(_mm(x), self._y(y), value)
        else:
            self.c.drawString(_mm(x), self._y(y), value)

    def finish(self) -> None:
        self.c.showPage()
        self.c.save()


def _text_width_mm(value: str, font: str, size: float) -> float:
    return stringWidth(value, font, size) / _PT_PER_MM


def _year_of(issue_date: str) -> str:
    parsed = parse_iso_date(issue_date)
    return str(parsed.year) if parsed else ""


def _template_from(payload: TemplateData | Mapping[str, Any] | None) -> TemplateData:
    if payload is None:
        raise CertificateRenderError("Certificate template data not found")
    if isinstance(payload, TemplateData):
        return payload
    return TemplateData.from_dict(payload)


def render_achievement(
    template_data: TemplateData | Mapping[str, Any] | None,
    certificate_number: str,
    mark: str = DEFAULT_CERT_PREFIX,
) -> bytes:
    """The certificate of achievement offered while generating a certificate."""

    data = _template_from(template_data)
    buffer = BytesIO()
    page = _Page(buffer, f"Certificate {certificate_number}")

    # layered background
    page.fill(LAVENDER)
    page.rect(0, 0, 297, 210)
    page.fill(LAVENDER_MID)
    page.rect(20, 20, 257, 170)
    page.fill(LAVENDER_DEEP)
    page.rect(30, 30, 237, 150)

    # corner wedges, outer then inner
    for outer, inner in (
        ((0, 210, 0, 140, 70, 210), (0, 210, 0, 170, 40, 210)),
        ((0, 0, 0, 70, 70, 0), (0, 0, 0, 40, 40, 0)),
        ((297, 210, 297, 140, 227, 210), (297, 210, 297, 170, 257, 210)),
        ((297, 0, 297, 70, 227, 0), (297, 0, 297, 40, 257, 0)),
    ):
        page.fill(PLUM_DARK)
        page.triangle(*outer)
        page.fill(PLUM_LIGHT)
        page.triangle(*inner)

    # node grid, top left
    page.stroke(PLUM_NODE)
    page.fill(PLUM_NODE)
    page.circle(40, 40, 15)
    page.line_width(0.5)
    for i in range(3):
        x = 70 + i * 30
        page.line(x, 40, x + 20, 40)
        page.circle(x, 40, 2)
        page.circle(x + 20, 40, 2)
        if i < 2:
            page.line(x, 40, x + 20, 60)
            page.circle(x + 20, 60, 2)

    # node spur, bottom right
    page.fill(PLUM_LIGHT)
    page.circle(260, 180, 5)
    page.line_width(0.3)
    page.line(260, 175, 280, 165)
    page.line(260, 185, 280, 190)
    page.circle(280, 165, 1.5)
    page.circle(280, 190, 1.5)

    # mark, top right
    page.fill(WHITE)
    page.font(FONT_REGULAR, 22)
    page.text(mark, 277, 25, align="right")
    page.font(FONT_REGULAR, 16)
    page.text(_year_of(data.issue_date), 277, 35, align="right")
    page.stroke(WHITE)
    page.line_width(1)
    page.line(237, 40, 277, 40)

    # title with drop shadow
    page.font(FONT_BOLD, 52)
    page.fill(TITLE_SHADOW, alpha=0.4)
    page.text("CERTIFICATE", 150.5, 52)
    page.fill(TITLE_NAVY)
    page.text("CERTIFICATE", 148.5, 50)
    page.font(FONT_BOLD, 32)
    page.fill(TITLE_SHADOW, alpha=0.4)
    page.text("OF ACHIEVEMENT", 150.5, 67)
    page.fill(TITLE_NAVY)
    page.text("OF ACHIEVEMENT", 148.5, 65)

    page.stroke(PLUM_NODE)
    page.line_width(1.5)
    page.line(108.5, 72, 188.5, 72)

    page.font(FONT_BOLD, 20)
    page.fill(BLACK)
    page.text("THIS CERTIFICATE IS AWARDED TO", CENTER_X_MM, 90)

    page.font(FONT_BOLD, 36)
    page.fill(NAME_PURPLE)
    page.text(data.participant_name, CENTER_X_MM, 105)

    # the underline follows the rendered name width
    name_width = _text_width_mm(data.participant_name, FONT_BOLD, 36)
    page.stroke(NAME_RULE)
    page.line_width(1)
    page.line(
        CENTER_X_MM - name_width / 2 - 15,
        115,
        CENTER_X_MM + name_width / 2 + 15,
        115,
    )

    page.font(FONT_REGULAR, 16)
    page.fill(INK)
    page.text(f"for securing {data.position or ''} position in", CENTER_X_MM, 130)
    page.font(FONT_BOLD, 16)
    page.text(data.event_name, CENTER_X_MM, 140)
    page.font(FONT_REGULAR, 16)
    page.text(f"held on {fmt_issue_date(data.issue_date)} at", CENTER_X_MM, 150)
    page.font(FONT_BOLD, 16)
    page.text(data.venue or DEFAULT_VENUE, CENTER_X_MM, 160)

    page.font(FONT_ITALIC, 14)
    page.fill(APPRECIATION)
    page.text(data.custom_text or DEFAULT_CUSTOM_TEXT, CENTER_X_MM, 175)

    page.stroke(PLUM_NODE)
    page.line_width(0.75)
    page.line(88.5, 185, 208.5, 185)

    page.font(FONT_BOLD, 14)
    page.fill(INK)
    page.text("Presented by", CENTER_X_MM, 195)
    if data.certifying_authority:
        page.font(FONT_REGULAR, 12)
        page.text(data.certifying_authority, CENTER_X_MM, 202)

    page.font(FONT_BOLD, 9)
    page.fill(STAMP_GREY)
    page.text(f"Certificate #: {certificate_number}", 270, 205, align="right")

    # scannable-looking block, bottom left
    page.fill(PLUM_DARK)
    page.rect(20, 185, 15, 15)
    page.fill(WHITE)
    page.rect(22, 187, 4, 4)
    page.rect(29, 187, 4, 4)
    page.rect(22, 194, 4, 4)
    page.rect(27, 190, 2, 6)

    page.finish()
    return buffer.getvalue()


def render_participation(certificate: CertificateWithRelations) -> bytes:
    """The certificate of participation handed out by the public search page."""

    data = _template_from(certificate.template_data)
    participant_name = data.participant_name or certificate.participant.full_name
    event_name = data.event_name or certificate.event.name
    buffer = BytesIO()
    page = _Page(buffer, f"Certificate {certificate.certificate_number}")

    page.fill(WHITE)
    page.rect(0, 0, 297, 210)

    page.stroke(SLATE)
    page.line_width(0.5)
    page.rect(10, 10, 277, 190, fill=False)

    page.stroke(SKY)
    page.line_width(1.5)
    page.line(10, 30, 287, 30)
    page.line(10, 180, 287, 180)

    page.font(FONT_BOLD, 32)
    page.fill(SLATE)
    page.text("CERTIFICATE OF PARTICIPATION", CENTER_X_MM, 25)

    page.font(FONT_REGULAR, 16)
    page.fill(BLACK)
    page.text("This is to certify that", CENTER_X_MM, 70)

    page.font(FONT_BOLD, 28)
    page.fill(SKY)
    page.text(participant_name, CENTER_X_MM, 90)

    page.font(FONT_REGULAR, 16)
    page.fill(BLACK)
    page.text(data.custom_text or PARTICIPATION_CUSTOM_TEXT, CENTER_X_MM, 110)

    page.font(FONT_BOLD, 20)
    page.text(event_name, CENTER_X_MM, 125)

    page.font(FONT_REGULAR, 12)
    page.text(
        f"Issue Date: {fmt_issue_date(certificate.issue_date)}", CENTER_X_MM, 145
    )
    page.font(FONT_REGULAR, 10)
    page.text(f"Certificate #: {certificate.certificate_number}", CENTER_X_MM, 155)

    page.font(FONT_BOLD, 10)
    page.text(data.certifying_authority or PARTICIPATION_AUTHORITY, CENTER_X_MM, 170)
    page.font(FONT_REGULAR, 12)
    page.text("Authorized Signatory", CENTER_X_MM, 175)

    page.finish()
    return buffer.getvalue()


def certificate_filename(certificate_number: str, kind: str = PARTICIPATION) -> str:
    safe = "".join(
        ch if ch.isalnum() or ch in "-_" else "_" for ch in certificate_number or ""
    )
    if kind == ACHIEVEMENT:
        return f"tekron_certificate_{safe}.pdf"
    return f"certificate_{safe}.pdf"
