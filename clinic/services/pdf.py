"""
Prescription documents.

Layout and drawing are separate steps.  :class:`PrescriptionLayout`
turns a resolved :class:`PrescriptionRecord` into a flat list of draw
commands positioned in millimetres from the top-left corner of an A4
page; :func:`render_prescription_pdf` replays them on a ReportLab canvas.
Tests can assert on the commands without parsing PDF output.

A second path, :func:`render_image_pdf`, takes a captured raster image
of the on-screen prescription and tiles it over as many pages as needed.
"""
from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, Optional, Union

from django.conf import settings
from PIL import Image, UnidentifiedImageError
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas

from .validation import calculate_age

logger = logging.getLogger(__name__)

PAGE_WIDTH = 210.0
PAGE_HEIGHT = 297.0
MARGIN = 20.0

DOCTOR_BLOCK_Y = 70.0
PATIENT_BLOCK_Y = 110.0
DETAILS_BLOCK_Y = 160.0
DETAILS_BOX_HEIGHT = 80.0
FOOTER_OFFSET = 30.0

IMAGE_WIDTH = 210.0
IMAGE_PAGE_HEIGHT = 295.0

BLACK = (0, 0, 0)
ALERT_RED = (200, 0, 0)
AI_BLUE = (0, 0, 255)

FONTS = {
    'normal': 'Helvetica',
    'bold': 'Helvetica-Bold',
    'italic': 'Helvetica-Oblique',
}

DEFAULT_SPECIALIZATION = 'General Practitioner'
DEFAULT_LICENSE = 'License: Available on request'
DEFAULT_EMAIL = 'Email not provided'
DEFAULT_AGE = 'Age not specified'
DEFAULT_PHONE = 'Phone not provided'
AI_DISCLOSURE = '* This prescription was generated with AI assistance'
DISCLAIMER = (
    'This is a computer-generated prescription. '
    'Please verify all details before dispensing medication.'
)


class DocumentRenderError(Exception):
    """Drawing or image decoding failed."""


class RenderTargetNotFound(DocumentRenderError):
    """No captured image was supplied to the raster path."""

    def __init__(self, message: str = 'render target not found'):
        super().__init__(message)


# ---------------------------------------------------------------------
# Draw commands
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class Text:
    x: float
    y: float
    text: str
    size: float = 11
    style: str = 'normal'
    color: tuple = BLACK
    align: str = 'left'


@dataclass(frozen=True)
class Line:
    x1: float
    y1: float
    x2: float
    y2: float


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float


DrawCommand = Union[Text, Line, Rect]


def wrap_text(text: str, width: float, font: str = 'normal', size: float = 12) -> list[str]:
    """Split ``text`` into lines no wider than ``width`` millimetres.

    Breaks only at whitespace; a single word wider than the line is kept
    whole on its own line.
    """
    if not text:
        return []
    return simpleSplit(text, FONTS.get(font, font), size, width * mm)


# ---------------------------------------------------------------------
# Input record
# ---------------------------------------------------------------------
@dataclass
class PrescriptionRecord:
    id: str
    medication: str
    dosage: str
    frequency: str
    duration: str
    patient_name: str
    doctor_name: str
    instructions: Optional[str] = None
    warnings: list[str] = field(default_factory=list)
    is_ai_generated: bool = False
    doctor_specialization: Optional[str] = None
    doctor_license: Optional[str] = None
    patient_email: Optional[str] = None
    patient_age: Optional[str] = None
    patient_phone: Optional[str] = None
    clinic_name: Optional[str] = None
    clinic_address: Optional[str] = None
    issued_on: Optional[date] = None

    @classmethod
    def from_prescription(cls, prescription: Any, today: Optional[date] = None) -> 'PrescriptionRecord':
        """Resolve a ``Prescription`` row together with its doctor and patient."""
        patient = prescription.patient
        doctor = prescription.doctor
        details = prescription.medication_details or {}
        age = calculate_age(patient.date_of_birth, today) if patient.date_of_birth else None
        created = prescription.created_at
        return cls(
            id=str(prescription.pk),
            medication=prescription.medication,
            dosage=prescription.dosage,
            frequency=prescription.frequency,
            duration=prescription.duration,
            instructions=prescription.instructions,
            warnings=[str(w) for w in details.get('warnings') or []],
            is_ai_generated=bool(prescription.is_ai_generated),
            patient_name=patient.full_name,
            patient_email=patient.email or None,
            patient_age=str(age) if age is not None else None,
            patient_phone=patient.phone or None,
            doctor_name=doctor.full_name,
            doctor_specialization=doctor.specialization or None,
            doctor_license=f'License: {doctor.license_number}' if doctor.license_number else None,
            clinic_name=settings.CLINIC_NAME,
            clinic_address=settings.CLINIC_ADDRESS,
            issued_on=created.date() if isinstance(created, datetime) else created,
        )


def _format_date(day: date) -> str:
    return f'{day.month}/{day.day}/{day.year}'


# ---------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------
class PrescriptionLayout:
    """Compute the draw commands for one prescription page."""

    def __init__(self, record: PrescriptionRecord, page_width: float = PAGE_WIDTH,
                 page_height: float = PAGE_HEIGHT, margin: float = MARGIN):
        self.record = record
        self.page_width = page_width
        self.page_height = page_height
        self.margin = margin
        self.commands: list[DrawCommand] = []

    def _text(self, x, y, text, size, style='normal', **kw) -> None:
        self.commands.append(Text(x, y, text, size, style, **kw))

    def build(self) -> list[DrawCommand]:
        self.commands = []
        self._header()
        self._doctor()
        self._patient()
        self._details()
        self._footer()
        return self.commands

    def _header(self) -> None:
        r = self.record
        center = self.page_width / 2
        y = self.margin
        self._text(center, y, r.clinic_name or 'MediOca Healthcare Platform', 20, 'bold', align='center')
        y += 8
        self._text(center, y, r.clinic_address or 'Digital Healthcare Solutions', 12, align='center')
        y += 15
        self._text(center, y, 'PRESCRIPTION', 18, 'bold', align='center')
        y += 10
        self._text(self.margin, y, f'Prescription ID: {r.id[:8].upper()}', 10)
        issued = r.issued_on or date.today()
        self._text(self.page_width - self.margin, y, f'Date: {_format_date(issued)}', 10, align='right')
        y += 8
        self.commands.append(Line(self.margin, y, self.page_width - self.margin, y))

    def _doctor(self) -> None:
        r = self.record
        y = DOCTOR_BLOCK_Y
        self._text(self.margin, y, 'DOCTOR INFORMATION', 14, 'bold')
        y += 8
        self._text(self.margin, y, f'Dr. {r.doctor_name}', 11)
        y += 6
        self._text(self.margin, y, f'Specialization: {r.doctor_specialization or DEFAULT_SPECIALIZATION}', 11)
        y += 6
        self._text(self.margin, y, r.doctor_license or DEFAULT_LICENSE, 11)

    def _patient(self) -> None:
        r = self.record
        y = PATIENT_BLOCK_Y
        self._text(self.margin, y, 'PATIENT INFORMATION', 14, 'bold')
        for label, value in (
            ('Name', r.patient_name),
            ('Email', r.patient_email or DEFAULT_EMAIL),
            ('Age', r.patient_age or DEFAULT_AGE),
            ('Phone', r.patient_phone or DEFAULT_PHONE),
        ):
            y += 8 if label == 'Name' else 6
            self._text(self.margin, y, f'{label}: {value}', 11)

    def _details(self) -> None:
        r = self.record
        left = self.margin + 5
        y = DETAILS_BLOCK_Y
        self._text(self.margin, y, 'PRESCRIPTION DETAILS', 14, 'bold')
        y += 10
        self.commands.append(Rect(self.margin, y, self.page_width - 2 * self.margin, DETAILS_BOX_HEIGHT))
        y += 10
        self._text(left, y, f'Medication: {r.medication}', 12, 'bold')
        y += 8
        self._text(left, y, f'Dosage: {r.dosage}', 12)
        y += 6
        self._text(left, y, f'Frequency: {r.frequency}', 12)
        y += 6
        self._text(left, y, f'Duration: {r.duration}', 12)

        if r.instructions:
            y += 8
            self._text(left, y, 'Instructions:', 12, 'bold')
            y += 6
            max_width = self.page_width - 2 * self.margin - 10
            for line in wrap_text(r.instructions, max_width, 'normal', 12):
                self._text(left, y, line, 12)
                y += 5

        if r.warnings:
            y += 10
            self._text(self.margin, y, 'WARNINGS:', 12, 'bold', color=ALERT_RED)
            y += 6
            for warning in r.warnings:
                for line in wrap_text(f'• {warning}', self.page_width - 2 * self.margin, 'normal', 12):
                    self._text(left, y, line, 12, color=ALERT_RED)
                    y += 5

        if r.is_ai_generated:
            y += 10
            self._text(self.margin, y, AI_DISCLOSURE, 10, 'italic', color=AI_BLUE)

    def _footer(self) -> None:
        footer_y = self.page_height - FOOTER_OFFSET
        self.commands.append(Line(self.margin, footer_y - 10, self.page_width - self.margin, footer_y - 10))
        self._text(self.margin, footer_y, 'Doctor Signature: ____________________', 10)
        self._text(self.page_width - self.margin - 60, footer_y, 'Date: ____________________', 10)
        self._text(self.page_width / 2, footer_y + 10, DISCLAIMER, 10, align='center')


# ---------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------
def _draw(c: canvas.Canvas, commands: Iterable[DrawCommand], page_height: float) -> None:
    def py(y: float) -> float:
        return (page_height - y) * mm

    for cmd in commands:
        if isinstance(cmd, Text):
            c.setFont(FONTS[cmd.style], cmd.size)
            c.setFillColorRGB(*(v / 255 for v in cmd.color))
            if cmd.align == 'center':
                c.drawCentredString(cmd.x * mm, py(cmd.y), cmd.text)
            elif cmd.align == 'right':
                c.drawRightString(cmd.x * mm, py(cmd.y), cmd.text)
            else:
                c.drawString(cmd.x * mm, py(cmd.y), cmd.text)
        elif isinstance(cmd, Line):
            c.line(cmd.x1 * mm, py(cmd.y1), cmd.x2 * mm, py(cmd.y2))
        elif isinstance(cmd, Rect):
            c.rect(cmd.x * mm, py(cmd.y + cmd.height), cmd.width * mm, cmd.height * mm, stroke=1, fill=0)


def render_prescription_pdf(record: PrescriptionRecord) -> bytes:
    layout = PrescriptionLayout(record)
    commands = layout.build()
    buf = io.BytesIO()
    try:
        c = canvas.Canvas(buf, pagesize=A4)
        c.setTitle(f'Prescription {record.id[:8].upper()}')
        _draw(c, commands, layout.page_height)
        c.showPage()
        c.save()
    except Exception as e:
        raise DocumentRenderError(f'failed to draw prescription: {e}') from e
    return buf.getvalue()


def tile_offsets(image_height: float, page_height: float = IMAGE_PAGE_HEIGHT,
                 max_pages: Optional[int] = None) -> list[float]:
    """Top offsets (mm) of the image on each page, first page at 0."""
    offsets = [0.0]
    remaining = image_height - page_height
    while remaining >= 0:
        if max_pages is not None and len(offsets) >= max_pages:
            raise DocumentRenderError(f'image would span more than {max_pages} pages')
        offsets.append(remaining - image_height)
        remaining -= page_height
    return offsets


def render_image_pdf(image: Any, max_pages: Optional[int] = None) -> bytes:
    """Tile a captured raster image across A4 pages at full page width.

    ``image`` may be a PIL image, raw bytes, or a binary file object.
    Captures taller than ``max_pages`` pages (``PDF_IMAGE_MAX_PAGES`` by
    default) are refused.
    """
    if image is None or image == b'':
        raise RenderTargetNotFound()
    if max_pages is None:
        max_pages = settings.PDF_IMAGE_MAX_PAGES
    try:
        if isinstance(image, Image.Image):
            picture = image
        else:
            picture = Image.open(io.BytesIO(image) if isinstance(image, bytes) else image)
            picture.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise DocumentRenderError(f'unreadable image: {e}') from e

    width_px, height_px = picture.size
    if not width_px or not height_px:
        raise DocumentRenderError('empty image')
    image_height = height_px * IMAGE_WIDTH / width_px
    offsets = tile_offsets(image_height, max_pages=max_pages)

    buf = io.BytesIO()
    try:
        if picture.mode not in ('RGB', 'L'):
            picture = picture.convert('RGB')
        reader = ImageReader(picture)
        c = canvas.Canvas(buf, pagesize=A4)
        for offset in offsets:
            bottom = (PAGE_HEIGHT - offset - image_height) * mm
            c.drawImage(reader, 0, bottom, width=IMAGE_WIDTH * mm, height=image_height * mm)
            c.showPage()
        c.save()
    except Exception as e:
        raise DocumentRenderError(f'failed to draw image: {e}') from e
    return buf.getvalue()


def render_image_pdf_safely(image: Any) -> Optional[bytes]:
    """Like :func:`render_image_pdf` but logs and returns ``None`` on failure."""
    try:
        return render_image_pdf(image)
    except RenderTargetNotFound:
        logger.error('Element not found for PDF generation')
    except DocumentRenderError:
        logger.exception('Error generating PDF from image')
    return None


def prescription_filename(patient_name: Optional[str], on: Optional[date] = None) -> str:
    name = re.sub(r'\s+', '_', (patient_name or 'Unknown Patient').strip())
    return f'prescription_{name}_{(on or date.today()).isoformat()}.pdf'
