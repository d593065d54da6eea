import io
from datetime import date

import pytest
from PIL import Image
from reportlab.lib.units import mm
from reportlab.pdfbase.pdfmetrics import stringWidth

from clinic.services.pdf import (
    AI_BLUE, AI_DISCLOSURE, ALERT_RED, DEFAULT_LICENSE, DISCLAIMER, DocumentRenderError,
    Line, PrescriptionLayout, PrescriptionRecord, Rect, RenderTargetNotFound, Text,
    prescription_filename, render_image_pdf, render_image_pdf_safely, render_prescription_pdf,
    tile_offsets, wrap_text,
)

INSTRUCTIONS = (
    'Take one tablet by mouth every morning with a full glass of water. Do not crush or chew. '
    'If a dose is missed take it as soon as remembered unless it is almost time for the next dose.'
)


def _record(**overrides):
    data = dict(
        id='abcdef12-3456-7890-abcd-ef1234567890',
        medication='Amoxicillin',
        dosage='500mg',
        frequency='Twice a day',
        duration='10 days',
        patient_name='John Smith',
        doctor_name='Gregory House',
        issued_on=date(2024, 3, 5),
    )
    data.update(overrides)
    return PrescriptionRecord(**data)


def _texts(commands):
    return [c for c in commands if isinstance(c, Text)]


def _find(commands, prefix):
    return [c for c in _texts(commands) if c.text.startswith(prefix)]


def test_wrap_text_keeps_words_whole_and_fits():
    lines = wrap_text(INSTRUCTIONS, 100)
    assert len(lines) > 1
    assert ' '.join(lines).split() == INSTRUCTIONS.split()
    for line in lines:
        assert stringWidth(line, 'Helvetica', 12) <= 100 * mm


def test_wrap_text_is_stable_on_its_own_output():
    for line in wrap_text(INSTRUCTIONS, 80):
        assert wrap_text(line, 80) == [line]


def test_wrap_text_long_word_stays_whole():
    word = 'Supercalifragilisticexpialidocious' * 3
    assert wrap_text(word, 20) == [word]
    assert wrap_text('', 50) == []


def test_header_layout():
    commands = PrescriptionLayout(_record()).build()
    title = _texts(commands)[0]
    assert (title.text, title.y, title.size, title.style) == ('MediOca Healthcare Platform', 20, 20, 'bold')
    assert _find(commands, 'Prescription ID: ')[0].text == 'Prescription ID: ABCDEF12'
    assert _find(commands, 'Date: 3/5/2024')[0].align == 'right'
    assert isinstance(commands[5], Line)


def test_defaults_for_missing_details():
    commands = PrescriptionLayout(_record()).build()
    texts = [c.text for c in _texts(commands)]
    assert 'Dr. Gregory House' in texts
    assert 'Specialization: General Practitioner' in texts
    assert DEFAULT_LICENSE in texts
    assert 'Email: Email not provided' in texts
    assert 'Age: Age not specified' in texts
    assert 'Phone: Phone not provided' in texts


def test_fixed_block_positions():
    commands = PrescriptionLayout(_record()).build()
    assert _find(commands, 'DOCTOR INFORMATION')[0].y == 70
    assert _find(commands, 'PATIENT INFORMATION')[0].y == 110
    assert _find(commands, 'PRESCRIPTION DETAILS')[0].y == 160
    box = [c for c in commands if isinstance(c, Rect)][0]
    assert (box.x, box.y, box.width, box.height) == (20, 170, 170, 80)


def test_footer_sits_above_page_bottom():
    commands = PrescriptionLayout(_record()).build()
    assert _find(commands, 'Doctor Signature')[0].y == 267
    disclaimer = _find(commands, DISCLAIMER)[0]
    assert disclaimer.y == 277 and disclaimer.align == 'center'


def test_warnings_and_ai_blocks_are_conditional():
    plain = [c.text for c in _texts(PrescriptionLayout(_record(instructions=None)).build())]
    assert not any('WARNINGS' in t for t in plain)
    assert AI_DISCLOSURE not in plain
    assert 'Instructions:' not in plain

    commands = PrescriptionLayout(_record(
        instructions=INSTRUCTIONS,
        warnings=['May cause drowsiness', 'Avoid alcohol'],
        is_ai_generated=True,
    )).build()
    heading = _find(commands, 'WARNINGS:')[0]
    assert heading.color == ALERT_RED
    bullets = _find(commands, '• ')
    assert [b.text for b in bullets] == ['• May cause drowsiness', '• Avoid alcohol']
    assert all(b.color == ALERT_RED for b in bullets)
    ai = _find(commands, AI_DISCLOSURE)[0]
    assert (ai.style, ai.size, ai.color) == ('italic', 10, AI_BLUE)
    assert ai.y > bullets[-1].y > heading.y
    assert _find(commands, 'Instructions:')


def test_supplied_details_replace_defaults():
    commands = PrescriptionLayout(_record(
        doctor_specialization='Diagnostics',
        doctor_license='License: LIC-1',
        patient_email='john@example.com',
        patient_age='43',
        patient_phone='5551234567',
        clinic_name='Princeton Plainsboro',
    )).build()
    texts = [c.text for c in _texts(commands)]
    assert 'Specialization: Diagnostics' in texts
    assert 'License: LIC-1' in texts
    assert 'Age: 43' in texts
    assert texts[0] == 'Princeton Plainsboro'


def test_render_prescription_pdf():
    content = render_prescription_pdf(_record(warnings=['Take with food'], is_ai_generated=True))
    assert content.startswith(b'%PDF')


def test_tile_offsets():
    assert tile_offsets(100) == [0.0]
    assert tile_offsets(295) == [0.0, -295.0]
    assert tile_offsets(630) == [0.0, -295.0, -590.0]
    assert tile_offsets(630, max_pages=3) == [0.0, -295.0, -590.0]
    with pytest.raises(DocumentRenderError):
        tile_offsets(630, max_pages=2)


def _png(width, height, mode='RGB'):
    buf = io.BytesIO()
    Image.new(mode, (width, height), 1 if mode == '1' else 'white').save(buf, format='PNG')
    return buf.getvalue()


def test_render_image_pdf_tiles_tall_images():
    content = render_image_pdf(_png(100, 300))
    assert content.startswith(b'%PDF')
    assert b'/Count 3' in content


def test_render_image_pdf_accepts_pil_and_files():
    assert render_image_pdf(Image.new('RGBA', (50, 50))).startswith(b'%PDF')
    assert render_image_pdf(io.BytesIO(_png(40, 40))).startswith(b'%PDF')


def test_render_image_pdf_without_target():
    with pytest.raises(RenderTargetNotFound) as exc:
        render_image_pdf(None)
    assert str(exc.value) == 'render target not found'
    with pytest.raises(RenderTargetNotFound):
        render_image_pdf(b'')


def test_render_image_pdf_unreadable():
    with pytest.raises(DocumentRenderError):
        render_image_pdf(b'junk')


def test_render_image_pdf_refuses_decompression_bombs():
    bomb = _png(14000, 14000, mode='1')
    with pytest.raises(DocumentRenderError):
        render_image_pdf(bomb)
    assert render_image_pdf_safely(bomb) is None


def test_render_image_pdf_caps_page_count():
    with pytest.raises(DocumentRenderError):
        render_image_pdf(_png(1, 100000))
    with pytest.raises(DocumentRenderError):
        render_image_pdf(_png(100, 300), max_pages=2)
    assert b'/Count 3' in render_image_pdf(_png(100, 300), max_pages=3)


def test_render_image_pdf_safely_returns_none():
    assert render_image_pdf_safely(None) is None
    assert render_image_pdf_safely(b'junk') is None
    assert render_image_pdf_safely(_png(10, 10)).startswith(b'%PDF')


def test_prescription_filename():
    assert prescription_filename('John Smith', on=date(2024, 3, 5)) == 'prescription_John_Smith_2024-03-05.pdf'
    assert prescription_filename(None, on=date(2024, 3, 5)) == 'prescription_Unknown_Patient_2024-03-05.pdf'
