"""
Permit certificate rendering tests
"""

import re
import struct
import zlib
from datetime import date

import pytest
from PIL import Image
from reportlab.platypus import CondPageBreak

from permit_portal.schemas.permit import CertificateApplicantDetails, CertificateInspection, PermitCertificateData
from permit_portal.services.certificate_generator import SIGNATURE_BLOCK_MIN_SPACE, CertificateTemplate

PAGE_OBJECT = re.compile(rb"/Type /Page(?!s)")
CONTENT_STREAM = re.compile(rb"stream\r?\n(.*?)endstream", re.S)
PAGE_FOOTER = re.compile(rb"\(Page (\d+) of (\d+)\)")

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
# 1x1 pixel, 8-bit RGB
PNG_HEADER = struct.pack(">IIBBBBB", 1, 1, 8, 2, 0, 0, 0)


def _png_chunk(kind: bytes, data: bytes) -> bytes:
    return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data) & 0xFFFFFFFF)


def _write_png(path, idat_chunk: bytes):
    path.write_bytes(PNG_SIGNATURE + _png_chunk(b"IHDR", PNG_HEADER) + idat_chunk + _png_chunk(b"IEND", b""))
    return str(path)


class RecordingPageBreak(CondPageBreak):
    """Remembers the space left on the page when the break was laid out"""

    def __init__(self, height):
        super().__init__(height)
        self.available = None
        self.page = None

    def wrap(self, availWidth, availHeight):
        self.available = availHeight
        self.page = self.canv.getPageNumber()
        return super().wrap(availWidth, availHeight)


@pytest.fixture
def certificate_data():
    return PermitCertificateData(
        permit_number="PRM-2024-00001",
        title="Water Use Permit",
        permit_type="agricultural",
        status="expiring-soon",
        issue_date="2024-01-01",
        expiry_date="2024-06-25",
        water_source="river",
        purpose="irrigation",
        water_allowance="250 m3/day",
        location="Nyagatare, Eastern",
        issuing_authority="Rwanda Water Resources Board",
        applicant=CertificateApplicantDetails(
            applicant_name="Amina Uwase",
            applicant_type="individual",
            contact_email="amina.uwase@example.rw",
            environmental_assessment=True,
        ),
        conditions=["Report monthly abstraction volumes"],
        inspections=[CertificateInspection(date="2023-12-12", status="compliant", notes="Intake in good order")],
    )


def _page_count(pdf: bytes) -> int:
    return len(PAGE_OBJECT.findall(pdf))


def _page_streams(pdf: bytes) -> dict:
    """Uncompressed page content keyed by the page number in its footer"""
    pages = {}
    for stream in CONTENT_STREAM.findall(pdf):
        footer = PAGE_FOOTER.search(stream)
        if footer:
            number, total = int(footer.group(1)), int(footer.group(2))
            pages[number] = (total, stream)
    return pages


@pytest.fixture
def readable_template(tmp_path):
    return CertificateTemplate(
        water_board_logo=str(tmp_path / "none.png"),
        ministry_logo=str(tmp_path / "none.png"),
        page_compression=0,
    )


def test_renders_pdf_without_logo_files(certificate_data, tmp_path):
    template = CertificateTemplate(
        water_board_logo=str(tmp_path / "missing.png"),
        ministry_logo=str(tmp_path / "also-missing.png"),
    )
    pdf = template.generate(certificate_data)
    assert pdf.startswith(b"%PDF")
    assert _page_count(pdf) >= 1


def test_renders_with_logos(certificate_data, tmp_path):
    logo_path = tmp_path / "logo.png"
    Image.new("RGB", (120, 120), (0, 90, 160)).save(logo_path)

    template = CertificateTemplate(water_board_logo=str(logo_path), ministry_logo=str(logo_path))
    assert template.load_logo(str(logo_path)) is not None
    assert template.generate(certificate_data).startswith(b"%PDF")


def test_unreadable_logo_is_skipped(tmp_path):
    broken = tmp_path / "broken.png"
    broken.write_bytes(b"not an image")
    template = CertificateTemplate()
    assert template.load_logo(str(broken)) is None
    assert template.load_logo(None) is None


def _bad_checksum_png(path):
    idat = _png_chunk(b"IDAT", zlib.compress(b"\x00\x00\x5a\xa0"))
    return _write_png(path, idat[:-4] + bytes(b ^ 0xFF for b in idat[-4:]))


def _undecodable_png(path):
    return _write_png(path, _png_chunk(b"IDAT", b"this is not deflate data"))


@pytest.mark.parametrize("make_logo", [_bad_checksum_png, _undecodable_png], ids=["bad-checksum", "undecodable"])
def test_corrupt_png_logo_falls_back_to_text(certificate_data, tmp_path, make_logo):
    logo = make_logo(tmp_path / "logo.png")
    template = CertificateTemplate(water_board_logo=logo, ministry_logo=logo, page_compression=0)
    assert template.load_logo(logo) is None

    pdf = template.generate(certificate_data)
    assert pdf.startswith(b"%PDF")
    assert b"Ministry" in pdf


def test_every_page_carries_footer(certificate_data, readable_template):
    certificate_data.conditions = [f"Condition {i}: keep abstraction records" for i in range(1, 90)]
    pdf = readable_template.generate(certificate_data, printed_on=date(2024, 7, 1))

    pages = _page_streams(pdf)
    page_count = _page_count(pdf)
    assert page_count > 1
    assert sorted(pages) == list(range(1, page_count + 1))
    for total, stream in pages.values():
        assert total == page_count
        assert b"Unauthorized" in stream
        assert b"Printed on 01 July 2024" in stream


def test_signatures_are_on_the_last_page(certificate_data, readable_template):
    certificate_data.conditions = [f"Condition {i}: keep abstraction records" for i in range(1, 60)]
    pages = _page_streams(readable_template.generate(certificate_data))

    signed = [number for number, (_, stream) in pages.items() if b"OFFICIAL SIGNATURES" in stream]
    assert signed == [max(pages)]


def test_signatures_move_to_a_new_page_when_space_runs_out(certificate_data, readable_template):
    short_pages = 0
    for condition_count in range(1, 50):
        certificate_data.conditions = [f"Condition {i}" for i in range(1, condition_count + 1)]
        story = readable_template.build_story(certificate_data)
        index = next(i for i, flowable in enumerate(story) if isinstance(flowable, CondPageBreak))
        recorder = RecordingPageBreak(story[index].height)
        story[index] = recorder

        pages = _page_streams(readable_template.render(story, "layout"))
        signed = [number for number, (_, stream) in pages.items() if b"OFFICIAL SIGNATURES" in stream]
        assert signed == [max(pages)]

        if recorder.available < SIGNATURE_BLOCK_MIN_SPACE:
            short_pages += 1
            assert signed == [recorder.page + 1]

    # Condition rows are short enough that some counts leave under 40 mm
    assert short_pages > 0


def test_long_condition_lists_flow_onto_more_pages(certificate_data, tmp_path):
    certificate_data.conditions = [
        f"Condition {i}: keep abstraction records for the intake and submit them to the Board on request"
        for i in range(1, 121)
    ]
    template = CertificateTemplate(water_board_logo=str(tmp_path / "none.png"), ministry_logo=str(tmp_path / "none.png"))
    pdf = template.generate(certificate_data)
    assert pdf.startswith(b"%PDF")
    assert _page_count(pdf) > 1


def test_applicant_section_is_optional(certificate_data, tmp_path):
    certificate_data.applicant = None
    certificate_data.inspections = []
    template = CertificateTemplate(water_board_logo=str(tmp_path / "none.png"), ministry_logo=str(tmp_path / "none.png"))
    assert template.generate(certificate_data).startswith(b"%PDF")


def test_unknown_status_still_renders(certificate_data, tmp_path):
    certificate_data.status = "archived"
    template = CertificateTemplate(water_board_logo=str(tmp_path / "none.png"), ministry_logo=str(tmp_path / "none.png"))
    assert template.generate(certificate_data).startswith(b"%PDF")


def test_markup_characters_in_conditions(certificate_data, tmp_path):
    certificate_data.conditions = ["Abstraction < 250 m3/day & metered at the intake"]
    template = CertificateTemplate(water_board_logo=str(tmp_path / "none.png"), ministry_logo=str(tmp_path / "none.png"))
    assert template.generate(certificate_data).startswith(b"%PDF")
