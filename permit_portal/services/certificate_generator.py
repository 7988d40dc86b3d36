"""
Permit Certificate Generation Service
PDF water permit certificates using ReportLab
"""

import io
import logging
from datetime import date, datetime, timezone
from functools import partial
from pathlib import Path
from typing import List, Optional
from xml.sax.saxutils import escape

from PIL import Image as PILImage
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import (
    CondPageBreak, Image as RLImage, KeepTogether, Paragraph, SimpleDocTemplate,
    Spacer, Table, TableStyle
)

from permit_portal.core.config import get_settings
from permit_portal.core.exceptions import CertificateRenderError
from permit_portal.models.enums import (
    APPLICATION_TYPE_DISPLAY_NAMES, WATER_PURPOSE_DISPLAY_NAMES, WATER_SOURCE_DISPLAY_NAMES
)
from permit_portal.schemas.permit import (
    CertificateApplicantDetails, CertificateInspection, PermitCertificateData
)
from permit_portal.services.status_taxonomy import UNKNOWN_LABEL, get_status_label

logger = logging.getLogger(__name__)

settings = get_settings()

WATER_BOARD_LABEL = "Rwanda Water Resources Board"
MINISTRY_LABEL = "Ministry of Environment"

DISCLAIMER = (
    "This document is an official water permit certificate issued by the Rwanda Water Resources Board. "
    "This permit is issued under the Water Law of Rwanda and is subject to the conditions specified herein. "
    "Unauthorized modification of this document is a criminal offense."
)

# Space the signature block needs before it is pushed to a new page
SIGNATURE_BLOCK_MIN_SPACE = 40 * mm

# Pillow reports corrupt files through several exception types
LOGO_ERRORS = (OSError, ValueError, SyntaxError, EOFError, PILImage.DecompressionBombError)

LOGO_SIZE = 22 * mm
PAGE_MARGIN = 20 * mm
FOOTER_HEIGHT = 24 * mm


class NumberedCanvas(canvas.Canvas):
    """
    Canvas that defers page output until the page count is known, then stamps
    the disclaimer footer and "Page i of N" on every page
    """

    def __init__(self, *args, footer_text: str = DISCLAIMER, printed_on: str = "", footer_style=None, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states = []
        self.footer_text = footer_text
        self.printed_on = printed_on
        self.footer_style = footer_style

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        page_count = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self.draw_footer(page_count)
            super().showPage()
        super().save()

    def draw_footer(self, page_count: int):
        page_width, _ = self._pagesize
        usable_width = page_width - 2 * PAGE_MARGIN

        self.saveState()
        self.setStrokeColor(colors.black)
        self.setLineWidth(0.5)
        self.line(PAGE_MARGIN, FOOTER_HEIGHT, page_width - PAGE_MARGIN, FOOTER_HEIGHT)

        disclaimer = Paragraph(self.footer_text, self.footer_style)
        _, height = disclaimer.wrap(usable_width, FOOTER_HEIGHT)
        disclaimer.drawOn(self, PAGE_MARGIN, FOOTER_HEIGHT - 2 * mm - height)

        self.setFont("Helvetica", 7)
        self.drawString(PAGE_MARGIN, 8 * mm, f"Printed on {self.printed_on}")
        self.drawRightString(page_width - PAGE_MARGIN, 8 * mm, f"Page {self._pageNumber} of {page_count}")
        self.restoreState()


class CertificateTemplate:
    """Water permit certificate layout"""

    def __init__(self, title: str = "Water Permit Certificate", page_size=A4,
                 water_board_logo: Optional[str] = None, ministry_logo: Optional[str] = None,
                 page_compression: Optional[int] = None):
        self.title = title
        self.page_size = page_size
        # None keeps ReportLab's default; 0 leaves page text readable in the output
        self.page_compression = page_compression
        self.water_board_logo = water_board_logo if water_board_logo is not None else settings.WATER_BOARD_LOGO_PATH
        self.ministry_logo = ministry_logo if ministry_logo is not None else settings.MINISTRY_LOGO_PATH
        self.styles = getSampleStyleSheet()
        self.setup_custom_styles()

    def setup_custom_styles(self):
        """Setup custom styles for permit certificates"""

        # Authority name in the header
        self.styles.add(ParagraphStyle(
            name='AuthorityHeader',
            parent=self.styles['Heading2'],
            fontSize=12,
            fontName='Helvetica-Bold',
            alignment=TA_CENTER,
            spaceAfter=2,
            textColor=colors.HexColor('#0b4f6c')
        ))

        # Text stand-in for a logo that could not be loaded
        self.styles.add(ParagraphStyle(
            name='LogoFallback',
            parent=self.styles['Normal'],
            fontSize=8,
            fontName='Helvetica-Bold',
            alignment=TA_CENTER,
            textColor=colors.HexColor('#0b4f6c')
        ))

        # Certificate title
        self.styles.add(ParagraphStyle(
            name='CertificateTitle',
            parent=self.styles['Heading1'],
            fontSize=16,
            fontName='Helvetica-Bold',
            alignment=TA_CENTER,
            spaceBefore=6,
            spaceAfter=4,
            textColor=colors.black
        ))

        self.styles.add(ParagraphStyle(
            name='PermitNumber',
            parent=self.styles['Normal'],
            fontSize=11,
            fontName='Helvetica',
            alignment=TA_CENTER,
            spaceAfter=10
        ))

        # Section header style
        self.styles.add(ParagraphStyle(
            name='SectionHeader',
            parent=self.styles['Normal'],
            fontSize=10,
            fontName='Helvetica-Bold',
            alignment=TA_LEFT,
            textColor=colors.white,
            backColor=colors.HexColor('#0b4f6c'),
            borderPadding=3,
            spaceBefore=8,
            spaceAfter=6
        ))

        self.styles.add(ParagraphStyle(
            name='FieldLabel',
            parent=self.styles['Normal'],
            fontSize=9,
            fontName='Helvetica-Bold',
            alignment=TA_LEFT
        ))

        self.styles.add(ParagraphStyle(
            name='FieldValue',
            parent=self.styles['Normal'],
            fontSize=9,
            fontName='Helvetica',
            alignment=TA_LEFT
        ))

        self.styles.add(ParagraphStyle(
            name='Footer',
            parent=self.styles['Normal'],
            fontSize=7,
            leading=9,
            fontName='Helvetica',
            alignment=TA_CENTER
        ))

    # Header

    def load_logo(self, path: Optional[str]) -> Optional[RLImage]:
        """
        Load a header logo, or None when the file is missing or unreadable.
        A broken logo never stops the certificate from rendering.
        """
        if not path:
            return None
        logo_path = Path(path)
        try:
            # verify() checks chunk checksums but leaves the image unusable,
            # so the pixels are decoded from a second open
            with PILImage.open(logo_path) as image:
                image.verify()
            with PILImage.open(logo_path) as image:
                image.load()
                decoded = image.convert("RGB")
        except LOGO_ERRORS as e:
            logger.warning(f"Logo {logo_path} could not be loaded, using text label: {e}")
            return None

        # ReportLab gets a clean re-encoded copy and never reads the file again
        buffer = io.BytesIO()
        decoded.save(buffer, format="PNG")
        buffer.seek(0)
        return RLImage(buffer, width=LOGO_SIZE, height=LOGO_SIZE, kind='proportional')

    def _logo_cell(self, path: Optional[str], fallback_label: str):
        logo = self.load_logo(path)
        if logo is None:
            return Paragraph(fallback_label, self.styles['LogoFallback'])
        return logo

    def build_header(self) -> List:
        header = Table(
            [[
                self._logo_cell(self.water_board_logo, WATER_BOARD_LABEL),
                [
                    Paragraph("REPUBLIC OF RWANDA", self.styles['AuthorityHeader']),
                    Paragraph(settings.ISSUING_AUTHORITY, self.styles['AuthorityHeader']),
                ],
                self._logo_cell(self.ministry_logo, MINISTRY_LABEL),
            ]],
            colWidths=[35 * mm, 100 * mm, 35 * mm]
        )
        header.setStyle(TableStyle([
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('LINEBELOW', (0, 0), (-1, -1), 1, colors.black),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
        ]))
        return [header, Spacer(1, 6)]

    # Body sections

    def _key_value_table(self, rows) -> Table:
        data = [
            [Paragraph(f"<b>{label}:</b>", self.styles['FieldLabel']), Paragraph(escape(str(value)), self.styles['FieldValue'])]
            for label, value in rows
        ]
        table = Table(data, colWidths=[50 * mm, 120 * mm])
        table.setStyle(TableStyle([
            ('BOX', (0, 0), (-1, -1), 1, colors.black),
            ('INNERGRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('BACKGROUND', (0, 0), (0, -1), colors.HexColor('#eef4f7')),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('LEFTPADDING', (0, 0), (-1, -1), 4),
            ('RIGHTPADDING', (0, 0), (-1, -1), 4),
            ('TOPPADDING', (0, 0), (-1, -1), 3),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 3),
        ]))
        return table

    def _grid_table(self, header: List[str], rows: List[List[str]], col_widths) -> Table:
        data = [[Paragraph(f"<b>{cell}</b>", self.styles['FieldLabel']) for cell in header]]
        data.extend([Paragraph(escape(str(cell)), self.styles['FieldValue']) for cell in row] for row in rows)
        table = Table(data, colWidths=col_widths, repeatRows=1)
        table.setStyle(TableStyle([
            ('BOX', (0, 0), (-1, -1), 1, colors.black),
            ('INNERGRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#eef4f7')),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('LEFTPADDING', (0, 0), (-1, -1), 4),
            ('RIGHTPADDING', (0, 0), (-1, -1), 4),
            ('TOPPADDING', (0, 0), (-1, -1), 3),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 3),
        ]))
        return table

    def build_permit_section(self, data: PermitCertificateData) -> List:
        rows = [
            ("Title", data.title),
            ("Permit Type", data.permit_type),
            ("Status", get_status_label("permit", data.status)),
            ("Issue Date", data.issue_date),
            ("Expiry Date", data.expiry_date),
            ("Water Source", data.water_source),
            ("Purpose", data.purpose),
            ("Water Allowance", data.water_allowance),
            ("Location", data.location),
            ("Issuing Authority", data.issuing_authority),
        ]
        return [Paragraph("PERMIT INFORMATION", self.styles['SectionHeader']), self._key_value_table(rows)]

    def build_applicant_section(self, applicant: CertificateApplicantDetails) -> List:
        rows = [("Applicant Name", applicant.applicant_name)]
        if applicant.applicant_type:
            rows.append(("Applicant Type", applicant.applicant_type))
        if applicant.contact_email:
            rows.append(("Contact Email", applicant.contact_email))
        if applicant.contact_phone:
            rows.append(("Contact Phone", applicant.contact_phone))
        if applicant.land_ownership:
            rows.append(("Land Ownership", applicant.land_ownership))
        if applicant.environmental_assessment is not None:
            rows.append(("Environmental Assessment", "Submitted" if applicant.environmental_assessment else "Not submitted"))
        return [Paragraph("APPLICANT INFORMATION", self.styles['SectionHeader']), self._key_value_table(rows)]

    def build_conditions_section(self, conditions: List[str]) -> List:
        rows = [[str(index), condition] for index, condition in enumerate(conditions, start=1)]
        return [
            Paragraph("PERMIT CONDITIONS", self.styles['SectionHeader']),
            self._grid_table(["No.", "Condition"], rows, [15 * mm, 155 * mm]),
        ]

    def build_inspection_section(self, inspections: List[CertificateInspection]) -> List:
        rows = [[item.date, _inspection_label(item.status), item.notes or ""] for item in inspections]
        return [
            Paragraph("INSPECTION HISTORY", self.styles['SectionHeader']),
            self._grid_table(["Date", "Result", "Notes"], rows, [30 * mm, 40 * mm, 100 * mm]),
        ]

    def build_signature_block(self) -> List:
        """Two signature boxes, kept together on the last page"""
        box_style = TableStyle([
            ('BOX', (0, 0), (0, -1), 1, colors.black),
            ('BOX', (2, 0), (2, -1), 1, colors.black),
            ('VALIGN', (0, 0), (-1, -1), 'BOTTOM'),
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('TOPPADDING', (0, 0), (-1, 0), 18 * mm),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
        ])
        boxes = Table(
            [
                [Paragraph("Signature &amp; Stamp", self.styles['FieldValue']), "",
                 Paragraph("Signature", self.styles['FieldValue'])],
                [Paragraph("<b>Issuing Authority</b>", self.styles['FieldLabel']), "",
                 Paragraph("<b>Permit Holder</b>", self.styles['FieldLabel'])],
            ],
            colWidths=[75 * mm, 20 * mm, 75 * mm]
        )
        boxes.setStyle(box_style)
        return [
            CondPageBreak(SIGNATURE_BLOCK_MIN_SPACE),
            KeepTogether([
                Paragraph("OFFICIAL SIGNATURES", self.styles['SectionHeader']),
                boxes,
            ]),
        ]

    def build_story(self, data: PermitCertificateData) -> List:
        """Flowables for the whole certificate, header to signatures"""
        story = []
        story.extend(self.build_header())
        story.append(Paragraph("WATER PERMIT CERTIFICATE", self.styles['CertificateTitle']))
        story.append(Paragraph(f"Permit No. {escape(data.permit_number)}", self.styles['PermitNumber']))

        story.extend(self.build_permit_section(data))
        if data.applicant is not None:
            story.extend(self.build_applicant_section(data.applicant))
        if data.conditions:
            story.extend(self.build_conditions_section(data.conditions))
        if data.inspections:
            story.extend(self.build_inspection_section(data.inspections))

        story.append(Spacer(1, 10))
        story.extend(self.build_signature_block())
        return story

    def render(self, story: List, document_title: str, printed_on: Optional[date] = None) -> bytes:
        """Lay out a story on numbered pages and return the PDF bytes"""
        printed_on = printed_on or datetime.now(timezone.utc).date()
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=self.page_size,
            rightMargin=PAGE_MARGIN,
            leftMargin=PAGE_MARGIN,
            topMargin=PAGE_MARGIN,
            bottomMargin=FOOTER_HEIGHT + 6 * mm,
            title=document_title,
            pageCompression=self.page_compression
        )
        doc.build(story, canvasmaker=partial(
            NumberedCanvas,
            footer_text=DISCLAIMER,
            printed_on=printed_on.strftime("%d %B %Y"),
            footer_style=self.styles['Footer'],
        ))
        pdf_data = buffer.getvalue()
        buffer.close()
        return pdf_data

    def generate(self, data: PermitCertificateData, printed_on: Optional[date] = None) -> bytes:
        """Generate certificate PDF for one permit"""
        try:
            logger.info(f"Generating certificate PDF for permit: {data.permit_number}")
            pdf_data = self.render(
                self.build_story(data), f"{self.title} {data.permit_number}", printed_on=printed_on
            )
            logger.info(f"Successfully generated certificate PDF ({len(pdf_data)} bytes)")
            return pdf_data

        except (ValueError, TypeError, AttributeError, IndexError) as e:
            logger.error(f"Error generating certificate PDF for {data.permit_number}: {e}")
            raise CertificateRenderError(f"PDF generation failed: {e}") from e


def _inspection_label(code: str) -> str:
    """Compliance result when recorded, otherwise the visit status"""
    label = get_status_label("inspection", code)
    if label == UNKNOWN_LABEL:
        label = get_status_label("inspection_status", code)
    return code if label == UNKNOWN_LABEL else label


def _display(mapping, value) -> str:
    if value is None:
        return "N/A"
    try:
        return mapping[value]
    except KeyError:
        return str(getattr(value, "value", value)).replace("_", " ").title()


def build_certificate_data(permit, application, status: str, inspections=(), applicant=None) -> PermitCertificateData:
    """
    Assemble the display record for a permit

    Args:
        permit: Permit row
        application: Originating application row
        status: Derived permit status code
        inspections: Inspection rows for the permit's application
        applicant: Applicant user row, or None to leave the section out
    """
    allowance = "N/A"
    if permit.water_allowance is not None:
        allowance = f"{permit.water_allowance:,.2f} {permit.allowance_unit or ''}".strip()

    applicant_details = None
    if applicant is not None:
        applicant_details = CertificateApplicantDetails(
            applicant_name=applicant.full_name,
            applicant_type=_display({}, applicant.account_type),
            contact_email=applicant.email,
            contact_phone=applicant.phone,
            land_ownership=application.land_ownership,
            environmental_assessment=application.environmental_assessment,
        )

    history = [
        CertificateInspection(
            date=(item.completed_date or item.scheduled_date or item.created_at).strftime("%d/%m/%Y"),
            status=getattr(item.compliance_status, "value", item.compliance_status)
            or getattr(item.status, "value", item.status),
            notes=item.recommendations or item.notes,
        )
        for item in sorted(inspections, key=lambda i: i.completed_date or i.scheduled_date or i.created_at)
    ]

    return PermitCertificateData(
        permit_number=permit.permit_number,
        title=application.project_title or f"{_display(APPLICATION_TYPE_DISPLAY_NAMES, application.application_type)} Water Use",
        permit_type=_display(APPLICATION_TYPE_DISPLAY_NAMES, application.application_type),
        status=status,
        issue_date=permit.issued_date.strftime("%d/%m/%Y"),
        expiry_date=permit.expiry_date.strftime("%d/%m/%Y"),
        water_source=_display(WATER_SOURCE_DISPLAY_NAMES, permit.water_source),
        purpose=_display(WATER_PURPOSE_DISPLAY_NAMES, permit.purpose),
        water_allowance=allowance,
        location=application.location_display or "N/A",
        issuing_authority=permit.issuing_authority,
        applicant=applicant_details,
        conditions=list(permit.conditions or []),
        inspections=history,
    )


certificate_template = CertificateTemplate()
