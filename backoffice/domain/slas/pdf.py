"""
SLA Contract PDF Generator
Renders a contract summary table followed by the rendered contract body
"""

import io
import logging
from typing import Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ...models import Account, SlaContract
from ...shared.dates import format_date
from ...utils.sanitization import sanitize_string, strip_tags

logger = logging.getLogger(__name__)


class ContractPDFGenerator:
    """Generate an SLA contract PDF"""

    def __init__(self, contract: SlaContract, account: Optional[Account] = None):
        self.contract = contract
        self.account = account

        self.page_width, self.page_height = letter
        self.margin = 0.75 * inch
        self.content_width = self.page_width - (2 * self.margin)

        self.brand_color = colors.HexColor("#2563eb")
        self.dark_gray = colors.HexColor("#1e293b")
        self.light_gray = colors.HexColor("#f1f5f9")

    def _facts(self) -> list[tuple[str, str]]:
        contract = self.contract
        account_label = ""
        if self.account is not None:
            account_label = f"{self.account.name} (#{self.account.account_number})"

        def minutes(value: Optional[int]) -> str:
            return f"{value} minutes" if value else "-"

        return [
            ("Account", account_label or "-"),
            ("Type", contract.type or "-"),
            ("Status", contract.status or "-"),
            ("Version", str(contract.version or 1)),
            ("Start date", format_date(contract.start_date) or "-"),
            ("End date", format_date(contract.end_date) or "-"),
            ("Auto-renew", "Yes" if contract.auto_renew else "No"),
            ("Response target", minutes(contract.response_target_minutes)),
            ("Resolution target", minutes(contract.resolution_target_minutes)),
            ("Customer signature", self._signature(contract.signed_by_customer, contract.signed_at_customer)),
            ("Provider signature", self._signature(contract.signed_by_provider, contract.signed_at_provider)),
        ]

    @staticmethod
    def _signature(name: Optional[str], signed_at) -> str:
        if not name:
            return "Not signed"
        return f"{name} on {format_date(signed_at)}"

    def generate(self) -> bytes:
        """Generate PDF and return bytes"""
        logger.info(f"📄 Generating contract PDF for SLA {self.contract.id}")

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=letter,
            rightMargin=self.margin,
            leftMargin=self.margin,
            topMargin=self.margin,
            bottomMargin=self.margin,
            title=self.contract.name,
        )

        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(
            "ContractTitle",
            parent=styles["Heading1"],
            fontSize=20,
            textColor=self.brand_color,
            spaceAfter=12,
        )
        heading_style = ParagraphStyle(
            "ContractHeading",
            parent=styles["Heading2"],
            fontSize=14,
            textColor=self.dark_gray,
            spaceBefore=16,
            spaceAfter=8,
        )
        body_style = ParagraphStyle(
            "ContractBody",
            parent=styles["Normal"],
            fontSize=10,
            textColor=self.dark_gray,
            spaceAfter=6,
            leading=14,
        )

        story = [Paragraph(sanitize_string(self.contract.name), title_style)]

        rows = [
            [Paragraph(f"<b>{label}</b>", body_style), Paragraph(sanitize_string(value), body_style)]
            for label, value in self._facts()
        ]
        facts_table = Table(rows, colWidths=[self.content_width * 0.35, self.content_width * 0.65])
        facts_table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (0, -1), self.light_gray),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#e2e8f0")),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("TOPPADDING", (0, 0), (-1, -1), 4),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
                ]
            )
        )
        story.append(facts_table)

        if self.contract.entitlements:
            story.append(Paragraph("Entitlements", heading_style))
            story.append(Paragraph(sanitize_string(self.contract.entitlements), body_style))

        body_text = strip_tags(self.contract.rendered_html)
        if body_text.strip():
            story.append(Paragraph("Agreement", heading_style))
            for block in body_text.split("\n"):
                if block.strip():
                    story.append(Paragraph(sanitize_string(block.strip()), body_style))
        story.append(Spacer(1, 0.25 * inch))

        doc.build(story)
        pdf_bytes = buffer.getvalue()
        buffer.close()
        return pdf_bytes
