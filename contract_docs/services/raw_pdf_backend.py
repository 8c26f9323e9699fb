"""
Raw PDF contract backend.
Last-resort generator: a single Letter page of plain Helvetica text lines, built
locally with reportlab. No network access, no templates, no layout engine.
"""

import asyncio
import io
import logging
from dataclasses import dataclass
from datetime import datetime

from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from ..domain.contracts.generator import RAW, ContractDocumentGenerator, GeneratedDocument
from ..domain.contracts.schemas import ContractData, format_amount
from ..utils.storage import ArtifactStore, build_artifact_key

logger = logging.getLogger(__name__)

FONT_NAME = "Helvetica"
FONT_SIZE = 10
LEFT_MARGIN = 50
TOP_Y = 750
BOTTOM_Y = 50
LINE_HEIGHT = 14


@dataclass(frozen=True)
class RawPdfResult:
    pdf_buffer: bytes
    document_url: str


def _pdf_safe(text: str) -> str:
    # Standard Helvetica only covers WinAnsi; anything else becomes "?"
    flat = " ".join(str(text).split())
    return flat.encode("cp1252", "replace").decode("cp1252")


def contract_lines(data: ContractData) -> list[str]:
    """Text lines in page order; blank strings are spacer lines"""
    lines = [
        "EMPLOYMENT CONTRACT",
        f"Contract Number: {data.contract_number}",
        f"Contract Date: {data.contract_date}",
        f"Contract Type: {data.contract_type}",
        "",
        "PROMOTER",
        f"Name: {data.promoter_name_en}",
        f"Name (Arabic): {data.promoter_name_ar}",
        f"Email: {data.promoter_email}",
        f"Mobile: {data.promoter_mobile_number}",
        f"ID Card Number: {data.promoter_id_card_number}",
        f"Passport Number: {data.promoter_passport_number or ''}",
        "",
        "FIRST PARTY (CLIENT)",
        f"Name: {data.first_party_name_en}",
        f"Name (Arabic): {data.first_party_name_ar}",
        f"CRN: {data.first_party_crn}",
        f"Email: {data.first_party_email}",
        f"Phone: {data.first_party_phone}",
        "",
        "SECOND PARTY (EMPLOYER)",
        f"Name: {data.second_party_name_en}",
        f"Name (Arabic): {data.second_party_name_ar}",
        f"CRN: {data.second_party_crn}",
        f"Email: {data.second_party_email}",
        f"Phone: {data.second_party_phone}",
        "",
        "EMPLOYMENT TERMS",
        f"Job Title: {data.job_title}",
        f"Department: {data.department}",
        f"Work Location: {data.work_location}",
        f"Basic Salary: {format_amount(data.basic_salary)} {data.currency}".rstrip(),
        f"Start Date: {data.contract_start_date}",
        f"End Date: {data.contract_end_date}",
    ]
    if data.has_special_terms:
        lines.append(f"Special Terms: {data.special_terms}")
    return lines


class RawPdfBackend(ContractDocumentGenerator):
    """Fallback generator that never needs an external rendering service"""

    kind = RAW

    def __init__(self, store: ArtifactStore):
        self.store = store

    def build_pdf(self, data: ContractData) -> bytes:
        """
        Build the single-page PDF. Deterministic for a given input.
        Lines below the bottom margin are dropped; the page never grows.
        """
        buffer = io.BytesIO()
        pdf = canvas.Canvas(
            buffer,
            pagesize=letter,
            pageCompression=0,
            invariant=1,
        )
        pdf.setTitle(f"Contract {data.contract_number}")
        pdf.setFont(FONT_NAME, FONT_SIZE)

        y = TOP_Y
        lines = contract_lines(data)
        for index, line in enumerate(lines):
            if y < BOTTOM_Y:
                logger.warning(
                    f"⚠️ Raw PDF for contract {data.contract_number} truncated: "
                    f"{len(lines) - index} lines do not fit on the page"
                )
                break
            if line:
                pdf.drawString(LEFT_MARGIN, y, _pdf_safe(line))
            y -= LINE_HEIGHT

        pdf.showPage()
        pdf.save()

        pdf_bytes = buffer.getvalue()
        buffer.close()
        return pdf_bytes

    async def save_contract(self, data: ContractData, pdf_bytes: bytes) -> str:
        key = build_artifact_key(data.contract_number, datetime.utcnow(), "pdf")
        return await asyncio.to_thread(self.store.save, key, pdf_bytes, "application/pdf")

    async def generate_contract(self, data: ContractData) -> RawPdfResult:
        logger.info(f"📄 Generating raw PDF for contract {data.contract_number}")
        pdf_bytes = self.build_pdf(data)
        document_url = await self.save_contract(data, pdf_bytes)
        logger.info(f"✅ Generated raw PDF ({len(pdf_bytes)} bytes)")
        return RawPdfResult(pdf_buffer=pdf_bytes, document_url=document_url)

    async def generate(self, data: ContractData) -> GeneratedDocument:
        result = await self.generate_contract(data)
        return GeneratedDocument(
            kind=self.kind,
            artifact_urls={"document": result.document_url, "pdf": result.document_url},
            pdf_bytes=result.pdf_buffer,
        )
