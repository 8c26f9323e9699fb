"""
HTML contract backend.
Builds a bilingual (English/Arabic) HTML contract and prints it to PDF with
Playwright (Chromium) running in a worker subprocess.
"""

import asyncio
import base64
import html as html_lib
import logging
import os
import subprocess
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Optional

from ..config import PDF_RENDER_TIMEOUT
from ..domain.contracts.errors import PdfRenderError
from ..domain.contracts.generator import HTML, ContractDocumentGenerator, GeneratedDocument
from ..domain.contracts.schemas import ContractData, format_amount
from ..utils.image_sources import allowed_image_url
from ..utils.storage import ArtifactStore, build_artifact_key

logger = logging.getLogger(__name__)

PdfRenderer = Callable[[str], Awaitable[bytes]]


@dataclass(frozen=True)
class SavedContract:
    html_url: str
    pdf_url: str

    @property
    def document_url(self) -> str:
        return self.pdf_url


@dataclass(frozen=True)
class HtmlContractResult:
    html_content: str
    pdf_buffer: bytes
    document_url: str
    html_url: Optional[str] = None


async def render_pdf_with_playwright(html: str, timeout: int = PDF_RENDER_TIMEOUT) -> bytes:
    """
    Print HTML to PDF with the Playwright worker script in a child process.
    The worker owns its own sync Playwright loop, so the server loop only waits on a thread.
    """
    worker_path = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "pdf_worker.py"))
    html_b64 = base64.b64encode(html.encode("utf-8")).decode("utf-8")

    def run_worker() -> bytes:
        try:
            result = subprocess.run(
                [sys.executable, worker_path],
                input=html_b64,
                capture_output=True,
                text=True,
                timeout=timeout,
                creationflags=subprocess.CREATE_NO_WINDOW if sys.platform == "win32" else 0,
            )
        except subprocess.TimeoutExpired as e:
            raise PdfRenderError(f"PDF generation timed out after {timeout} seconds") from e

        if result.returncode != 0:
            raise PdfRenderError(f"PDF worker failed (exit {result.returncode}): {result.stderr}")

        pdf_b64 = result.stdout.strip()
        if not pdf_b64:
            raise PdfRenderError("PDF worker returned empty output")
        return base64.b64decode(pdf_b64)

    # Run in thread pool to not block the event loop
    return await asyncio.to_thread(run_worker)


def _esc(value) -> str:
    if value is None:
        return ""
    return html_lib.escape(str(value), quote=True)


def _document_box(title_en: str, title_ar: str, url: Optional[str], missing_text: str) -> str:
    if url:
        body = f'<img src="{_esc(url)}" alt="{title_en}" class="doc-image">'
    else:
        body = f'<div class="doc-missing">{missing_text}</div>'
    return f"""
        <div class="doc-box">
            <div class="doc-title">{title_en} <span class="ar" dir="rtl">{title_ar}</span></div>
            {body}
        </div>"""


def build_contract_html(data: ContractData) -> str:
    """
    Generate the contract HTML. Pure string interpolation, so it cannot fail for
    a valid ContractData. Every value is HTML-escaped and sits in exactly one
    element tagged data-field="<field name>"; labels and headings carry no data-field.
    """
    salary = f"{format_amount(data.basic_salary)} {_esc(data.currency)}".rstrip()

    special_terms_html = ""
    if data.has_special_terms:
        special_terms_html = f"""
    <div class="section">
        <h2>Special Terms <span class="ar" dir="rtl">شروط خاصة</span></h2>
        <p class="terms" data-field="special_terms">{_esc(data.special_terms)}</p>
    </div>"""

    passport_row = ""
    if data.promoter_passport_number:
        passport_row = f"""
            <tr><th>Passport Number <span class="ar" dir="rtl">رقم جواز السفر</span></th><td data-field="promoter_passport_number">{_esc(data.promoter_passport_number)}</td></tr>"""

    id_card_box = _document_box(
        "ID Card",
        "البطاقة الشخصية",
        allowed_image_url(data.promoter_id_card_url),
        "ID card image not provided",
    )
    passport_box = _document_box(
        "Passport",
        "جواز السفر",
        allowed_image_url(data.promoter_passport_url),
        "Passport image not provided",
    )

    html = f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>Employment Contract</title>
    <style>
        @page {{ size: A4; margin: 20mm; }}
        body {{ font-family: Arial, 'Noto Naskh Arabic', sans-serif; color: #2c3e50; font-size: 11pt; line-height: 1.5; margin: 0; }}
        .header {{ text-align: center; border-bottom: 2px solid #3498db; padding-bottom: 12px; margin-bottom: 20px; }}
        .header h1 {{ font-size: 22pt; margin: 0 0 6px 0; }}
        .meta {{ color: #7f8c8d; font-size: 10pt; }}
        .section {{ margin-bottom: 18px; page-break-inside: avoid; }}
        .section h2 {{ font-size: 13pt; color: #34495e; border-bottom: 1px solid #dfe6e9; padding-bottom: 4px; }}
        table {{ width: 100%; border-collapse: collapse; }}
        th, td {{ text-align: left; padding: 4px 6px; vertical-align: top; }}
        th {{ width: 40%; font-weight: 600; color: #34495e; }}
        .ar {{ font-family: 'Noto Naskh Arabic', Arial, sans-serif; color: #7f8c8d; margin-left: 6px; }}
        .parties {{ display: flex; gap: 16px; }}
        .parties .section {{ flex: 1; }}
        .docs {{ display: flex; gap: 16px; }}
        .doc-box {{ flex: 1; border: 1px dashed #b2bec3; padding: 8px; text-align: center; min-height: 160px; }}
        .doc-title {{ font-weight: 600; margin-bottom: 6px; }}
        .doc-image {{ max-width: 100%; max-height: 300px; object-fit: contain; }}
        .doc-missing {{ color: #95a5a6; font-style: italic; padding-top: 50px; }}
        .terms {{ white-space: pre-wrap; }}
        .signatures {{ display: flex; gap: 40px; margin-top: 40px; }}
        .signature {{ flex: 1; border-top: 1px solid #2c3e50; padding-top: 6px; font-size: 10pt; }}
    </style>
</head>
<body>
    <div class="header">
        <h1>Employment Contract <span class="ar" dir="rtl">عقد عمل</span></h1>
        <div class="meta">
            Contract No. <strong data-field="contract_number">{_esc(data.contract_number)}</strong> &middot;
            Date: <span data-field="contract_date">{_esc(data.contract_date)}</span> &middot;
            Type: <span data-field="contract_type">{_esc(data.contract_type)}</span>
        </div>
    </div>

    <div class="section">
        <h2>Promoter <span class="ar" dir="rtl">المروج</span></h2>
        <table>
            <tr><th>Name</th><td data-field="promoter_name_en">{_esc(data.promoter_name_en)}</td></tr>
            <tr><th>Name (Arabic) <span class="ar" dir="rtl">الاسم</span></th><td data-field="promoter_name_ar" dir="rtl">{_esc(data.promoter_name_ar)}</td></tr>
            <tr><th>Email <span class="ar" dir="rtl">البريد الإلكتروني</span></th><td data-field="promoter_email">{_esc(data.promoter_email)}</td></tr>
            <tr><th>Mobile <span class="ar" dir="rtl">الهاتف</span></th><td data-field="promoter_mobile_number">{_esc(data.promoter_mobile_number)}</td></tr>
            <tr><th>ID Card Number <span class="ar" dir="rtl">رقم البطاقة</span></th><td data-field="promoter_id_card_number">{_esc(data.promoter_id_card_number)}</td></tr>{passport_row}
        </table>
    </div>

    <div class="parties">
        <div class="section">
            <h2>First Party (Client) <span class="ar" dir="rtl">الطرف الأول</span></h2>
            <table>
                <tr><th>Name</th><td data-field="first_party_name_en">{_esc(data.first_party_name_en)}</td></tr>
                <tr><th>Name (Arabic)</th><td data-field="first_party_name_ar" dir="rtl">{_esc(data.first_party_name_ar)}</td></tr>
                <tr><th>CRN</th><td data-field="first_party_crn">{_esc(data.first_party_crn)}</td></tr>
                <tr><th>Email</th><td data-field="first_party_email">{_esc(data.first_party_email)}</td></tr>
                <tr><th>Phone</th><td data-field="first_party_phone">{_esc(data.first_party_phone)}</td></tr>
            </table>
        </div>
        <div class="section">
            <h2>Second Party (Employer) <span class="ar" dir="rtl">الطرف الثاني</span></h2>
            <table>
                <tr><th>Name</th><td data-field="second_party_name_en">{_esc(data.second_party_name_en)}</td></tr>
                <tr><th>Name (Arabic)</th><td data-field="second_party_name_ar" dir="rtl">{_esc(data.second_party_name_ar)}</td></tr>
                <tr><th>CRN</th><td data-field="second_party_crn">{_esc(data.second_party_crn)}</td></tr>
                <tr><th>Email</th><td data-field="second_party_email">{_esc(data.second_party_email)}</td></tr>
                <tr><th>Phone</th><td data-field="second_party_phone">{_esc(data.second_party_phone)}</td></tr>
            </table>
        </div>
    </div>

    <div class="section">
        <h2>Employment Terms <span class="ar" dir="rtl">شروط العمل</span></h2>
        <table>
            <tr><th>Job Title <span class="ar" dir="rtl">المسمى الوظيفي</span></th><td data-field="job_title">{_esc(data.job_title)}</td></tr>
            <tr><th>Department <span class="ar" dir="rtl">القسم</span></th><td data-field="department">{_esc(data.department)}</td></tr>
            <tr><th>Work Location <span class="ar" dir="rtl">مكان العمل</span></th><td data-field="work_location">{_esc(data.work_location)}</td></tr>
            <tr><th>Basic Salary <span class="ar" dir="rtl">الراتب الأساسي</span></th><td data-field="basic_salary">{salary}</td></tr>
            <tr><th>Start Date <span class="ar" dir="rtl">تاريخ البدء</span></th><td data-field="contract_start_date">{_esc(data.contract_start_date)}</td></tr>
            <tr><th>End Date <span class="ar" dir="rtl">تاريخ الانتهاء</span></th><td data-field="contract_end_date">{_esc(data.contract_end_date)}</td></tr>
        </table>
    </div>

    <div class="section">
        <h2>Identity Documents <span class="ar" dir="rtl">وثائق الهوية</span></h2>
        <div class="docs">{id_card_box}{passport_box}
        </div>
    </div>
{special_terms_html}
    <div class="signatures">
        <div class="signature">First Party Signature <span class="ar" dir="rtl">توقيع الطرف الأول</span></div>
        <div class="signature">Second Party Signature <span class="ar" dir="rtl">توقيع الطرف الثاني</span></div>
        <div class="signature">Promoter Signature <span class="ar" dir="rtl">توقيع المروج</span></div>
    </div>
</body>
</html>
"""
    return html


class HtmlPdfBackend(ContractDocumentGenerator):
    """Render contract HTML, print it to PDF and store both artifacts"""

    kind = HTML

    def __init__(self, store: ArtifactStore, renderer: PdfRenderer = render_pdf_with_playwright):
        self.store = store
        self.renderer = renderer

    def generate_html(self, data: ContractData) -> str:
        return build_contract_html(data)

    async def generate_pdf_from_html(self, html: str) -> bytes:
        return await self.renderer(html)

    async def save_contract(self, data: ContractData, html: str, pdf_bytes: bytes) -> SavedContract:
        """Store HTML and PDF under the same contract_number/timestamp name"""
        now = datetime.utcnow()
        html_key = build_artifact_key(data.contract_number, now, "html")
        pdf_key = build_artifact_key(data.contract_number, now, "pdf")

        html_url = await asyncio.to_thread(
            self.store.save, html_key, html.encode("utf-8"), "text/html; charset=utf-8"
        )
        pdf_url = await asyncio.to_thread(self.store.save, pdf_key, pdf_bytes, "application/pdf")
        return SavedContract(html_url=html_url, pdf_url=pdf_url)

    async def generate_contract(self, data: ContractData) -> HtmlContractResult:
        logger.info(f"📄 Generating HTML contract for {data.contract_number}")
        html = self.generate_html(data)
        pdf_bytes = await self.generate_pdf_from_html(html)
        saved = await self.save_contract(data, html, pdf_bytes)
        logger.info(f"✅ Generated HTML contract PDF ({len(pdf_bytes)} bytes): {saved.pdf_url}")
        return HtmlContractResult(
            html_content=html,
            pdf_buffer=pdf_bytes,
            document_url=saved.document_url,
            html_url=saved.html_url,
        )

    async def generate(self, data: ContractData) -> GeneratedDocument:
        result = await self.generate_contract(data)
        artifact_urls = {"document": result.document_url, "pdf": result.document_url}
        if result.html_url:
            artifact_urls["html"] = result.html_url
        return GeneratedDocument(
            kind=self.kind,
            artifact_urls=artifact_urls,
            pdf_bytes=result.pdf_buffer,
            html_content=result.html_content,
        )
