"""
Google Docs contract backend.

Copies a Docs template, fills the {{placeholder}} tokens, swaps the image
tokens for the promoter's ID card / passport scans, then exports the result to
a public PDF on Drive. Files created during a call are deleted again if any
later step fails.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import httpx

from ..domain.contracts.errors import (
    ConfigurationError,
    PlaceholderNotFoundError,
    TemplateCopyError,
)
from ..domain.contracts.generator import GOOGLE_DOCS, ContractDocumentGenerator, GeneratedDocument
from ..domain.contracts.placeholders import IMAGE_PLACEHOLDERS, token
from ..domain.contracts.schemas import ContractData
from ..utils.image_sources import allowed_image_url
from .google_workspace_client import GoogleWorkspaceClient, ServiceAccountCredentials

logger = logging.getLogger(__name__)

IMAGE_WIDTH_PT = 200
IMAGE_HEIGHT_PT = 300

# Stands in for inline objects when searching paragraph text; never part of a token
OBJECT_MARK = "\ufffc"


@dataclass(frozen=True)
class GoogleDocsConfig:
    template_id: str
    service_account_key: str
    output_folder_id: Optional[str] = None


@dataclass(frozen=True)
class GoogleDocsResult:
    document_id: str
    document_url: str
    pdf_url: str


def document_url(document_id: str) -> str:
    return f"https://docs.google.com/document/d/{document_id}/edit"


def drive_view_url(file_id: str) -> str:
    return f"https://drive.google.com/file/d/{file_id}/view"


def drive_image_url(file_id: str) -> str:
    return f"https://drive.google.com/uc?export=view&id={file_id}"


def _utf16_len(text: str) -> int:
    # Docs indexes count UTF-16 code units
    return len(text.encode("utf-16-le")) // 2


def _paragraph_segments(paragraph: dict) -> list[tuple[int, str]]:
    """
    (startIndex, text) per paragraph element. Non-text elements (inline images,
    footnote refs, ...) become OBJECT_MARK filler spanning their own index range
    so a token can still be matched across adjacent text runs.
    """
    segments = []
    for element in paragraph.get("elements", []):
        if "startIndex" not in element:
            continue
        if "textRun" in element:
            segments.append((element["startIndex"], element["textRun"].get("content", "")))
        else:
            width = max(element.get("endIndex", element["startIndex"] + 1) - element["startIndex"], 1)
            segments.append((element["startIndex"], OBJECT_MARK * width))
    return segments


def _doc_index(segments: list[tuple[int, str]], position: int, is_end: bool = False) -> int:
    # Map an offset in the joined text back to a Docs index
    offset = 0
    for start_index, text in segments:
        limit = offset + len(text)
        if position < limit or (is_end and position == limit):
            return start_index + _utf16_len(text[: position - offset])
        offset = limit
    start_index, text = segments[-1]
    return start_index + _utf16_len(text)


def _find_in_content(content: list[dict], needle: str) -> Optional[tuple[int, int]]:
    for element in content:
        paragraph = element.get("paragraph")
        if paragraph:
            segments = _paragraph_segments(paragraph)
            if segments:
                text = "".join(segment for _, segment in segments)
                offset = text.find(needle)
                if offset != -1:
                    start = _doc_index(segments, offset)
                    return start, _doc_index(segments, offset + len(needle), is_end=True)

        table = element.get("table")
        if table:
            for row in table.get("tableRows", []):
                for cell in row.get("tableCells", []):
                    found = _find_in_content(cell.get("content", []), needle)
                    if found:
                        return found
    return None


def find_placeholder_range(document: dict, placeholder: str) -> tuple[int, int]:
    """Return the [start, end) index range of placeholder's token in the document body"""
    needle = token(placeholder)
    found = _find_in_content(document.get("body", {}).get("content", []), needle)
    if not found:
        raise PlaceholderNotFoundError(needle)
    return found


def image_sources(data: ContractData) -> dict[str, Optional[str]]:
    """Image placeholder -> URL to fetch, None when absent or not an allowed source"""
    return {
        placeholder: allowed_image_url(getattr(data, url_field))
        for placeholder, url_field in IMAGE_PLACEHOLDERS.items()
    }


def build_replace_text_requests(values: dict[str, str]) -> list[dict]:
    return [
        {
            "replaceAllText": {
                "containsText": {"text": token(name), "matchCase": True},
                "replaceText": value,
            }
        }
        for name, value in values.items()
    ]


class GoogleDocsBackend(ContractDocumentGenerator):
    """Generate contracts from a Google Docs template with a ready, authenticated client"""

    kind = GOOGLE_DOCS

    def __init__(
        self,
        client: GoogleWorkspaceClient,
        template_id: str,
        output_folder_id: Optional[str] = None,
    ):
        if not template_id:
            raise ConfigurationError("Google Docs template id is not set")
        self.client = client
        self.template_id = template_id
        self.output_folder_id = output_folder_id or None

    @classmethod
    def from_config(
        cls, config: GoogleDocsConfig, http_client: Optional[httpx.AsyncClient] = None
    ) -> "GoogleDocsBackend":
        """Validate the service account key up front and build the client once"""
        if not config.template_id:
            raise ConfigurationError("Google Docs template id is not set")
        credentials = ServiceAccountCredentials.from_json(config.service_account_key)
        client = GoogleWorkspaceClient(credentials, http_client=http_client)
        logger.info(f"✅ Google Docs backend ready (service account {credentials.client_email})")
        return cls(client, config.template_id, config.output_folder_id)

    async def aclose(self) -> None:
        await self.client.aclose()

    def _copy_name(self, data: ContractData) -> str:
        stamp = datetime.utcnow().strftime("%Y%m%d%H%M%S")
        return f"Contract-{data.contract_number}-{stamp}-{secrets.token_hex(3)}"

    async def generate_contract(self, data: ContractData) -> GoogleDocsResult:
        result, _ = await self._generate(data)
        return result

    async def generate(self, data: ContractData) -> GeneratedDocument:
        result, pdf_bytes = await self._generate(data)
        return GeneratedDocument(
            kind=self.kind,
            artifact_urls={"document": result.document_url, "pdf": result.pdf_url},
            document_id=result.document_id,
            pdf_bytes=pdf_bytes,
        )

    async def _generate(self, data: ContractData) -> tuple[GoogleDocsResult, bytes]:
        logger.info(f"📄 Generating Google Docs contract {data.contract_number}")
        name = self._copy_name(data)

        copy = await self.client.copy_file(self.template_id, name, self.output_folder_id)
        document_id = (copy or {}).get("id")
        if not document_id:
            raise TemplateCopyError(f"Copying template {self.template_id} returned no file id")
        logger.info(f"✅ Template copied: {document_id}")

        created_files = [document_id]
        succeeded = False
        try:
            await self.replace_text_placeholders(document_id, data)
            await self.replace_image_placeholders(document_id, data)
            pdf_id, pdf_bytes = await self.export_pdf(document_id, name, created_files)
            succeeded = True
        finally:
            if not succeeded:
                await self._discard(created_files)

        result = GoogleDocsResult(
            document_id=document_id,
            document_url=document_url(document_id),
            pdf_url=drive_view_url(pdf_id),
        )
        logger.info(f"✅ Google Docs contract generated: {result.document_url}")
        return result, pdf_bytes

    async def replace_text_placeholders(self, document_id: str, data: ContractData) -> None:
        """
        Replace every text token in one batch. Image tokens without an allowed source
        URL are blanked in the same batch since nothing will ever fill them.
        """
        values = data.placeholder_values()
        for placeholder, url in image_sources(data).items():
            if not url:
                values[placeholder] = ""

        await self.client.batch_update(document_id, build_replace_text_requests(values))
        logger.info(f"✅ Replaced {len(values)} text placeholders in {document_id}")

    async def replace_image_placeholders(self, document_id: str, data: ContractData) -> None:
        """Best effort: a failed image is logged and its token blanked, never raised"""
        for placeholder, url in image_sources(data).items():
            if not url:
                continue
            try:
                await self.insert_image(document_id, placeholder, url)
            except PlaceholderNotFoundError as e:
                logger.warning(f"⚠️ Skipping image for {document_id}: {e}")
            except Exception as e:
                logger.error(
                    f"❌ Failed to insert {placeholder} into {document_id}: {type(e).__name__}: {e}"
                )
                await self._blank_placeholder(document_id, placeholder)

    async def insert_image(self, document_id: str, placeholder: str, url: str) -> None:
        document = await self.client.get_document(document_id)
        start, end = find_placeholder_range(document, placeholder)

        image_bytes, content_type = await self.client.download(url)
        upload = await self.client.upload_file(
            f"{document_id}-{placeholder}", image_bytes, content_type, self.output_folder_id
        )
        image_file_id = upload["id"]
        try:
            await self.client.make_public(image_file_id)
            await self.client.batch_update(
                document_id,
                [
                    {"deleteContentRange": {"range": {"startIndex": start, "endIndex": end}}},
                    {
                        "insertInlineImage": {
                            "uri": drive_image_url(image_file_id),
                            "location": {"index": start},
                            "objectSize": {
                                "width": {"magnitude": IMAGE_WIDTH_PT, "unit": "PT"},
                                "height": {"magnitude": IMAGE_HEIGHT_PT, "unit": "PT"},
                            },
                        }
                    },
                ],
            )
        finally:
            # Docs keeps its own copy of an inserted image
            await self._discard([image_file_id])
        logger.info(f"🖼️ Inserted {placeholder} into {document_id}")

    async def export_pdf(
        self, document_id: str, name: str, created_files: list[str]
    ) -> tuple[str, bytes]:
        pdf_bytes = await self.client.export_pdf(document_id)
        upload = await self.client.upload_file(
            f"{name}.pdf", pdf_bytes, "application/pdf", self.output_folder_id
        )
        pdf_id = upload["id"]
        created_files.append(pdf_id)
        await self.client.make_public(pdf_id)
        logger.info(f"✅ Exported PDF {pdf_id} ({len(pdf_bytes)} bytes)")
        return pdf_id, pdf_bytes

    async def _blank_placeholder(self, document_id: str, placeholder: str) -> None:
        try:
            await self.client.batch_update(
                document_id, build_replace_text_requests({placeholder: ""})
            )
        except Exception as e:
            logger.error(f"❌ Could not blank {placeholder} in {document_id}: {e}")

    async def _discard(self, file_ids: list[str]) -> None:
        for file_id in reversed(file_ids):
            try:
                await self.client.delete_file(file_id)
                logger.info(f"🗑️ Deleted Drive file {file_id}")
            except Exception as e:
                logger.error(f"❌ Failed to delete Drive file {file_id}: {e}")
