"""Pytest fixtures for the contract document backends."""

import itertools

import httpx
import pytest

from contract_docs import config
from contract_docs.domain.contracts.placeholders import IMAGE_PLACEHOLDERS, TEXT_PLACEHOLDERS, token
from contract_docs.domain.contracts.schemas import ContractData
from contract_docs.services.google_docs_backend import OBJECT_MARK
from contract_docs.utils.storage import LocalArtifactStore


@pytest.fixture(autouse=True)
def image_hosts(monkeypatch):
    monkeypatch.setattr(config, "CONTRACT_IMAGE_ALLOWED_HOSTS", ["files.example.com"])


@pytest.fixture
def contract_data():
    return ContractData(
        contract_id="3f0c9a52-0000-4000-8000-000000000001",
        contract_number="C-1001",
        contract_type="fixed-term",
        contract_date="2025-01-15",
        promoter_name_en="Jane Doe",
        promoter_name_ar="جين دو",
        promoter_email="jane.doe@example.com",
        promoter_mobile_number="+96891234567",
        promoter_id_card_number="ID-1234567",
        promoter_passport_number="P-7654321",
        promoter_id_card_url="https://files.example.com/id-card.png",
        promoter_passport_url="https://files.example.com/passport.png",
        first_party_name_en="Acme Trading LLC",
        first_party_name_ar="أكمي للتجارة",
        first_party_crn="CR-778899",
        first_party_email="contracts@acme.example.com",
        first_party_phone="+96824000001",
        second_party_name_en="Gulf Retail Co",
        second_party_name_ar="الخليج للتجزئة",
        second_party_crn="CR-112233",
        second_party_email="hr@gulfretail.example.com",
        second_party_phone="+96824000002",
        job_title="Sales Promoter",
        department="Retail Operations",
        work_location="Muscat Grand Mall",
        basic_salary=1500,
        currency="OMR",
        contract_start_date="2025-02-01",
        contract_end_date="2026-01-31",
        special_terms="Thirty days notice period.",
    )


@pytest.fixture
def minimal_contract_data():
    """Only the contract number; every optional field absent"""
    return ContractData(contract_number="C-0001")


@pytest.fixture
def local_store(tmp_path):
    return LocalArtifactStore(str(tmp_path / "artifacts"))


def template_text(include_images: bool = True) -> str:
    lines = [f"{name.replace('_', ' ').title()}: {token(name)}" for name in TEXT_PLACEHOLDERS]
    if include_images:
        lines.extend(token(name) for name in IMAGE_PLACEHOLDERS)
    return "\n".join(lines) + "\n"


class FakeWorkspaceClient:
    """In-memory stand-in for GoogleWorkspaceClient. Documents are plain text, indexed from 1."""

    def __init__(self, template: str, fail_on: tuple = (), copy_returns_id: bool = True):
        self.template = template
        self.fail_on = set(fail_on)
        self.copy_returns_id = copy_returns_id
        self.documents: dict[str, str] = {}
        self.files: dict[str, dict] = {}
        self.deleted: list[str] = []
        self.batches: list[tuple[str, list[dict]]] = []
        self.failing_urls: set[str] = set()
        self.inline_images: dict[str, list[str]] = {}
        self.downloaded: list[str] = []
        self.closed = False
        self._ids = itertools.count(1)

    async def aclose(self):
        self.closed = True

    def _maybe_fail(self, operation: str):
        if operation in self.fail_on:
            raise httpx.HTTPStatusError(
                f"{operation} failed",
                request=httpx.Request("POST", f"https://fake.googleapis.com/{operation}"),
                response=httpx.Response(503),
            )

    async def copy_file(self, file_id, name, folder_id=None):
        self._maybe_fail("copy_file")
        if not self.copy_returns_id:
            return {}
        document_id = f"doc-{next(self._ids)}"
        self.documents[document_id] = self.template
        self.files[document_id] = {"name": name, "folder": folder_id, "public": False}
        return {"id": document_id, "name": name}

    async def delete_file(self, file_id):
        self.deleted.append(file_id)
        self.documents.pop(file_id, None)
        self.files.pop(file_id, None)

    async def get_document(self, document_id):
        # Inserted images are one OBJECT_MARK in the text and one index in Docs
        content = []
        index = 1
        for line in self.documents[document_id].splitlines(keepends=True):
            end = index + len(line)
            elements = []
            run_start = index
            run = ""
            for position, char in enumerate(line, start=index):
                if char != OBJECT_MARK:
                    run += char
                    continue
                if run:
                    elements.append(
                        {"startIndex": run_start, "endIndex": position, "textRun": {"content": run}}
                    )
                elements.append(
                    {
                        "startIndex": position,
                        "endIndex": position + 1,
                        "inlineObjectElement": {"inlineObjectId": f"kix.{position}"},
                    }
                )
                run_start, run = position + 1, ""
            if run:
                elements.append({"startIndex": run_start, "endIndex": end, "textRun": {"content": run}})
            content.append({"startIndex": index, "endIndex": end, "paragraph": {"elements": elements}})
            index = end
        return {"documentId": document_id, "body": {"content": content}}

    async def batch_update(self, document_id, requests):
        self._maybe_fail("batch_update")
        self.batches.append((document_id, requests))
        text = self.documents[document_id]
        for request in requests:
            if "replaceAllText" in request:
                op = request["replaceAllText"]
                text = text.replace(op["containsText"]["text"], op["replaceText"])
            elif "deleteContentRange" in request:
                span = request["deleteContentRange"]["range"]
                text = text[: span["startIndex"] - 1] + text[span["endIndex"] - 1 :]
            elif "insertInlineImage" in request:
                op = request["insertInlineImage"]
                position = op["location"]["index"] - 1
                text = text[:position] + OBJECT_MARK + text[position:]
                self.inline_images.setdefault(document_id, []).append(op["uri"])
        self.documents[document_id] = text
        return {"documentId": document_id}

    async def export_pdf(self, file_id):
        self._maybe_fail("export_pdf")
        return b"%PDF-1.4 exported " + file_id.encode()

    async def upload_file(self, name, content, mime_type, folder_id=None):
        file_id = f"file-{next(self._ids)}"
        self.files[file_id] = {"name": name, "mime_type": mime_type, "folder": folder_id, "public": False}
        return {"id": file_id, "name": name}

    async def make_public(self, file_id):
        self._maybe_fail("make_public")
        self.files[file_id]["public"] = True

    async def download(self, url):
        self.downloaded.append(url)
        if url in self.failing_urls:
            raise httpx.ConnectError("connection refused", request=httpx.Request("GET", url))
        return b"\x89PNG fake image", "image/png"


@pytest.fixture
def fake_workspace():
    return FakeWorkspaceClient(template_text())
