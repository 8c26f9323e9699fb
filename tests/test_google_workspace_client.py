import json
from urllib.parse import parse_qs

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwt

from contract_docs.domain.contracts.errors import ConfigurationError
from contract_docs.services.google_workspace_client import (
    GOOGLE_TOKEN_URL,
    GoogleWorkspaceClient,
    ServiceAccountCredentials,
)


@pytest.fixture(scope="module")
def private_key_pem():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")


@pytest.fixture
def credentials(private_key_pem):
    return ServiceAccountCredentials.from_json(
        json.dumps(
            {
                "type": "service_account",
                "client_email": "contracts@project.iam.gserviceaccount.com",
                "private_key": private_key_pem,
                "private_key_id": "key-1",
            }
        )
    )


class GoogleApiStub:
    """Records requests and answers like the Docs/Drive endpoints"""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.token_requests = 0
        self.copy_status = 200

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if str(request.url) == GOOGLE_TOKEN_URL:
            self.token_requests += 1
            return httpx.Response(200, json={"access_token": f"token-{self.token_requests}", "expires_in": 3600})
        if path.endswith("/copy"):
            if self.copy_status != 200:
                return httpx.Response(self.copy_status, json={"error": {"message": "quota"}})
            return httpx.Response(200, json={"id": "copy-1", "name": "Contract"})
        if path.endswith(":batchUpdate"):
            return httpx.Response(200, json={"documentId": "copy-1", "replies": []})
        if path.endswith("/export"):
            return httpx.Response(200, content=b"%PDF-1.7 exported")
        if path == "/upload/drive/v3/files":
            return httpx.Response(200, json={"id": "upload-1"})
        if path.endswith("/permissions"):
            return httpx.Response(200, json={"id": "anyoneWithLink"})
        if request.url.host == "files.example.com" and path == "/moved.jpg":
            return httpx.Response(302, headers={"location": "http://169.254.169.254/latest/meta-data/"})
        if request.url.host == "files.example.com":
            return httpx.Response(200, content=b"jpeg-bytes", headers={"content-type": "image/jpeg; charset=binary"})
        return httpx.Response(404)


@pytest.fixture
def api_stub():
    return GoogleApiStub()


@pytest.fixture
def client(credentials, api_stub):
    return GoogleWorkspaceClient(
        credentials, http_client=httpx.AsyncClient(transport=httpx.MockTransport(api_stub))
    )


def test_from_json_requires_client_email_and_private_key():
    with pytest.raises(ConfigurationError, match="client_email"):
        ServiceAccountCredentials.from_json(json.dumps({"private_key": "abc"}))


def test_from_json_rejects_empty_and_invalid_keys():
    with pytest.raises(ConfigurationError):
        ServiceAccountCredentials.from_json("")
    with pytest.raises(ConfigurationError):
        ServiceAccountCredentials.from_json("not-json")
    with pytest.raises(ConfigurationError):
        ServiceAccountCredentials.from_json("[1, 2]")


def test_from_json_unescapes_private_key_newlines():
    credentials = ServiceAccountCredentials.from_json(
        json.dumps({"client_email": "svc@example.com", "private_key": "line1\\nline2"})
    )
    assert credentials.private_key == "line1\nline2"
    assert credentials.token_uri == GOOGLE_TOKEN_URL


def test_assertion_claims(credentials):
    assertion = credentials.build_assertion(now=1_700_000_000)

    claims = jwt.get_unverified_claims(assertion)
    header = jwt.get_unverified_header(assertion)
    assert claims["iss"] == "contracts@project.iam.gserviceaccount.com"
    assert claims["aud"] == GOOGLE_TOKEN_URL
    assert claims["exp"] - claims["iat"] == 3600
    assert "https://www.googleapis.com/auth/documents" in claims["scope"]
    assert "https://www.googleapis.com/auth/drive" in claims["scope"]
    assert header["alg"] == "RS256"
    assert header["kid"] == "key-1"


@pytest.mark.asyncio
async def test_access_token_is_cached(client, api_stub):
    first = await client.get_access_token()
    second = await client.get_access_token()

    assert first == second == "token-1"
    assert api_stub.token_requests == 1

    token_request = api_stub.requests[0]
    form = parse_qs(token_request.content.decode())
    assert form["grant_type"] == ["urn:ietf:params:oauth:grant-type:jwt-bearer"]
    assert form["assertion"][0].count(".") == 2


@pytest.mark.asyncio
async def test_copy_file_sends_bearer_token_and_parent(client, api_stub):
    copy = await client.copy_file("template-1", "Contract-C-1", folder_id="folder-1")

    assert copy["id"] == "copy-1"
    request = api_stub.requests[-1]
    assert request.headers["Authorization"] == "Bearer token-1"
    assert json.loads(request.content) == {"name": "Contract-C-1", "parents": ["folder-1"]}


@pytest.mark.asyncio
async def test_api_errors_propagate(client, api_stub):
    api_stub.copy_status = 429

    with pytest.raises(httpx.HTTPStatusError):
        await client.copy_file("template-1", "Contract-C-1")


@pytest.mark.asyncio
async def test_upload_file_uses_multipart_related(client, api_stub):
    upload = await client.upload_file("contract.pdf", b"%PDF-1.7", "application/pdf", "folder-1")

    assert upload["id"] == "upload-1"
    request = api_stub.requests[-1]
    assert request.url.params["uploadType"] == "multipart"
    assert request.headers["Content-Type"].startswith("multipart/related; boundary=")
    assert b'"parents": ["folder-1"]' in request.content
    assert b"%PDF-1.7" in request.content


@pytest.mark.asyncio
async def test_export_and_permissions(client, api_stub):
    pdf = await client.export_pdf("copy-1")
    await client.make_public("upload-1")

    assert pdf == b"%PDF-1.7 exported"
    export_request = api_stub.requests[-2]
    assert export_request.url.params["mimeType"] == "application/pdf"
    assert json.loads(api_stub.requests[-1].content) == {"role": "reader", "type": "anyone"}


@pytest.mark.asyncio
async def test_download_strips_content_type_parameters(client, api_stub):
    content, content_type = await client.download("https://files.example.com/id.jpg")

    assert content == b"jpeg-bytes"
    assert content_type == "image/jpeg"
    assert "Authorization" not in api_stub.requests[-1].headers


@pytest.mark.asyncio
async def test_download_does_not_follow_redirects(client, api_stub):
    with pytest.raises(httpx.HTTPStatusError):
        await client.download("https://files.example.com/moved.jpg")

    assert [request.url.host for request in api_stub.requests] == ["files.example.com"]
