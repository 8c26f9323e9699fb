"""
Google Docs / Drive REST client authenticated as a service account.
Access tokens come from the OAuth 2.0 JWT-bearer grant and are cached until
shortly before they expire.
"""

import json
import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

import httpx
from jose import jwt

from ..domain.contracts.errors import ConfigurationError

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_DOCS_API = "https://docs.googleapis.com/v1"
GOOGLE_DRIVE_API = "https://www.googleapis.com/drive/v3"
GOOGLE_DRIVE_UPLOAD_API = "https://www.googleapis.com/upload/drive/v3"

SCOPES = (
    "https://www.googleapis.com/auth/documents",
    "https://www.googleapis.com/auth/drive",
)
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ASSERTION_LIFETIME_SECONDS = 3600


@dataclass(frozen=True)
class ServiceAccountCredentials:
    client_email: str
    private_key: str
    private_key_id: Optional[str] = None
    token_uri: str = GOOGLE_TOKEN_URL

    @classmethod
    def from_json(cls, key_json: Optional[str]) -> "ServiceAccountCredentials":
        """Parse a service-account JSON key, failing fast on anything unusable"""
        if not key_json:
            raise ConfigurationError("Google service account key is not set")
        try:
            info = json.loads(key_json)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Google service account key is not valid JSON: {e}") from e
        if not isinstance(info, dict):
            raise ConfigurationError("Google service account key must be a JSON object")

        missing = [field for field in ("client_email", "private_key") if not info.get(field)]
        if missing:
            raise ConfigurationError(
                f"Google service account key is missing: {', '.join(missing)}"
            )

        return cls(
            client_email=info["client_email"],
            # Keys pasted into env vars often carry literal "\n"
            private_key=info["private_key"].replace("\\n", "\n"),
            private_key_id=info.get("private_key_id"),
            token_uri=info.get("token_uri") or GOOGLE_TOKEN_URL,
        )

    def build_assertion(self, now: Optional[int] = None) -> str:
        """Signed RS256 JWT asking for the Docs and Drive scopes"""
        issued_at = int(now if now is not None else time.time())
        claims = {
            "iss": self.client_email,
            "scope": " ".join(SCOPES),
            "aud": self.token_uri,
            "iat": issued_at,
            "exp": issued_at + ASSERTION_LIFETIME_SECONDS,
        }
        headers = {"kid": self.private_key_id} if self.private_key_id else None
        return jwt.encode(claims, self.private_key, algorithm="RS256", headers=headers)


class GoogleWorkspaceClient:
    """Thin async wrapper over the Docs and Drive v3 endpoints the backends use"""

    def __init__(
        self,
        credentials: ServiceAccountCredentials,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.credentials = credentials
        self.http = http_client or httpx.AsyncClient(timeout=60.0, follow_redirects=True)
        self._access_token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None

    async def aclose(self) -> None:
        await self.http.aclose()

    async def get_access_token(self) -> str:
        """Return a cached access token, refreshing within 5 minutes of expiry"""
        if (
            self._access_token
            and self._token_expires_at
            and self._token_expires_at > datetime.utcnow() + timedelta(minutes=5)
        ):
            return self._access_token

        logger.info("🔄 Requesting Google service account access token")
        response = await self.http.post(
            self.credentials.token_uri,
            data={"grant_type": JWT_BEARER_GRANT, "assertion": self.credentials.build_assertion()},
        )
        response.raise_for_status()

        tokens = response.json()
        access_token = tokens.get("access_token")
        if not access_token:
            raise ConfigurationError("Google token endpoint returned no access token")

        self._access_token = access_token
        self._token_expires_at = datetime.utcnow() + timedelta(
            seconds=int(tokens.get("expires_in", 3600))
        )
        logger.info("✅ Google access token obtained")
        return access_token

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        token = await self.get_access_token()
        headers = kwargs.pop("headers", {})
        headers["Authorization"] = f"Bearer {token}"
        response = await self.http.request(method, url, headers=headers, **kwargs)
        response.raise_for_status()
        return response

    # ------------------------------------------------------------------
    # Drive
    # ------------------------------------------------------------------

    async def copy_file(self, file_id: str, name: str, folder_id: Optional[str] = None) -> dict:
        body: dict[str, Any] = {"name": name}
        if folder_id:
            body["parents"] = [folder_id]
        response = await self._request(
            "POST",
            f"{GOOGLE_DRIVE_API}/files/{file_id}/copy",
            params={"supportsAllDrives": "true", "fields": "id,name"},
            json=body,
        )
        return response.json()

    async def delete_file(self, file_id: str) -> None:
        await self._request(
            "DELETE",
            f"{GOOGLE_DRIVE_API}/files/{file_id}",
            params={"supportsAllDrives": "true"},
        )

    async def export_pdf(self, file_id: str) -> bytes:
        response = await self._request(
            "GET",
            f"{GOOGLE_DRIVE_API}/files/{file_id}/export",
            params={"mimeType": "application/pdf"},
        )
        return response.content

    async def upload_file(
        self, name: str, content: bytes, mime_type: str, folder_id: Optional[str] = None
    ) -> dict:
        """Multipart upload (metadata + media) of a new Drive file"""
        metadata: dict[str, Any] = {"name": name, "mimeType": mime_type}
        if folder_id:
            metadata["parents"] = [folder_id]

        boundary = f"contract-docs-{uuid.uuid4().hex}"
        body = b"".join(
            [
                f"--{boundary}\r\n".encode(),
                b"Content-Type: application/json; charset=UTF-8\r\n\r\n",
                json.dumps(metadata).encode("utf-8"),
                f"\r\n--{boundary}\r\n".encode(),
                f"Content-Type: {mime_type}\r\n\r\n".encode(),
                content,
                f"\r\n--{boundary}--\r\n".encode(),
            ]
        )
        response = await self._request(
            "POST",
            f"{GOOGLE_DRIVE_UPLOAD_API}/files",
            params={"uploadType": "multipart", "supportsAllDrives": "true", "fields": "id,name"},
            headers={"Content-Type": f"multipart/related; boundary={boundary}"},
            content=body,
        )
        return response.json()

    async def make_public(self, file_id: str) -> None:
        """Grant anyone-with-link reader access"""
        await self._request(
            "POST",
            f"{GOOGLE_DRIVE_API}/files/{file_id}/permissions",
            params={"supportsAllDrives": "true"},
            json={"role": "reader", "type": "anyone"},
        )

    # ------------------------------------------------------------------
    # Docs
    # ------------------------------------------------------------------

    async def get_document(self, document_id: str) -> dict:
        response = await self._request("GET", f"{GOOGLE_DOCS_API}/documents/{document_id}")
        return response.json()

    async def batch_update(self, document_id: str, requests: list[dict]) -> dict:
        response = await self._request(
            "POST",
            f"{GOOGLE_DOCS_API}/documents/{document_id}:batchUpdate",
            json={"requests": requests},
        )
        return response.json()

    # ------------------------------------------------------------------
    # Image sources
    # ------------------------------------------------------------------

    async def download(self, url: str) -> tuple[bytes, str]:
        """
        Fetch an image source URL (no Google auth) and return (bytes, content type).
        Redirects are not followed; a 3xx raises like any other non-2xx status.
        """
        response = await self.http.get(url, follow_redirects=False)
        response.raise_for_status()
        content_type = response.headers.get("content-type", "image/png")
        if ";" in content_type:
            content_type = content_type.split(";")[0].strip()
        return response.content, content_type
