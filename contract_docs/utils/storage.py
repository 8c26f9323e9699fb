"""
Artifact storage for generated contracts.
R2 (S3-compatible) in production, a local directory for development and tests.
"""

import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Optional

import boto3
from botocore.config import Config

from ..config import (
    CONTRACT_OUTPUT_DIR,
    CONTRACT_PUBLIC_BASE_URL,
    CONTRACT_STORAGE_BACKEND,
    R2_ACCESS_KEY_ID,
    R2_ACCOUNT_ID,
    R2_BUCKET_NAME,
    R2_SECRET_ACCESS_KEY,
)

logger = logging.getLogger(__name__)

# Presigned URL expiration time (1 hour)
PRESIGNED_URL_EXPIRATION = 3600


def get_r2_client():
    """Create and return an R2 client."""
    return boto3.client(
        "s3",
        endpoint_url=f"https://{R2_ACCOUNT_ID}.r2.cloudflarestorage.com",
        aws_access_key_id=R2_ACCESS_KEY_ID,
        aws_secret_access_key=R2_SECRET_ACCESS_KEY,
        config=Config(signature_version="s3v4"),
        region_name="auto",
    )


class ArtifactStore(ABC):
    """Somewhere to put generated HTML/PDF files"""

    @abstractmethod
    def save(self, key: str, body: bytes, content_type: str) -> str:
        """Persist body under key and return a URL that resolves to it"""


class R2ArtifactStore(ArtifactStore):
    """Private R2 bucket; returns presigned GET URLs"""

    def __init__(self, client=None, bucket: str = R2_BUCKET_NAME, expiration: int = PRESIGNED_URL_EXPIRATION):
        self.client = client or get_r2_client()
        self.bucket = bucket
        self.expiration = expiration

    def save(self, key: str, body: bytes, content_type: str) -> str:
        self.client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=body,
            ContentType=content_type,
        )
        logger.info(f"✅ Uploaded contract artifact to R2: {key}")

        return self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": key, "ResponseContentDisposition": "inline"},
            ExpiresIn=self.expiration,
        )


class LocalArtifactStore(ArtifactStore):
    """Files under a root directory, addressed by file:// URI or a public base URL"""

    def __init__(self, root: str, base_url: Optional[str] = None):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/") if base_url else None

    def save(self, key: str, body: bytes, content_type: str) -> str:
        path = self.root / key
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(body)
        logger.info(f"✅ Saved contract artifact ({content_type}, {len(body)} bytes): {path}")

        if self.base_url:
            return f"{self.base_url}/{key}"
        return path.resolve().as_uri()


def build_artifact_key(contract_number: str, timestamp: datetime, extension: str) -> str:
    """contracts/{contract_number}/contract_{timestamp}.{extension}"""
    safe_number = re.sub(r"[^A-Za-z0-9._-]", "_", contract_number) or "unnumbered"
    stamp = timestamp.strftime("%Y%m%dT%H%M%S%f")
    return f"contracts/{safe_number}/contract_{stamp}.{extension}"


def get_artifact_store() -> ArtifactStore:
    """Build the store selected by CONTRACT_STORAGE_BACKEND"""
    if CONTRACT_STORAGE_BACKEND == "r2":
        return R2ArtifactStore()
    if CONTRACT_STORAGE_BACKEND != "local":
        logger.warning(
            f"⚠️ Unknown CONTRACT_STORAGE_BACKEND '{CONTRACT_STORAGE_BACKEND}', using local storage"
        )
    return LocalArtifactStore(CONTRACT_OUTPUT_DIR, CONTRACT_PUBLIC_BASE_URL)
