from datetime import datetime

from contract_docs.utils.storage import LocalArtifactStore, R2ArtifactStore, build_artifact_key


class FakeS3Client:
    def __init__(self):
        self.objects = {}
        self.presigned = []

    def put_object(self, Bucket, Key, Body, ContentType):
        self.objects[(Bucket, Key)] = (Body, ContentType)

    def generate_presigned_url(self, operation, Params, ExpiresIn):
        self.presigned.append((operation, Params, ExpiresIn))
        return f"https://r2.example.com/{Params['Bucket']}/{Params['Key']}?signature=abc"


def test_build_artifact_key_sanitizes_contract_number():
    key = build_artifact_key("PAC/01 2025", datetime(2025, 1, 15, 9, 30, 5, 123), "pdf")

    assert key == "contracts/PAC_01_2025/contract_20250115T093005000123.pdf"


def test_r2_store_uploads_and_presigns():
    s3 = FakeS3Client()
    store = R2ArtifactStore(client=s3, bucket="contracts-bucket", expiration=600)

    url = store.save("contracts/C-1/contract.pdf", b"%PDF-1.4", "application/pdf")

    assert s3.objects[("contracts-bucket", "contracts/C-1/contract.pdf")] == (b"%PDF-1.4", "application/pdf")
    operation, params, expires = s3.presigned[0]
    assert operation == "get_object"
    assert params["Key"] == "contracts/C-1/contract.pdf"
    assert expires == 600
    assert url.startswith("https://r2.example.com/contracts-bucket/")


def test_local_store_writes_file_and_uses_base_url(tmp_path):
    store = LocalArtifactStore(str(tmp_path), base_url="https://cdn.example.com/files/")

    url = store.save("contracts/C-1/contract.html", b"<html></html>", "text/html")

    assert url == "https://cdn.example.com/files/contracts/C-1/contract.html"
    assert (tmp_path / "contracts" / "C-1" / "contract.html").read_bytes() == b"<html></html>"


def test_local_store_returns_file_uri_without_base_url(tmp_path):
    url = LocalArtifactStore(str(tmp_path)).save("a/b.pdf", b"x", "application/pdf")

    assert url.startswith("file://")
    assert url.endswith("/a/b.pdf")
