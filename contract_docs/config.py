import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Google Docs / Drive service account
# GOOGLE_SERVICE_ACCOUNT_KEY holds the full JSON key, not a path
GOOGLE_SERVICE_ACCOUNT_KEY = os.getenv("GOOGLE_SERVICE_ACCOUNT_KEY")
GOOGLE_DOCS_TEMPLATE_ID = os.getenv("GOOGLE_DOCS_TEMPLATE_ID")
# Optional - copies land in the service account's root folder when unset
GOOGLE_DRIVE_OUTPUT_FOLDER_ID = os.getenv("GOOGLE_DRIVE_OUTPUT_FOLDER_ID")

# Cloudflare R2 Configuration
R2_ACCOUNT_ID = os.getenv("R2_ACCOUNT_ID")
R2_ACCESS_KEY_ID = os.getenv("R2_ACCESS_KEY_ID")
R2_SECRET_ACCESS_KEY = os.getenv("R2_SECRET_ACCESS_KEY")
R2_BUCKET_NAME = os.getenv("R2_BUCKET_NAME", "contracts")

# Artifact storage for HTML/raw PDF backends: "r2" or "local"
CONTRACT_STORAGE_BACKEND = os.getenv("CONTRACT_STORAGE_BACKEND", "local").lower()
CONTRACT_OUTPUT_DIR = os.getenv(
    "CONTRACT_OUTPUT_DIR", str(Path(__file__).resolve().parent.parent / "generated")
)
# Public URL prefix for locally stored artifacts (e.g. served by a reverse proxy)
CONTRACT_PUBLIC_BASE_URL = os.getenv("CONTRACT_PUBLIC_BASE_URL")

# Order in which backends are tried for backend=auto
CONTRACT_BACKEND_CHAIN = [
    kind.strip()
    for kind in os.getenv("CONTRACT_BACKEND_CHAIN", "google_docs,html,raw").split(",")
    if kind.strip()
]

DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "OMR")

# Seconds before the Playwright worker is killed
PDF_RENDER_TIMEOUT = int(os.getenv("PDF_RENDER_TIMEOUT", "120"))

# Hosts the promoter ID card / passport images may be fetched from, comma separated.
# A leading dot also admits subdomains (".supabase.co"). Empty means no image is fetched.
CONTRACT_IMAGE_ALLOWED_HOSTS = [
    host.strip().lower()
    for host in os.getenv("CONTRACT_IMAGE_ALLOWED_HOSTS", "").split(",")
    if host.strip()
]
