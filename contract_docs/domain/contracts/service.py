"""Contract generation service - request mapping and backend selection"""

import logging
import secrets
import string
import time
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ... import config
from ...services.google_docs_backend import GoogleDocsBackend, GoogleDocsConfig
from ...services.html_pdf_backend import HtmlPdfBackend
from ...services.raw_pdf_backend import RawPdfBackend
from ...utils.storage import ArtifactStore, get_artifact_store
from .errors import ConfigurationError
from .generator import (
    BACKEND_KINDS,
    GOOGLE_DOCS,
    HTML,
    RAW,
    ContractDocumentGenerator,
    FallbackChainGenerator,
    GeneratedDocument,
)
from .schemas import ContractData, ContractGenerateRequest

logger = logging.getLogger(__name__)

CONTRACT_NUMBER_ALPHABET = string.ascii_uppercase + string.digits

# Free-form contract types from the wizard -> template family
CONTRACT_TYPE_MAP = {
    "employment": "employment",
    "full-time-permanent": "employment",
    "full-time-fixed": "employment",
    "part-time-permanent": "employment",
    "part-time-fixed": "employment",
    "probationary": "employment",
    "training-contract": "employment",
    "internship": "employment",
    "graduate-trainee": "employment",
    "service": "service",
    "freelance": "service",
    "contractor": "service",
    "consultant": "consultancy",
    "consulting": "consultancy",
    "consulting-agreement": "consultancy",
    "project-based": "consultancy",
    "partnership": "partnership",
    "temporary": "service",
    "seasonal": "service",
    "executive": "employment",
    "management": "employment",
    "director": "employment",
    "remote-work": "employment",
    "hybrid-work": "employment",
    "secondment": "service",
    "apprenticeship": "employment",
    "service-agreement": "service",
    "retainer": "service",
}


def generate_contract_number(now: Optional[datetime] = None) -> str:
    """PAC-DDMMYYYY-XXXX with a random 4 character suffix"""
    now = now or datetime.now()
    suffix = "".join(secrets.choice(CONTRACT_NUMBER_ALPHABET) for _ in range(4))
    return f"PAC-{now.strftime('%d%m%Y')}-{suffix}"


def _url_or_none(value) -> Optional[str]:
    return str(value) if value else None


def map_contract_type(raw: Optional[str]) -> str:
    if not raw:
        return "employment"
    return CONTRACT_TYPE_MAP.get(str(raw).strip().lower(), "employment")


@dataclass(frozen=True)
class GenerationOutcome:
    contract_number: str
    document: GeneratedDocument
    generated_at: datetime
    processing_time_ms: int


def build_generator(kind: str, store: Optional[ArtifactStore] = None) -> ContractDocumentGenerator:
    """Construct one backend by kind from environment configuration"""
    if kind == GOOGLE_DOCS:
        return GoogleDocsBackend.from_config(
            GoogleDocsConfig(
                template_id=config.GOOGLE_DOCS_TEMPLATE_ID or "",
                service_account_key=config.GOOGLE_SERVICE_ACCOUNT_KEY or "",
                output_folder_id=config.GOOGLE_DRIVE_OUTPUT_FOLDER_ID,
            )
        )
    if kind == HTML:
        return HtmlPdfBackend(store or get_artifact_store())
    if kind == RAW:
        return RawPdfBackend(store or get_artifact_store())
    raise ValueError(f"Unknown document backend '{kind}'. Expected one of: {', '.join(BACKEND_KINDS)}")


def build_default_chain(
    kinds: Optional[list[str]] = None, store: Optional[ArtifactStore] = None
) -> FallbackChainGenerator:
    """
    Build the fallback chain, skipping backends whose configuration is missing.
    The raw backend is always appended last so the chain cannot come up empty.
    """
    kinds = list(kinds if kinds is not None else config.CONTRACT_BACKEND_CHAIN)
    if RAW not in kinds:
        kinds.append(RAW)

    store = store or get_artifact_store()
    generators = []
    for kind in kinds:
        try:
            generators.append(build_generator(kind, store))
        except ConfigurationError as e:
            logger.warning(f"⚠️ {kind} backend not configured, leaving it out of the chain: {e}")
        except ValueError as e:
            logger.warning(f"⚠️ Ignoring backend chain entry: {e}")
    return FallbackChainGenerator(generators)


class ContractGenerationService:
    """Maps incoming requests to ContractData and runs the selected generator"""

    def __init__(self, generators: Optional[dict[str, ContractDocumentGenerator]] = None):
        self._generators = dict(generators or {})

    def get_generator(self, backend: str) -> ContractDocumentGenerator:
        if backend not in self._generators:
            if backend == "auto":
                self._generators[backend] = build_default_chain()
            else:
                self._generators[backend] = build_generator(backend)
        return self._generators[backend]

    async def aclose(self) -> None:
        for generator in self._generators.values():
            await generator.aclose()
        self._generators.clear()

    def build_contract_data(
        self, request: ContractGenerateRequest, now: Optional[datetime] = None
    ) -> ContractData:
        now = now or datetime.now()
        return ContractData(
            contract_id=request.contract_id or str(uuid.uuid4()),
            contract_number=generate_contract_number(now),
            contract_type=map_contract_type(request.contract_type),
            contract_date=now.date().isoformat(),
            promoter_name_en=request.promoter_name_en,
            promoter_name_ar=request.promoter_name_ar or "",
            promoter_email=request.promoter_email or "",
            promoter_mobile_number=request.promoter_mobile_number or "",
            promoter_id_card_number=request.promoter_id_card_number or "",
            promoter_passport_number=request.promoter_passport_number,
            promoter_id_card_url=_url_or_none(request.promoter_id_card_url),
            promoter_passport_url=_url_or_none(request.promoter_passport_url),
            first_party_name_en=request.first_party_name_en,
            first_party_name_ar=request.first_party_name_ar or "",
            first_party_crn=request.first_party_crn or "",
            first_party_email=request.first_party_email or "",
            first_party_phone=request.first_party_phone or "",
            second_party_name_en=request.second_party_name_en,
            second_party_name_ar=request.second_party_name_ar or "",
            second_party_crn=request.second_party_crn or "",
            second_party_email=request.second_party_email or "",
            second_party_phone=request.second_party_phone or "",
            job_title=request.job_title,
            department=request.department,
            work_location=request.work_location,
            basic_salary=request.basic_salary,
            currency=request.currency or config.DEFAULT_CURRENCY,
            contract_start_date=request.contract_start_date,
            contract_end_date=request.contract_end_date,
            special_terms=request.special_terms,
        )

    async def generate(self, request: ContractGenerateRequest, backend: str = "auto") -> GenerationOutcome:
        generator = self.get_generator(backend)
        data = self.build_contract_data(request)

        logger.info(
            f"📝 Generating contract {data.contract_number} with backend={backend} "
            f"(promoter: {data.promoter_name_en})"
        )
        started = time.monotonic()
        document = await generator.generate(data)
        elapsed_ms = int((time.monotonic() - started) * 1000)

        logger.info(
            f"✅ Contract {data.contract_number} generated by {document.kind} in {elapsed_ms} ms"
        )
        return GenerationOutcome(
            contract_number=data.contract_number,
            document=document,
            generated_at=datetime.utcnow(),
            processing_time_ms=elapsed_ms,
        )
