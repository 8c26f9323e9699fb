"""
Common interface for the contract document backends.
Every backend produces a GeneratedDocument from a ContractData record, so callers
can pick one by kind or chain several as fallbacks.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from .errors import AllBackendsFailedError
from .schemas import ContractData

logger = logging.getLogger(__name__)

GOOGLE_DOCS = "google_docs"
HTML = "html"
RAW = "raw"
BACKEND_KINDS = (GOOGLE_DOCS, HTML, RAW)


@dataclass(frozen=True)
class GeneratedDocument:
    """Artifacts produced by one backend run"""

    kind: str
    artifact_urls: dict[str, str] = field(default_factory=dict)
    document_id: Optional[str] = None
    pdf_bytes: Optional[bytes] = None
    html_content: Optional[str] = None

    @property
    def document_url(self) -> Optional[str]:
        return self.artifact_urls.get("document")

    @property
    def pdf_url(self) -> Optional[str]:
        return self.artifact_urls.get("pdf")

    @property
    def file_size(self) -> Optional[int]:
        return len(self.pdf_bytes) if self.pdf_bytes is not None else None


class ContractDocumentGenerator(ABC):
    """A strategy that turns ContractData into a finished contract artifact"""

    kind: str

    @abstractmethod
    async def generate(self, data: ContractData) -> GeneratedDocument:
        ...

    async def aclose(self) -> None:
        """Release network clients held by the generator"""
        return None


class FallbackChainGenerator(ContractDocumentGenerator):
    """Try each generator in order and return the first successful document"""

    kind = "auto"

    def __init__(self, generators: list[ContractDocumentGenerator]):
        if not generators:
            raise ValueError("FallbackChainGenerator needs at least one generator")
        self.generators = list(generators)

    async def generate(self, data: ContractData) -> GeneratedDocument:
        errors: dict[str, Exception] = {}
        for generator in self.generators:
            try:
                document = await generator.generate(data)
            except Exception as e:
                logger.warning(
                    f"⚠️ {generator.kind} backend failed for contract {data.contract_number}: "
                    f"{type(e).__name__}: {e}"
                )
                errors[generator.kind] = e
                continue

            if errors:
                logger.info(
                    f"✅ Contract {data.contract_number} generated by fallback backend {generator.kind}"
                )
            return document

        raise AllBackendsFailedError(errors)

    async def aclose(self) -> None:
        for generator in self.generators:
            await generator.aclose()
