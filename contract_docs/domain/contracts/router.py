"""Contract document router - FastAPI endpoints for contract generation"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from .errors import ConfigurationError
from .generator import BACKEND_KINDS
from .schemas import ContractDocumentResponse, ContractGenerateRequest
from .service import ContractGenerationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contracts/documents", tags=["Contract Documents"])

BackendChoice = Literal["auto", "google_docs", "html", "raw"]

# Backends keep reusable HTTP clients, so one service instance serves every request
_service: Optional[ContractGenerationService] = None


def get_generation_service() -> ContractGenerationService:
    """Dependency injection for ContractGenerationService"""
    global _service
    if _service is None:
        _service = ContractGenerationService()
    return _service


async def close_generation_service() -> None:
    global _service
    if _service is not None:
        await _service.aclose()
        _service = None


@router.get("")
async def describe_contract_documents():
    """Describe the generation endpoint and the available backends"""
    return {
        "message": "Contract document generation API",
        "endpoints": {"POST /contracts/documents/generate": "Generate a contract document"},
        "backends": ["auto", *BACKEND_KINDS],
    }


@router.post("/generate", response_model=ContractDocumentResponse)
async def generate_contract_document(
    data: ContractGenerateRequest,
    backend: BackendChoice = Query("auto", description="Backend to use, or auto for the fallback chain"),
    service: ContractGenerationService = Depends(get_generation_service),
):
    """Generate a contract document and return its URLs"""
    try:
        outcome = await service.generate(data, backend)
    except ConfigurationError as e:
        logger.error(f"❌ Contract backend '{backend}' is misconfigured: {e}")
        raise HTTPException(status_code=500, detail="Document generation is not configured") from e
    except Exception as e:
        logger.error(f"❌ Error generating contract document: {str(e)}", exc_info=True)
        # Don't expose technical details to users in production
        raise HTTPException(
            status_code=500,
            detail="Failed to generate contract. Please try again or contact support.",
        ) from e

    document = outcome.document
    return ContractDocumentResponse(
        contract_number=outcome.contract_number,
        backend=document.kind,
        document_id=document.document_id,
        document_url=document.document_url,
        pdf_url=document.pdf_url,
        generated_at=outcome.generated_at,
        processing_time_ms=outcome.processing_time_ms,
        file_size=document.file_size,
    )
