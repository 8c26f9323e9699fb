import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import CONTRACT_BACKEND_CHAIN, CONTRACT_STORAGE_BACKEND
from .domain.contracts.router import close_generation_service
from .domain.contracts.router import router as contract_documents_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"Application starting up (backend chain: {', '.join(CONTRACT_BACKEND_CHAIN)}, "
        f"storage: {CONTRACT_STORAGE_BACKEND})"
    )
    yield
    logger.info("Application shutting down...")
    await close_generation_service()


app = FastAPI(title="Contract Documents API", version="1.0.0", lifespan=lifespan)

app.include_router(contract_documents_router)


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
