import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware as FastAPICORSMiddleware

from bzr_portal.api.errors import register_exception_handlers
from bzr_portal.api.v1 import router as v1_router
from bzr_portal.core.config import settings
from bzr_portal.core.middleware import LoggingMiddleware
from bzr_portal.services.cache import cache_service
from bzr_portal.services.document_queue import document_queue
from bzr_portal.services.rate_limiter import rate_limiter

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await document_queue.start()
    logger.info(f"{settings.APP_NAME} started ({settings.ENVIRONMENT})")
    yield
    await document_queue.stop()
    await cache_service.close()
    await rate_limiter.close()
    logger.info(f"{settings.APP_NAME} stopped")


app = FastAPI(
    title="BZR Portal",
    description="Document ingestion and AI assistant for workplace safety (BZR) compliance",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    FastAPICORSMiddleware,
    allow_origins=["*"],  # In production, specify actual origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)

register_exception_handlers(app)

# Include API routers
app.include_router(v1_router)


@app.get("/")
async def root():
    return {
        "message": "BZR Portal API",
        "environment": settings.ENVIRONMENT,
        "docs": "/docs",
        "health": "/v1/health/"
    }
