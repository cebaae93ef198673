"""
Vigilent risk analysis API
"""

import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.api.v1.router import api_router
from app.db.base import dispose_engine

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
# The OpenAI SDK logs every request at INFO
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    description="Corruption-risk analysis for public procurement contracts",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)

app.include_router(api_router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    """Log effective configuration"""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    if settings.OPENROUTER_API_KEY:
        logger.info(f"LLM escalation enabled (model {settings.LLM_MODEL})")
    else:
        logger.warning("OPENROUTER_API_KEY not set - running rules-only")
    if not settings.DATABASE_URL:
        logger.warning("DATABASE_URL not set - analysis cache falls back to localhost")


@app.on_event("shutdown")
async def shutdown_event():
    """Release database connections"""
    await dispose_engine()
    logger.info(f"Shutting down {settings.APP_NAME}")
