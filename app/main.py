"""
FastAPI Main Application
Serves the temporal derivation engine to the dashboard
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from pathlib import Path
import logging
from typing import AsyncGenerator

from app.config import settings
from app.core.logging import setup_logging
from app.domain.services.config_engine import ConfigEngine
from app.api.routes import derivation, health

# Configure logging
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


# Global instances
config_engine: ConfigEngine | None = None


def _config_dir() -> Path:
    config_dir = Path(settings.CONFIG_DIR)
    if not config_dir.is_absolute():
        config_dir = Path(__file__).parent.parent / config_dir
    return config_dir


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager
    Loads engine configuration on startup
    """
    global config_engine

    # ===================
    # STARTUP
    # ===================
    logger.info("=" * 60)
    logger.info("Starting Temporal Derivation Engine")
    logger.info("=" * 60)

    config_engine = ConfigEngine(_config_dir())
    config_engine.load_all()
    logger.info(f"Configuration loaded successfully ({settings.APP_ENV})")
    logger.info(f"   Reference timezone: {config_engine.timezone}")
    logger.info(f"   Policies: {len(config_engine.config.policies)}")
    logger.info(f"   API Server: http://{settings.API_HOST}:{settings.API_PORT}")

    yield

    # ===================
    # SHUTDOWN
    # ===================
    logger.info("Temporal Derivation Engine shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Operations Dashboard - Temporal Derivation Engine",
    description="Derived status, compliance, density and roster views over raw records",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, tags=["Health"])
app.include_router(derivation.router, prefix="/api/v1/derive", tags=["Derivation"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
    )
