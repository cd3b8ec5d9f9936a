"""
FastAPI Application

Main entry point for the Foldera conflict detection API.
Handles application lifecycle and router mounting.
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from loguru import logger

from foldera import __version__
from foldera.config import get_settings
from foldera.detection.solver import ConflictSolver
from foldera.utils.llm_client import PydanticAICompletionClient
from foldera.utils.observability import configure_logging
from foldera.api.routes import health_router, conflicts_router


def build_solver() -> ConflictSolver:
    """
    Construct the application's solver from settings.

    Without an OpenAI key the solver still runs, deterministic-only.
    """
    settings = get_settings()

    client = None
    if settings.enable_llm_conflict_detection and settings.openai_api_key:
        client = PydanticAICompletionClient()
    elif settings.enable_llm_conflict_detection:
        logger.warning("⚠️ OPENAI_API_KEY not configured, LLM conflict detection disabled")

    return ConflictSolver(client=client, enable_llm=client is not None)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle.

    Startup:
    - Configure logging
    - Build the ConflictSolver (and its completion client)
    """
    configure_logging()
    logger.info("Starting Foldera conflict detection API...")

    app.state.solver = build_solver()

    logger.info("API server ready to receive detection requests")

    yield

    logger.info("Shutdown complete")


app = FastAPI(
    title="Foldera Conflict Detection API",
    description="Detects scheduling and content conflicts across work signals",
    version=__version__,
    lifespan=lifespan
)

app.include_router(health_router)
app.include_router(conflicts_router)
