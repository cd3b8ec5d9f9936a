"""
Health and Readiness Endpoints

Kubernetes-compatible health probes for load balancers and orchestration.
"""
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from foldera import __version__
from foldera.utils.circuit_breaker import get_llm_circuit

router = APIRouter(tags=["Health"])

API_VERSION = __version__


@router.get("/health")
async def health_check():
    """
    Basic health check endpoint.

    Returns 200 if service is running.
    """
    return {
        "status": "healthy",
        "service": "foldera-conflicts",
        "version": API_VERSION
    }


@router.get("/ready")
async def readiness_check(request: Request):
    """
    Readiness probe - checks if service can handle detection requests.

    The LLM path is optional: an open circuit or a missing completion client
    still reports ready, because detection degrades to the deterministic pass.

    Returns 200 if ready, 503 if not ready.
    """
    solver = getattr(request.app.state, "solver", None)
    if solver is None:
        return JSONResponse(
            status_code=503,
            content={
                "status": "not_ready",
                "reason": "Conflict solver not initialized"
            }
        )

    llm_configured = solver.enable_llm and solver.client is not None
    return {
        "status": "ready",
        "solver": "initialized",
        "llm": "enabled" if llm_configured else "disabled",
        "prompt_version": solver.prompt.version,
        "llm_circuit": get_llm_circuit().get_status() if llm_configured else None,
    }


@router.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "service": "Foldera Conflict Detection API",
        "version": API_VERSION,
        "endpoints": {
            "health": "/health",
            "ready": "/ready",
            "detect": "/conflicts/detect (POST)",
            "scheduling": "/conflicts/scheduling (POST)"
        }
    }
