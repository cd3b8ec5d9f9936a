"""
FastAPI Dependencies

Reusable dependencies shared by the route modules.
"""

from fastapi import Request, HTTPException, status
from loguru import logger

from foldera.detection.solver import ConflictSolver


def get_solver(request: Request) -> ConflictSolver:
    """
    Dependency returning the application's ConflictSolver.

    Raises:
        HTTPException: 503 if the app has not finished starting up
    """
    solver = getattr(request.app.state, "solver", None)
    if solver is None:
        logger.error("❌ ConflictSolver requested before startup completed")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Conflict solver not initialized"
        )
    return solver
