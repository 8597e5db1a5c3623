"""FastAPI dependencies for services created at application start."""

from fastapi import HTTPException, Request

from .tasks import PortfolioOrchestrator


def get_orchestrator(request: Request) -> PortfolioOrchestrator:
    """Orchestrator wired in the app lifespan and stored on ``app.state``."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Service is not initialized")
    return orchestrator
