"""Main FastAPI application for the portfolio explainer."""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .config import settings
from .database import init_db, close_db
from .errors import ConfigurationError, InputError
from .pipeline import ExplainerPipeline
from .routers import analyze, health, portfolio, research
from .tasks import PortfolioOrchestrator

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
        *([logging.FileHandler(settings.log_file)] if settings.log_file else [])
    ]
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    # Startup
    logger.info("Starting Portfolio Explainer API")
    await init_db()
    logger.info("Database initialized")

    app.state.orchestrator = PortfolioOrchestrator(pipeline=ExplainerPipeline.from_settings(settings))
    logger.info(f"Explainer pipeline ready (news provider: {settings.news_provider})")

    yield

    # Shutdown
    logger.info("Shutting down Portfolio Explainer API")
    await close_db()
    logger.info("Database connections closed")


# Create FastAPI app
app = FastAPI(
    title="Portfolio Explainer API",
    description="Portfolio snapshots, diffs and evidence-backed explanations",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else ["https://yourdomain.com"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InputError)
async def input_error_handler(request: Request, exc: InputError):
    logger.warning(f"Rejected input on {request.url.path}: {exc}")
    return JSONResponse(status_code=400, content={"error": "invalid_input", "detail": str(exc)})


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error(f"Configuration error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": "configuration_error", "detail": str(exc)})


# Include routers
app.include_router(health.router)
app.include_router(portfolio.router)
app.include_router(analyze.router)
app.include_router(research.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Portfolio Explainer API",
        "version": __version__,
        "status": "operational",
        "news_provider": settings.news_provider,
        "live_prices": settings.use_live_prices
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "portfolio_explainer.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
