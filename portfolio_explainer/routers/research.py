"""Research report endpoints."""

import logging
from typing import List

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import get_current_user_id
from ..database import get_db
from ..dependencies import get_orchestrator
from ..models import ResearchReportSchema, ResearchRequest
from ..tasks import PortfolioOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/research", tags=["research"])


@router.post("")
async def run_research(
    request: ResearchRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    orchestrator: PortfolioOrchestrator = Depends(get_orchestrator)
):
    """Run a research pass and persist the report."""

    try:
        report = await orchestrator.run_research(
            db,
            user_id,
            use_live_prices=request.use_live_prices,
            run_type=request.run_type
        )
    except Exception as e:
        logger.error(f"Research run failed for {user_id}: {e}")
        return JSONResponse(status_code=400, content={"error": str(e) or "research_failed"})

    return {"report_id": report.id}


@router.get("/reports", response_model=List[ResearchReportSchema])
async def get_reports(
    limit: int = 10,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    orchestrator: PortfolioOrchestrator = Depends(get_orchestrator)
) -> List[ResearchReportSchema]:
    """Get the user's most recent research reports."""

    reports = await orchestrator.snapshot_service.get_reports(db, user_id, limit=limit)
    return [ResearchReportSchema.model_validate(report) for report in reports]
