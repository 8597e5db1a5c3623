"""Portfolio analysis endpoint."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import get_current_user_id
from ..database import get_db
from ..dependencies import get_orchestrator
from ..errors import NoPortfolioFoundError
from ..models import AnalyzeRequest
from ..tasks import PortfolioOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analyze", tags=["analyze"])


@router.post("")
async def analyze_portfolio(
    request: AnalyzeRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    orchestrator: PortfolioOrchestrator = Depends(get_orchestrator)
):
    """Run the explainer pipeline over the latest snapshot."""

    try:
        snapshot_id, result = await orchestrator.analyze_latest_portfolio(
            db, user_id, use_live_prices=request.use_live_prices
        )
    except NoPortfolioFoundError:
        return JSONResponse(
            status_code=404,
            content={"error": "no_portfolio_found", "hint": "POST /portfolio/import first"}
        )
    except Exception as e:
        logger.error(f"Analysis failed for {user_id}: {e}")
        return JSONResponse(status_code=500, content={"error": str(e) or "analyze_failed"})

    return {"snapshot_id": snapshot_id, "result": result.model_dump(mode="json")}
