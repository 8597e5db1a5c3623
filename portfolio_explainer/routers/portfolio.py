"""Portfolio import and snapshot endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import get_current_user_id
from ..database import get_db
from ..dependencies import get_orchestrator
from ..errors import NoPortfolioFoundError
from ..models import DiffResponse, ImportRequest, ImportResponse, SnapshotSummary
from ..services.diff import build_diff_section
from ..services.stats import compute_stats
from ..tasks import PortfolioOrchestrator

router = APIRouter(prefix="/portfolio", tags=["portfolio"])


@router.post("/import", response_model=ImportResponse)
async def import_portfolio(
    request: ImportRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    orchestrator: PortfolioOrchestrator = Depends(get_orchestrator)
) -> ImportResponse:
    """Import holdings from CSV text as a new snapshot."""

    # Bad CSV raises InputError, answered with 400 by the app-level handler
    snapshot = await orchestrator.import_portfolio_from_csv(
        db, user_id, request.csv_text, request.source
    )

    return ImportResponse(
        ok=True,
        snapshot_id=snapshot.id,
        created_at=snapshot.created_at
    )


@router.get("/current", response_model=SnapshotSummary)
async def get_current_portfolio(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    orchestrator: PortfolioOrchestrator = Depends(get_orchestrator)
) -> SnapshotSummary:
    """Get the latest snapshot with its statistics."""

    latest, _ = await orchestrator.snapshot_service.get_latest_two_snapshots(db, user_id)
    if latest is None:
        raise HTTPException(status_code=404, detail="No positions found")

    holdings = orchestrator.snapshot_service.to_holdings(latest)
    return SnapshotSummary(
        snapshot_id=latest.id,
        created_at=latest.created_at,
        source=latest.source,
        holdings=holdings,
        stats=compute_stats(holdings)
    )


@router.get("/diff", response_model=DiffResponse)
async def get_portfolio_diff(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    orchestrator: PortfolioOrchestrator = Depends(get_orchestrator)
) -> DiffResponse:
    """Diff the latest snapshot against the previous one."""

    try:
        latest, previous, diff = await orchestrator.compute_latest_diff(db, user_id)
    except NoPortfolioFoundError:
        raise HTTPException(status_code=404, detail="No positions found")

    return DiffResponse(
        snapshot_id=latest.id,
        previous_snapshot_id=previous.id if previous is not None else None,
        diff=diff,
        digest=build_diff_section(diff)
    )
