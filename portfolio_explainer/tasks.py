"""Portfolio use cases: import, analysis and research runs."""

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from .config import settings
from .errors import NoPortfolioFoundError
from .models import (
    ExplainState, PortfolioDiff, PortfolioSnapshot, ResearchReport, RunType,
)
from .pipeline import ExplainerPipeline
from .services.csv_import import parse_holdings_csv
from .services.diff import diff_from_stats
from .services.snapshots import SnapshotService
from .services.stats import compute_stats

logger = logging.getLogger(__name__)


class PortfolioOrchestrator:
    """Main orchestrator for the portfolio explainer workflows."""

    def __init__(
        self,
        pipeline: Optional[ExplainerPipeline] = None,
        snapshot_service: Optional[SnapshotService] = None
    ):
        self.pipeline = pipeline
        self.snapshot_service = snapshot_service or SnapshotService()
        self.settings = settings

    async def import_portfolio_from_csv(
        self,
        db: AsyncSession,
        user_id: str,
        csv_text: str,
        source: str = "csv"
    ) -> PortfolioSnapshot:
        """Parse a CSV upload and store it as the user's newest snapshot."""

        holdings = parse_holdings_csv(csv_text)
        await self.snapshot_service.ensure_user(db, user_id)
        return await self.snapshot_service.create_snapshot(db, user_id, source, holdings)

    async def compute_latest_diff(
        self,
        db: AsyncSession,
        user_id: str
    ) -> Tuple[PortfolioSnapshot, Optional[PortfolioSnapshot], Optional[PortfolioDiff]]:
        """Diff the latest snapshot against the previous one, if any."""

        latest, previous = await self.snapshot_service.get_latest_two_snapshots(db, user_id)
        if latest is None:
            raise NoPortfolioFoundError(user_id)

        if previous is None:
            return latest, None, None

        prev_stats = compute_stats(self.snapshot_service.to_holdings(previous))
        next_stats = compute_stats(self.snapshot_service.to_holdings(latest))
        diff = diff_from_stats(
            prev_stats,
            next_stats,
            threshold=self.settings.diff_threshold,
            top_n=self.settings.diff_top_n,
        )
        return latest, previous, diff

    async def analyze_latest_portfolio(
        self,
        db: AsyncSession,
        user_id: str,
        use_live_prices: bool = False
    ) -> Tuple[int, ExplainState]:
        """Run the explainer pipeline over the user's latest snapshot."""

        await self.snapshot_service.ensure_user(db, user_id)
        latest, _previous, portfolio_diff = await self.compute_latest_diff(db, user_id)

        initial_state = ExplainState(
            holdings=self.snapshot_service.to_holdings(latest),
            use_live_prices=use_live_prices,
            portfolio_diff=portfolio_diff,
        )

        logger.info(f"Analyzing snapshot {latest.id} for {user_id} (live prices: {use_live_prices})")
        final_state = await self._require_pipeline().run(initial_state)
        return latest.id, final_state

    async def run_research(
        self,
        db: AsyncSession,
        user_id: str,
        use_live_prices: bool = False,
        run_type: RunType = RunType.WEEKLY
    ) -> ResearchReport:
        """Run the pipeline and persist the explanation as a research report."""

        start_time = datetime.now()
        latest, previous, portfolio_diff = await self.compute_latest_diff(db, user_id)

        holdings = self.snapshot_service.to_holdings(latest)
        next_stats = compute_stats(holdings)
        # Audit copy: an empty diff with meta when there is no previous snapshot
        audit_diff = portfolio_diff or diff_from_stats(
            None,
            next_stats,
            threshold=self.settings.diff_threshold,
            top_n=self.settings.diff_top_n,
        )

        final_state = await self._require_pipeline().run(ExplainState(
            holdings=holdings,
            use_live_prices=use_live_prices,
            portfolio_diff=portfolio_diff,
        ))

        if not final_state.explanation:
            raise RuntimeError("Pipeline did not produce an explanation")

        input_json: Dict[str, Any] = {
            "snapshot_id": latest.id,
            "previous_snapshot_id": previous.id if previous is not None else None,
            "stats": next_stats.model_dump(mode="json"),
            "portfolio_diff": audit_diff.model_dump(mode="json"),
            "risk_level": final_state.risk_level.value if final_state.risk_level else None,
            "risk_factors": final_state.risk_factors,
            "research_brief": (
                final_state.research_brief.model_dump(mode="json")
                if final_state.research_brief else None
            ),
            "evidence_meta": (
                final_state.evidence_bundle.meta.model_dump(mode="json")
                if final_state.evidence_bundle else None
            ),
            "use_live_prices": use_live_prices,
        }

        report = await self.snapshot_service.create_report(
            db,
            user_id=user_id,
            snapshot_id=latest.id,
            run_type=run_type,
            input_json=input_json,
            output_md=final_state.explanation,
        )

        duration = (datetime.now() - start_time).total_seconds()
        logger.info(f"Research run for {user_id} completed in {duration:.1f}s (report {report.id})")
        return report

    def _require_pipeline(self) -> ExplainerPipeline:
        if self.pipeline is None:
            raise RuntimeError("Explainer pipeline is not configured")
        return self.pipeline
