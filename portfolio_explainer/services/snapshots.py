"""Persistence of users, snapshots and research reports."""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import (
    Holding, PortfolioSnapshot, ResearchReport, ReportStatus, RunType,
    SnapshotHolding, User,
)

logger = logging.getLogger(__name__)


class SnapshotService:
    """Service for storing and retrieving portfolio snapshots and reports."""

    async def ensure_user(self, db: AsyncSession, user_id: str) -> User:
        """Create the user row on first sight."""
        user = await db.get(User, user_id)
        if user is None:
            user = User(id=user_id)
            db.add(user)
            await db.commit()
            logger.info(f"Created user {user_id}")
        return user

    async def create_snapshot(
        self,
        db: AsyncSession,
        user_id: str,
        source: str,
        holdings: Sequence[Holding]
    ) -> PortfolioSnapshot:
        """Persist a new snapshot with its holdings."""

        snapshot = PortfolioSnapshot(
            user_id=user_id,
            source=source,
            holdings=[
                SnapshotHolding(
                    symbol=h.symbol,
                    shares=h.shares,
                    price=h.price,
                    asset_class=h.asset_class
                ) for h in holdings
            ]
        )

        db.add(snapshot)
        await db.commit()
        await db.refresh(snapshot)

        logger.info(f"Saved snapshot {snapshot.id} with {len(holdings)} holdings for {user_id}")
        return snapshot

    async def get_latest_snapshots(
        self,
        db: AsyncSession,
        user_id: str,
        limit: int = 2
    ) -> List[PortfolioSnapshot]:
        """Most recent snapshots first."""

        result = await db.execute(
            select(PortfolioSnapshot)
            .where(PortfolioSnapshot.user_id == user_id)
            .order_by(desc(PortfolioSnapshot.created_at), desc(PortfolioSnapshot.id))
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_latest_two_snapshots(
        self,
        db: AsyncSession,
        user_id: str
    ) -> Tuple[Optional[PortfolioSnapshot], Optional[PortfolioSnapshot]]:
        """(latest, previous); either may be ``None``."""
        snapshots = await self.get_latest_snapshots(db, user_id, limit=2)
        latest = snapshots[0] if snapshots else None
        previous = snapshots[1] if len(snapshots) > 1 else None
        return latest, previous

    @staticmethod
    def to_holdings(snapshot: PortfolioSnapshot) -> List[Holding]:
        return [Holding.model_validate(h) for h in snapshot.holdings]

    async def create_report(
        self,
        db: AsyncSession,
        user_id: str,
        snapshot_id: int,
        run_type: RunType,
        input_json: Dict[str, Any],
        output_md: str,
        status: ReportStatus = ReportStatus.SUCCESS
    ) -> ResearchReport:
        """Persist a research report."""

        report = ResearchReport(
            user_id=user_id,
            snapshot_id=snapshot_id,
            run_type=run_type.value,
            input_json=input_json,
            output_md=output_md,
            status=status.value
        )

        db.add(report)
        await db.commit()
        await db.refresh(report)

        logger.info(f"Saved {run_type.value.lower()} research report {report.id} for {user_id}")
        return report

    async def get_reports(
        self,
        db: AsyncSession,
        user_id: str,
        limit: int = 10
    ) -> List[ResearchReport]:
        result = await db.execute(
            select(ResearchReport)
            .where(ResearchReport.user_id == user_id)
            .order_by(desc(ResearchReport.created_at), desc(ResearchReport.id))
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_user_ids(self, db: AsyncSession) -> List[str]:
        """Users that own at least one snapshot."""
        result = await db.execute(
            select(PortfolioSnapshot.user_id).distinct()
        )
        return [row[0] for row in result.all()]
