#!/usr/bin/env python3
"""
Portfolio Research Scheduler
Runs a weekly research pass for every user with a stored snapshot.
"""

import asyncio
import logging
import sys
import time as time_module
from datetime import datetime
from typing import Dict

import schedule

from portfolio_explainer.config import settings
from portfolio_explainer.database import AsyncSessionLocal, close_db, init_db
from portfolio_explainer.models import RunType
from portfolio_explainer.pipeline import ExplainerPipeline
from portfolio_explainer.tasks import PortfolioOrchestrator

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.FileHandler("research_scheduler.log"),
        logging.StreamHandler(sys.stdout),
    ],
)
logger = logging.getLogger(__name__)

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


async def run_weekly_research(orchestrator: PortfolioOrchestrator) -> Dict[str, int]:
    """Run one research pass per user; a failing user does not stop the rest."""
    await init_db()
    summary = {"users": 0, "succeeded": 0, "failed": 0}

    async with AsyncSessionLocal() as db:
        user_ids = await orchestrator.snapshot_service.get_user_ids(db)

    summary["users"] = len(user_ids)
    logger.info(f"Running weekly research for {len(user_ids)} users")

    for user_id in user_ids:
        async with AsyncSessionLocal() as db:
            try:
                report = await orchestrator.run_research(
                    db,
                    user_id,
                    use_live_prices=settings.use_live_prices,
                    run_type=RunType.WEEKLY,
                )
                summary["succeeded"] += 1
                logger.info(f"Weekly report {report.id} saved for {user_id}")
            except Exception as e:
                summary["failed"] += 1
                logger.error(f"Weekly research failed for {user_id}: {e}")

    await close_db()
    return summary


def run_scheduled_workflow():
    """Synchronous entry point for the schedule library."""
    start_time = datetime.now()
    logger.info(f"Weekly research started at {start_time.isoformat()}")

    orchestrator = PortfolioOrchestrator(pipeline=ExplainerPipeline.from_settings(settings))
    summary = asyncio.run(run_weekly_research(orchestrator))

    duration = (datetime.now() - start_time).total_seconds()
    logger.info(
        f"Weekly research finished in {duration:.1f}s: "
        f"{summary['succeeded']}/{summary['users']} succeeded, {summary['failed']} failed"
    )


def setup_scheduler():
    """Set up the weekly scheduler."""
    day = settings.weekly_research_day
    if day not in WEEKDAYS:
        raise ValueError(f"WEEKLY_RESEARCH_DAY must be a weekday name, got {day!r}")

    getattr(schedule.every(), day).at(settings.weekly_research_time).do(run_scheduled_workflow)
    logger.info(f"Scheduler configured for {day} at {settings.weekly_research_time}")


def main():
    """Main scheduler loop."""
    logger.info("Portfolio Research Scheduler Starting")

    if not settings.openai_api_key:
        logger.error("Missing OPENAI_API_KEY in configuration")
        return

    setup_scheduler()

    # Option to run immediately for testing
    if len(sys.argv) > 1 and sys.argv[1] == "--run-now":
        logger.info("Running weekly research immediately...")
        try:
            run_scheduled_workflow()
        except KeyboardInterrupt:
            logger.info("Immediate run interrupted by user")
        return

    logger.info("Scheduler started - waiting for scheduled time...")
    logger.info("Press Ctrl+C to stop")

    try:
        while True:
            schedule.run_pending()
            time_module.sleep(60)  # Check every minute
    except KeyboardInterrupt:
        logger.info("Scheduler stopped by user")


if __name__ == "__main__":
    main()
