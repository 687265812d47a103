"""Reconciliation worker: rebuilds the denormalized user counters.

users.reputation must equal SUM(user_reputation_events.delta) and
report_count / verified_report_count must match price_reports. Lifecycle
writes keep them in step transactionally; this cycle repairs any row that
drifted anyway (manual SQL, restored backups) and logs how many it touched.

Run once:   python -m groceryindex.worker.reconciliation_worker --once
Run looped: python -m groceryindex.worker.reconciliation_worker
"""

import asyncio
import sys

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from groceryindex.config import settings
from groceryindex.database import async_session_factory
from groceryindex.logging_config import configure_logging
from groceryindex.models.price_report import PriceReport, ReportStatus
from groceryindex.models.reputation import ReputationEvent
from groceryindex.models.user import User

log = structlog.get_logger(__name__)


def _expected_reputation():
    return (
        select(func.coalesce(func.sum(ReputationEvent.delta), 0))
        .where(ReputationEvent.user_id == User.id)
        .scalar_subquery()
    )


def _expected_report_count(verified_only: bool = False):
    stmt = select(func.count()).select_from(PriceReport).where(PriceReport.user_id == User.id)
    if verified_only:
        stmt = stmt.where(PriceReport.status == ReportStatus.verified.value)
    return stmt.scalar_subquery()


async def _reconcile_column(session: AsyncSession, column, expected) -> int:
    """Set column to expected on every user where they differ. Returns rows fixed."""
    result = await session.execute(
        update(User)
        .where(column != expected)
        .values({column.key: expected})
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


async def run_reconciliation_cycle(
    session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
) -> dict[str, int]:
    """Execute one reconciliation pass in a single transaction.

    Returns the number of users corrected per counter.
    """
    async with session_factory() as session:
        stats = {
            "reputation_fixed": await _reconcile_column(
                session, User.reputation, _expected_reputation()
            ),
            "report_count_fixed": await _reconcile_column(
                session, User.report_count, _expected_report_count()
            ),
            "verified_report_count_fixed": await _reconcile_column(
                session, User.verified_report_count, _expected_report_count(verified_only=True)
            ),
        }
        await session.commit()

    if any(stats.values()):
        log.warning("reconciliation_drift_repaired", **stats)
    else:
        log.info("reconciliation_completed", **stats)
    return stats


async def reconciliation_worker_loop() -> None:
    """Background loop that reconciles counters every reconciliation_interval_hours."""
    interval = settings.reconciliation_interval_hours * 3600
    log.info("reconciliation_worker_started", interval_hours=settings.reconciliation_interval_hours)

    while True:
        try:
            await run_reconciliation_cycle()
        except Exception:
            log.error("reconciliation_worker_error", exc_info=True)
        await asyncio.sleep(interval)


async def main(argv: list[str]) -> None:
    configure_logging()
    if "--once" in argv:
        await run_reconciliation_cycle()
    else:
        await reconciliation_worker_loop()


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1:]))
