# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Schedule top-up. Keeps every active roster generated
``schedule_weeks_ahead`` weeks into the future.

Tenants and rosters are processed one after another on one connection per
tenant. A failing roster is logged and skipped; the pass continues.
"""

from datetime import date, datetime, timezone
from typing import Optional

from oncall_roster.core.logging import get_logger
from oncall_roster.metrics.prometheus import TOPUP_RUNS
from oncall_roster.repositories.roster_repository import RosterRepository
from oncall_roster.services.schedule_generator import ScheduleGenerator

logger = get_logger(__name__)


class ScheduleTopUp:
    def __init__(self, tenants) -> None:
        self._tenants = tenants

    def run(self, today: Optional[date] = None) -> dict[str, int]:
        """One pass over all tenants. Returns weeks touched per roster id."""
        today = today or datetime.now(timezone.utc).date()
        touched: dict[str, int] = {}
        for tenant in self._tenants.tenants():
            try:
                touched.update(self._top_up_tenant(tenant, today))
            except Exception as exc:
                logger.error(
                    "Schedule top-up failed for tenant: %s", exc,
                    exc_info=True, extra={"tenant": tenant},
                )
        return touched

    def _top_up_tenant(self, tenant: str, today: date) -> dict[str, int]:
        touched: dict[str, int] = {}
        with self._tenants.connect(tenant) as conn:
            repo = RosterRepository(conn)
            generator = ScheduleGenerator(repo)
            for roster in repo.list_active_rosters():
                try:
                    entries = generator.generate(roster.id, today, roster.schedule_weeks_ahead)
                except Exception as exc:
                    TOPUP_RUNS.labels(outcome="failed").inc()
                    logger.error(
                        "Schedule top-up failed for roster %s: %s", roster.name, exc,
                        exc_info=True, extra={"tenant": tenant, "roster_id": roster.id},
                    )
                    continue
                TOPUP_RUNS.labels(outcome="succeeded").inc()
                touched[roster.id] = len(entries)
                if entries:
                    logger.info(
                        "Schedule top-up completed: roster=%s, weeks=%d", roster.name, len(entries),
                        extra={"tenant": tenant, "roster_id": roster.id},
                    )
        return touched
