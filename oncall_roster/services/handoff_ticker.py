# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Handoff ticker. Detects rotation boundaries and queues the
outgoing/incoming report for delivery.

Each tick looks at every active roster of every tenant and fires when the
roster-local clock is inside ``[handoff, handoff + tick)`` on the handoff day,
so with one tick per interval each boundary is reported once.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from oncall_roster.core.config import settings
from oncall_roster.core.logging import get_logger
from oncall_roster.metrics.prometheus import HANDOFFS_DETECTED
from oncall_roster.models.domain import HandoffReport, Roster
from oncall_roster.repositories.roster_repository import RosterRepository
from oncall_roster.services.background import BackgroundQueue
from oncall_roster.services.notification_client import NotificationClient
from oncall_roster.services.oncall_resolver import OnCallResolver
from oncall_roster.services.rotation import sunday_weekday
from oncall_roster.services.windows import local_instant, roster_zone

logger = get_logger(__name__)


def handoff_boundary(roster: Roster, now: datetime, tick: timedelta) -> Optional[datetime]:
    """The handoff instant if ``now`` falls in the tick window right after it."""
    local_day = now.astimezone(roster_zone(roster)).date()
    if sunday_weekday(local_day) != roster.handoff_day:
        return None
    boundary = local_instant(roster, local_day, roster.handoff_time)
    if boundary <= now < boundary + tick:
        return boundary
    return None


class HandoffTicker:
    def __init__(
        self,
        tenants,
        background: BackgroundQueue,
        notifier: NotificationClient,
        tick_seconds: int = settings.HANDOFF_TICK_SECONDS,
    ) -> None:
        self._tenants = tenants
        self._background = background
        self._notifier = notifier
        self._tick = timedelta(seconds=tick_seconds)

    def tick(self, now: Optional[datetime] = None) -> list[HandoffReport]:
        """Check every tenant once; returns the reports queued for delivery."""
        now = now or datetime.now(timezone.utc)
        reports: list[HandoffReport] = []
        for tenant in self._tenants.tenants():
            try:
                reports.extend(self._process_tenant(tenant, now))
            except Exception as exc:
                logger.error(
                    "Handoff check failed for tenant: %s", exc,
                    exc_info=True, extra={"tenant": tenant},
                )
        return reports

    def _process_tenant(self, tenant: str, now: datetime) -> list[HandoffReport]:
        reports: list[HandoffReport] = []
        with self._tenants.connect(tenant) as conn:
            repo = RosterRepository(conn)
            resolver = OnCallResolver(repo)
            for roster in repo.list_active_rosters():
                try:
                    boundary = handoff_boundary(roster, now, self._tick)
                    if boundary is None:
                        continue
                    report = self._build_report(tenant, roster, boundary, resolver)
                except Exception as exc:
                    logger.error(
                        "Handoff check failed for roster: %s", exc,
                        exc_info=True, extra={"tenant": tenant, "roster_id": roster.id},
                    )
                    continue
                HANDOFFS_DETECTED.inc()
                logger.info(
                    "Handoff triggered: %s -> %s",
                    report.outgoing_user_id, report.incoming_user_id,
                    extra={"tenant": tenant, "roster_id": roster.id},
                )
                self._background.submit("handoff-notify", self._notifier.send_handoff, report)
                reports.append(report)
        return reports

    @staticmethod
    def _build_report(
        tenant: str, roster: Roster, boundary: datetime, resolver: OnCallResolver
    ) -> HandoffReport:
        outgoing = resolver.resolve_for(roster, boundary - timedelta(seconds=1))
        incoming = resolver.resolve_for(roster, boundary)
        return HandoffReport(
            roster_id=roster.id,
            roster_name=roster.name,
            tenant=tenant,
            outgoing_user_id=outgoing.primary.user_id if outgoing.primary else None,
            incoming_user_id=incoming.primary.user_id if incoming.primary else None,
            handoff_at=boundary,
        )
