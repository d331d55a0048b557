# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
FastAPI dependency injection: wire connections, repositories and services.

Process-wide singletons (background queue, notification client, workers)
live here; repositories and services are built per request on the
request's own connection.
"""

from typing import Iterator, Optional

from fastapi import Depends, Header
from sqlalchemy.engine import Connection

from oncall_roster.core.cancellation import CancellationToken
from oncall_roster.core.config import settings
from oncall_roster.core.database import SingleTenant, connection_scope, engine
from oncall_roster.repositories.roster_repository import RosterRepository
from oncall_roster.services.background import BackgroundQueue, PeriodicWorker
from oncall_roster.services.handoff_ticker import HandoffTicker
from oncall_roster.services.notification_client import NotificationClient
from oncall_roster.services.roster_service import RosterService
from oncall_roster.services.schedule_service import ScheduleService
from oncall_roster.services.schedule_topup import ScheduleTopUp

# ── Singletons ──
_background = BackgroundQueue(maxsize=settings.BACKGROUND_QUEUE_SIZE)
_notification_client = NotificationClient()
_tenants = SingleTenant(engine)
_handoff_ticker = HandoffTicker(_tenants, _background, _notification_client)
_schedule_topup = ScheduleTopUp(_tenants)

_workers = [
    PeriodicWorker("handoff-ticker", settings.HANDOFF_TICK_SECONDS, _handoff_ticker.tick),
    PeriodicWorker(
        "schedule-topup", settings.TOPUP_INTERVAL_SECONDS, _schedule_topup.run,
        run_immediately=True,
    ),
]


# ── FastAPI dependency functions ──
def get_connection() -> Iterator[Connection]:
    yield from connection_scope()


def get_repository(conn: Connection = Depends(get_connection)) -> RosterRepository:
    return RosterRepository(conn)


def get_roster_service(repo: RosterRepository = Depends(get_repository)) -> RosterService:
    return RosterService(repo, background=_background, connect=engine.connect)


def get_schedule_service(repo: RosterRepository = Depends(get_repository)) -> ScheduleService:
    return ScheduleService(repo)


def get_cancellation_token() -> CancellationToken:
    return CancellationToken(timeout=settings.REQUEST_TIMEOUT_SECONDS)


def get_caller_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    """Caller identity forwarded by the auth layer; only used to attribute overrides."""
    return x_user_id


def get_background_queue() -> BackgroundQueue:
    return _background


def get_workers() -> list[PeriodicWorker]:
    return _workers
