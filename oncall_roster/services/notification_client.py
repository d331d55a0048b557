# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Notification client. Inter-service communication.
Delivers handoff reports to the notification-service over HTTP with a timeout.
"""

import httpx

from oncall_roster.core.config import settings
from oncall_roster.core.logging import get_logger
from oncall_roster.metrics.prometheus import NOTIFICATIONS_SENT
from oncall_roster.models.domain import HandoffReport

logger = get_logger(__name__)


def handoff_message(report: HandoffReport) -> str:
    outgoing = report.outgoing_user_id or "nobody"
    incoming = report.incoming_user_id or "nobody"
    return (
        f"On-call handoff for {report.roster_name} at {report.handoff_at.isoformat()}: "
        f"{outgoing} -> {incoming}"
    )


class NotificationClient:
    """Handoff sender via notification-service. Runs on the background queue."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        channel: str | None = None,
    ) -> None:
        self._base_url = base_url or settings.NOTIFICATION_SERVICE_URL
        self._timeout = timeout if timeout is not None else settings.NOTIFICATION_TIMEOUT
        self._channel = channel or settings.HANDOFF_CHANNEL

    def send_handoff(self, report: HandoffReport) -> int:
        """POST one handoff report. HTTP and transport errors propagate to the queue."""
        with httpx.Client(timeout=self._timeout) as client:
            resp = client.post(
                f"{self._base_url}/api/v1/notify",
                json={
                    "channel": self._channel,
                    "recipient": report.incoming_user_id or report.roster_name,
                    "message": handoff_message(report),
                    "roster_id": report.roster_id,
                    "handoff": report.model_dump(mode="json"),
                },
            )
            resp.raise_for_status()
        NOTIFICATIONS_SENT.labels(channel=self._channel).inc()
        logger.info(
            "Handoff notification sent: channel=%s, status=%d",
            self._channel,
            resp.status_code,
            extra={"roster_id": report.roster_id, "tenant": report.tenant},
        )
        return resp.status_code
