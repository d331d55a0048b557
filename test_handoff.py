# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Tests for handoff detection, handoff delivery and the schedule top-up pass."""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import httpx
import pytest

from oncall_roster.core.database import SingleTenant, engine
from oncall_roster.models.domain import HandoffReport, Roster
from oncall_roster.services.handoff_ticker import HandoffTicker, handoff_boundary
from oncall_roster.services.notification_client import NotificationClient, handoff_message
from oncall_roster.services.schedule_generator import ScheduleGenerator
from oncall_roster.services.schedule_topup import ScheduleTopUp

TICK = timedelta(seconds=60)
NOW = datetime(2026, 2, 20, tzinfo=timezone.utc)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def _roster(**values) -> Roster:
    fields = dict(
        id="roster-1", name="Platform", timezone="UTC", handoff_time="09:00",
        handoff_day=1, created_at=NOW, updated_at=NOW,
    )
    fields.update(values)
    return Roster(**fields)


# ============================================================================
# Boundary detection
# ============================================================================


class TestHandoffBoundary:
    def test_inside_tick_window(self):
        assert handoff_boundary(_roster(), utc(2026, 2, 23, 9, 0, 30), TICK) == utc(2026, 2, 23, 9)

    def test_exactly_at_handoff(self):
        assert handoff_boundary(_roster(), utc(2026, 2, 23, 9), TICK) == utc(2026, 2, 23, 9)

    def test_after_tick_window(self):
        assert handoff_boundary(_roster(), utc(2026, 2, 23, 9, 1), TICK) is None

    def test_before_handoff(self):
        assert handoff_boundary(_roster(), utc(2026, 2, 23, 8, 59, 59), TICK) is None

    def test_wrong_day(self):
        assert handoff_boundary(_roster(), utc(2026, 2, 24, 9, 0, 30), TICK) is None

    def test_roster_timezone(self):
        roster = _roster(timezone="Europe/Berlin")
        assert handoff_boundary(roster, utc(2026, 2, 23, 8, 0, 10), TICK) == utc(2026, 2, 23, 8)
        assert handoff_boundary(roster, utc(2026, 2, 23, 9, 0, 10), TICK) is None


# ============================================================================
# Ticker
# ============================================================================


class TestHandoffTicker:
    def _ticker(self, background=None, notifier=None, tenants=None):
        return HandoffTicker(
            tenants or SingleTenant(engine),
            background or MagicMock(),
            notifier or MagicMock(),
            tick_seconds=60,
        )

    def test_handoff_is_reported_and_queued(self, repo, roster_with_members):
        roster, (alice, bob) = roster_with_members(names=("Alice", "Bob"))
        repo.upsert_schedule_week(roster.id, date(2026, 2, 16), alice, None, is_locked=False, generated=True)
        repo.upsert_schedule_week(roster.id, date(2026, 2, 23), bob, None, is_locked=False, generated=True)
        background, notifier = MagicMock(), MagicMock()

        reports = self._ticker(background, notifier).tick(now=utc(2026, 2, 23, 9, 0, 10))

        assert len(reports) == 1
        report = reports[0]
        assert report.roster_id == roster.id
        assert report.tenant == "default"
        assert report.outgoing_user_id == alice
        assert report.incoming_user_id == bob
        assert report.handoff_at == utc(2026, 2, 23, 9)
        background.submit.assert_called_once_with("handoff-notify", notifier.send_handoff, report)

    def test_override_is_the_incoming_person(self, repo, roster_with_members):
        roster, (alice, bob) = roster_with_members(names=("Alice", "Bob"))
        repo.upsert_schedule_week(roster.id, date(2026, 2, 23), bob, None, is_locked=False, generated=True)
        repo.create_override(roster.id, alice, utc(2026, 2, 23, 9), utc(2026, 2, 24, 9), None, None)

        reports = self._ticker().tick(now=utc(2026, 2, 23, 9, 0, 10))

        assert reports[0].incoming_user_id == alice
        assert reports[0].outgoing_user_id is None

    def test_no_boundary_no_report(self, repo, roster_with_members):
        roster_with_members()
        background = MagicMock()
        assert self._ticker(background).tick(now=utc(2026, 2, 24, 9, 0, 10)) == []
        background.submit.assert_not_called()

    def test_inactive_rosters_are_skipped(self, repo, roster_with_members):
        roster, _ = roster_with_members()
        repo.set_roster_active(roster.id, False)
        assert self._ticker().tick(now=utc(2026, 2, 23, 9, 0, 10)) == []

    def test_tenant_failure_is_logged(self):
        tenants = MagicMock()
        tenants.tenants.return_value = ["broken"]
        tenants.connect.side_effect = RuntimeError("no database")

        with patch("oncall_roster.services.handoff_ticker.logger") as mock_logger:
            reports = self._ticker(tenants=tenants).tick(now=utc(2026, 2, 23, 9))

        assert reports == []
        mock_logger.error.assert_called_once()


# ============================================================================
# Notification delivery
# ============================================================================


class TestNotificationClient:
    def _report(self) -> HandoffReport:
        return HandoffReport(
            roster_id="roster-1", roster_name="Platform", tenant="default",
            outgoing_user_id="alice", incoming_user_id="bob", handoff_at=utc(2026, 2, 23, 9),
        )

    def test_message(self):
        assert handoff_message(self._report()) == (
            "On-call handoff for Platform at 2026-02-23T09:00:00+00:00: alice -> bob"
        )

    def test_message_with_nobody(self):
        report = self._report().model_copy(update={"outgoing_user_id": None})
        assert "nobody -> bob" in handoff_message(report)

    def test_send_posts_to_notification_service(self):
        client = NotificationClient(base_url="http://notify:8004", timeout=2.0, channel="slack")
        with patch("oncall_roster.services.notification_client.httpx.Client") as mock_cls:
            mock_http = mock_cls.return_value.__enter__.return_value
            mock_http.post.return_value.status_code = 200
            assert client.send_handoff(self._report()) == 200

        url = mock_http.post.call_args.args[0]
        payload = mock_http.post.call_args.kwargs["json"]
        assert url == "http://notify:8004/api/v1/notify"
        assert payload["channel"] == "slack"
        assert payload["recipient"] == "bob"
        assert payload["handoff"]["roster_id"] == "roster-1"

    def test_http_error_propagates(self):
        client = NotificationClient(base_url="http://notify:8004")
        request = httpx.Request("POST", "http://notify:8004/api/v1/notify")
        response = httpx.Response(502, request=request)
        with patch("oncall_roster.services.notification_client.httpx.Client") as mock_cls:
            mock_http = mock_cls.return_value.__enter__.return_value
            mock_http.post.return_value.raise_for_status.side_effect = httpx.HTTPStatusError(
                "bad gateway", request=request, response=response,
            )
            with pytest.raises(httpx.HTTPStatusError):
                client.send_handoff(self._report())


# ============================================================================
# Schedule top-up
# ============================================================================


class TestScheduleTopUp:
    def test_tops_up_active_rosters(self, repo, roster_with_members, make_roster):
        staffed, _ = roster_with_members(name="Staffed", schedule_weeks_ahead=4)
        empty = make_roster(name="Empty")
        retired, _ = roster_with_members(name="Retired")
        repo.set_roster_active(retired.id, False)

        touched = ScheduleTopUp(SingleTenant(engine)).run(today=date(2026, 2, 25))

        assert touched == {staffed.id: 4, empty.id: 0}
        weeks = repo.list_schedule(staffed.id, date(2026, 2, 23), date(2026, 3, 23))
        assert [w.week_start for w in weeks] == [
            date(2026, 2, 23), date(2026, 3, 2), date(2026, 3, 9), date(2026, 3, 16),
        ]

    def test_keeps_existing_locked_weeks(self, repo, roster_with_members):
        roster, (alice, bob, carol) = roster_with_members(schedule_weeks_ahead=2)
        repo.upsert_schedule_week(roster.id, date(2026, 2, 23), carol, None, is_locked=True, generated=False)

        ScheduleTopUp(SingleTenant(engine)).run(today=date(2026, 2, 23))

        assert repo.get_schedule_week(roster.id, date(2026, 2, 23)).primary_user_id == carol
        assert repo.get_schedule_week(roster.id, date(2026, 3, 2)).primary_user_id == alice

    def test_failing_roster_is_logged_and_skipped(self, roster_with_members):
        roster_with_members()
        with patch.object(ScheduleGenerator, "generate", side_effect=RuntimeError("boom")), \
                patch("oncall_roster.services.schedule_topup.logger") as mock_logger:
            touched = ScheduleTopUp(SingleTenant(engine)).run(today=date(2026, 2, 23))

        assert touched == {}
        mock_logger.error.assert_called_once()
