# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Tests for OnCallResolver precedence and week boundaries."""

import uuid
from datetime import date, datetime, timedelta, timezone

import pytest

from oncall_roster.core.cancellation import CancellationToken
from oncall_roster.core.errors import NotFoundError, OperationCancelled
from oncall_roster.models.domain import OverrideOnCall, ScheduleOnCall, UnassignedOnCall
from oncall_roster.services.oncall_resolver import OnCallResolver, override_covering


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def sunday_roster(roster_with_members):
    """Sunday 09:00 UTC handoff; 2026-02-01 is a Sunday."""
    return roster_with_members(names=("Xavier", "Yasmin"), handoff_day=0, handoff_time="09:00")


class TestPrecedence:
    def test_override_beats_schedule(self, repo, sunday_roster):
        roster, (x, y) = sunday_roster
        repo.upsert_schedule_week(roster.id, date(2026, 2, 1), y, None, is_locked=False, generated=True)
        repo.create_override(
            roster.id, x, utc(2026, 2, 1, 8), utc(2026, 2, 2, 8), "swap", None,
        )

        result = OnCallResolver(repo).resolve(roster.id, utc(2026, 2, 1, 12))

        assert isinstance(result, OverrideOnCall)
        assert result.source == "override"
        assert result.primary.user_id == x
        assert result.primary.display_name == "Xavier"
        assert result.active_override.reason == "swap"
        assert result.week_start == date(2026, 2, 1)

    def test_override_keeps_scheduled_secondary(self, repo, sunday_roster):
        roster, (x, y) = sunday_roster
        repo.upsert_schedule_week(roster.id, date(2026, 2, 1), x, y, is_locked=False, generated=True)
        repo.create_override(roster.id, y, utc(2026, 2, 1, 10), utc(2026, 2, 1, 20), None, None)

        result = OnCallResolver(repo).resolve(roster.id, utc(2026, 2, 1, 12))

        assert result.source == "override"
        assert result.primary.user_id == y
        assert result.secondary.user_id == y

    def test_schedule_when_override_expired(self, repo, sunday_roster):
        roster, (x, y) = sunday_roster
        repo.upsert_schedule_week(roster.id, date(2026, 2, 1), y, x, is_locked=False, generated=True)
        repo.create_override(roster.id, x, utc(2026, 2, 1, 8), utc(2026, 2, 2, 8), None, None)

        result = OnCallResolver(repo).resolve(roster.id, utc(2026, 2, 2, 8))

        assert isinstance(result, ScheduleOnCall)
        assert result.primary.user_id == y
        assert result.secondary.user_id == x
        assert result.week_start == date(2026, 2, 1)

    def test_unassigned_without_schedule(self, repo, sunday_roster):
        roster, _ = sunday_roster
        result = OnCallResolver(repo).resolve(roster.id, utc(2026, 2, 3, 12))
        assert isinstance(result, UnassignedOnCall)
        assert result.primary is None
        assert result.secondary is None

    def test_week_without_primary_is_unassigned(self, repo, sunday_roster):
        roster, _ = sunday_roster
        repo.upsert_schedule_week(roster.id, date(2026, 2, 1), None, None, is_locked=True, generated=False)
        result = OnCallResolver(repo).resolve(roster.id, utc(2026, 2, 3, 12))
        assert result.source == "unassigned"

    def test_unknown_roster(self, repo):
        with pytest.raises(NotFoundError):
            OnCallResolver(repo).resolve(str(uuid.uuid4()), utc(2026, 2, 1))

    def test_cancelled_token(self, repo, sunday_roster):
        roster, _ = sunday_roster
        token = CancellationToken()
        token.cancel()
        with pytest.raises(OperationCancelled):
            OnCallResolver(repo).resolve(roster.id, utc(2026, 2, 1), token)


class TestWeekBoundaries:
    def test_before_handoff_previous_week_is_on_call(self, repo, sunday_roster):
        roster, (x, y) = sunday_roster
        repo.upsert_schedule_week(roster.id, date(2026, 1, 25), x, None, is_locked=False, generated=True)
        repo.upsert_schedule_week(roster.id, date(2026, 2, 1), y, None, is_locked=False, generated=True)
        resolver = OnCallResolver(repo)

        assert resolver.resolve(roster.id, utc(2026, 2, 1, 8, 59)).primary.user_id == x
        assert resolver.resolve(roster.id, utc(2026, 2, 1, 9)).primary.user_id == y
        assert resolver.resolve(roster.id, utc(2026, 2, 8, 8, 59)).primary.user_id == y
        assert resolver.resolve(roster.id, utc(2026, 2, 8, 9)).source == "unassigned"

    def test_handoff_in_roster_timezone(self, repo, roster_with_members):
        roster, (alice, bob) = roster_with_members(
            names=("Alice", "Bob"), timezone="America/New_York", handoff_day=1,
        )
        repo.upsert_schedule_week(roster.id, date(2026, 2, 16), alice, None, is_locked=False, generated=True)
        repo.upsert_schedule_week(roster.id, date(2026, 2, 23), bob, None, is_locked=False, generated=True)
        resolver = OnCallResolver(repo)

        # 09:00 EST is 14:00 UTC.
        assert resolver.resolve(roster.id, utc(2026, 2, 23, 13, 59)).primary.user_id == alice
        assert resolver.resolve(roster.id, utc(2026, 2, 23, 14)).primary.user_id == bob

    def test_naive_instant_is_treated_as_utc(self, repo, sunday_roster):
        roster, (x, _) = sunday_roster
        repo.upsert_schedule_week(roster.id, date(2026, 2, 1), x, None, is_locked=False, generated=True)
        result = OnCallResolver(repo).resolve(roster.id, datetime(2026, 2, 1, 12))
        assert result.primary.user_id == x


class TestOverrideSelection:
    def test_overlapping_overrides_earliest_start_wins(self, repo, sunday_roster):
        roster, (x, y) = sunday_roster
        repo.create_override(roster.id, y, utc(2026, 2, 1, 10), utc(2026, 2, 1, 20), None, None)
        repo.create_override(roster.id, x, utc(2026, 2, 1, 6), utc(2026, 2, 1, 14), None, None)

        result = OnCallResolver(repo).resolve(roster.id, utc(2026, 2, 1, 12))
        assert result.primary.user_id == x

        overrides = repo.list_overrides_in_range(roster.id, utc(2026, 2, 1), utc(2026, 2, 2))
        assert override_covering(overrides, utc(2026, 2, 1, 12)).user_id == x

    def test_override_end_is_exclusive(self, repo, sunday_roster):
        roster, (x, _) = sunday_roster
        repo.create_override(roster.id, x, utc(2026, 2, 1, 8), utc(2026, 2, 1, 9), None, None)
        resolver = OnCallResolver(repo)
        assert resolver.resolve(roster.id, utc(2026, 2, 1, 8)).source == "override"
        assert resolver.resolve(roster.id, utc(2026, 2, 1, 9) - timedelta(microseconds=1)).source == "override"
        assert resolver.resolve(roster.id, utc(2026, 2, 1, 9)).source == "unassigned"


class TestFollowTheSun:
    @pytest.fixture
    def linked_pair(self, repo, roster_with_members):
        """EMEA covers 09:00-21:00 UTC, APAC covers 21:00-09:00; both staffed for the week of 2026-02-23."""
        emea, (alice,) = roster_with_members(
            names=("Alice",), name="EMEA", is_follow_the_sun=True,
            active_hours_start="09:00", active_hours_end="21:00",
        )
        apac, (bob,) = roster_with_members(
            names=("Bob",), name="APAC", is_follow_the_sun=True, linked_roster_id=emea.id,
            active_hours_start="21:00", active_hours_end="09:00",
        )
        emea = repo.update_roster(emea.id, {"linked_roster_id": apac.id})
        repo.upsert_schedule_week(emea.id, date(2026, 2, 23), alice, None, is_locked=False, generated=True)
        repo.upsert_schedule_week(apac.id, date(2026, 2, 23), bob, None, is_locked=False, generated=True)
        return emea, apac, alice, bob

    def test_own_shift_answers_for_itself(self, repo, linked_pair):
        emea, _, alice, _ = linked_pair
        result = OnCallResolver(repo).resolve(emea.id, utc(2026, 2, 24, 12))
        assert result.primary.user_id == alice
        assert result.roster_id == emea.id

    def test_off_hours_hand_over_to_linked_roster(self, repo, linked_pair):
        emea, apac, _, bob = linked_pair
        result = OnCallResolver(repo).resolve(emea.id, utc(2026, 2, 24, 2))
        assert isinstance(result, ScheduleOnCall)
        assert result.primary.user_id == bob
        assert result.roster_id == apac.id
        assert result.roster_name == "APAC"

    def test_linked_roster_override_applies(self, repo, linked_pair, make_user):
        emea, apac, _, _ = linked_pair
        dana = make_user("Dana")
        repo.create_override(apac.id, dana, utc(2026, 2, 24), utc(2026, 2, 24, 6), None, None)
        result = OnCallResolver(repo).resolve(emea.id, utc(2026, 2, 24, 2))
        assert result.source == "override"
        assert result.primary.user_id == dana

    def test_falls_back_to_itself_when_nobody_is_on_duty(self, repo, linked_pair):
        emea, apac, alice, _ = linked_pair
        repo.update_roster(apac.id, {"active_hours_start": "21:00", "active_hours_end": "03:00"})
        result = OnCallResolver(repo).resolve(emea.id, utc(2026, 2, 24, 5))
        assert result.primary.user_id == alice
        assert result.roster_id == emea.id

    def test_link_ignored_without_follow_the_sun(self, repo, roster_with_members):
        day, (alice,) = roster_with_members(names=("Alice",), name="Day")
        night, (bob,) = roster_with_members(names=("Bob",), name="Night", linked_roster_id=day.id)
        repo.update_roster(day.id, {"linked_roster_id": night.id})
        repo.upsert_schedule_week(day.id, date(2026, 2, 23), alice, None, is_locked=False, generated=True)
        repo.upsert_schedule_week(night.id, date(2026, 2, 23), bob, None, is_locked=False, generated=True)

        assert OnCallResolver(repo).resolve(day.id, utc(2026, 2, 24, 2)).primary.user_id == alice
