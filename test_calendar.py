# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Tests for iCalendar rendering and export."""

from datetime import date, datetime, timedelta, timezone

from oncall_roster.models.domain import Override, Roster, ScheduleEntry
from oncall_roster.services.calendar_exporter import (
    CalendarExporter,
    calendar_filename,
    escape_text,
    fold,
    render_calendar,
)
from oncall_roster.services.schedule_generator import ScheduleGenerator

NOW = datetime(2026, 2, 20, 10, 0, tzinfo=timezone.utc)
ROSTER_ID = "6f1c2f7e-0000-4000-8000-000000000001"


def _roster(**values) -> Roster:
    fields = dict(
        id=ROSTER_ID, name="Platform", timezone="UTC", handoff_time="09:00",
        handoff_day=1, created_at=NOW, updated_at=NOW,
    )
    fields.update(values)
    return Roster(**fields)


def _entry(week_start: date, primary=None, primary_name="", secondary=None, secondary_name="", notes=None):
    return ScheduleEntry(
        id=f"entry-{week_start.isoformat()}",
        roster_id=ROSTER_ID,
        week_start=week_start,
        week_end=week_start + timedelta(days=7),
        primary_user_id=primary,
        primary_display_name=primary_name,
        secondary_user_id=secondary,
        secondary_display_name=secondary_name,
        notes=notes,
        created_at=NOW,
        updated_at=NOW,
    )


def _override(override_id="ov-1", name="Carol", reason="vacation swap"):
    return Override(
        id=override_id,
        roster_id=ROSTER_ID,
        user_id="carol",
        display_name=name,
        start_at=datetime(2026, 2, 24, 8, tzinfo=timezone.utc),
        end_at=datetime(2026, 2, 25, 8, tzinfo=timezone.utc),
        reason=reason,
        created_at=NOW,
    )


def _unfolded_lines(body: str) -> list[str]:
    return body.replace("\r\n ", "").split("\r\n")[:-1]


class TestRenderCalendar:
    def test_one_event_per_week_and_override(self):
        entries = [
            _entry(date(2026, 2, 23), "alice", "Alice", "bob", "Bob"),
            _entry(date(2026, 3, 2), "bob", "Bob"),
        ]
        body = render_calendar(_roster(), entries, [_override()], stamp=NOW)

        assert body.count("BEGIN:VEVENT") == 3
        assert body.count("BEGIN:VEVENT") == body.count("END:VEVENT")
        assert body.startswith("BEGIN:VCALENDAR\r\n")
        assert body.endswith("END:VCALENDAR\r\n")

    def test_lines_are_crlf_terminated(self):
        body = render_calendar(_roster(), [_entry(date(2026, 2, 23))], [], stamp=NOW)
        assert "\n" not in body.replace("\r\n", "")

    def test_calendar_headers(self):
        lines = _unfolded_lines(render_calendar(_roster(), [], [], stamp=NOW))
        assert "VERSION:2.0" in lines
        assert "X-WR-CALNAME:Platform On-Call" in lines
        assert "CALSCALE:GREGORIAN" in lines
        assert "METHOD:PUBLISH" in lines

    def test_week_event_fields(self):
        body = render_calendar(
            _roster(), [_entry(date(2026, 2, 23), "alice", "Alice", "bob", "Bob")], [], stamp=NOW,
        )
        lines = _unfolded_lines(body)
        assert f"UID:{ROSTER_ID}-20260223@oncall-roster" in lines
        assert "DTSTAMP:20260220T100000Z" in lines
        assert "DTSTART:20260223T090000Z" in lines
        assert "DTEND:20260302T090000Z" in lines
        assert "SUMMARY:On-Call: Alice" in lines
        assert "DESCRIPTION:Roster: Platform\\nPrimary: Alice\\nSecondary: Bob" in lines

    def test_week_times_follow_roster_timezone(self):
        roster = _roster(timezone="Europe/Berlin")
        lines = _unfolded_lines(render_calendar(roster, [_entry(date(2026, 2, 23), "a", "A")], [], stamp=NOW))
        assert "DTSTART:20260223T080000Z" in lines

    def test_unassigned_week(self):
        lines = _unfolded_lines(render_calendar(_roster(), [_entry(date(2026, 2, 23))], [], stamp=NOW))
        assert "SUMMARY:On-Call: Unassigned" in lines

    def test_override_event_fields(self):
        lines = _unfolded_lines(render_calendar(_roster(), [], [_override()], stamp=NOW))
        assert "UID:override-ov-1@oncall-roster" in lines
        assert "SUMMARY:Override: Carol" in lines
        assert "DTSTART:20260224T080000Z" in lines
        assert "DTEND:20260225T080000Z" in lines

    def test_text_is_escaped(self):
        lines = _unfolded_lines(render_calendar(_roster(name="Ops, Tier; 1"), [], [], stamp=NOW))
        assert "X-WR-CALNAME:Ops\\, Tier\\; 1 On-Call" in lines


class TestHelpers:
    def test_escape_text(self):
        assert escape_text("a\\b;c,d\ne") == "a\\\\b\\;c\\,d\\ne"

    def test_fold_long_lines(self):
        chunks = fold("DESCRIPTION:" + "x" * 200)
        assert len(chunks[0]) == 75
        assert all(len(c) <= 75 for c in chunks)
        assert all(c.startswith(" ") for c in chunks[1:])
        assert "".join(c.lstrip(" ") if i else c for i, c in enumerate(chunks)) == "DESCRIPTION:" + "x" * 200

    def test_fold_counts_octets_not_characters(self):
        line = "X-WR-CALNAME:" + "\u00e9" * 70
        chunks = fold(line)
        assert all(len(c.encode("utf-8")) <= 75 for c in chunks)
        assert chunks[0] == "X-WR-CALNAME:" + "\u00e9" * 31
        assert "".join(c[1:] if i else c for i, c in enumerate(chunks)) == line

    def test_short_line_is_not_folded(self):
        assert fold("VERSION:2.0") == ["VERSION:2.0"]

    def test_filename(self):
        assert calendar_filename(_roster(name="Platform Team")) == "Platform-Team-oncall.ics"
        assert calendar_filename(_roster(name="///")) == f"{ROSTER_ID}-oncall.ics"


class TestCalendarExporter:
    def test_export_from_store(self, repo, roster_with_members):
        roster, (alice, _, _) = roster_with_members(schedule_weeks_ahead=4)
        ScheduleGenerator(repo).generate(roster.id, date(2026, 2, 23), 4)
        repo.create_override(
            roster.id, alice,
            datetime(2026, 2, 24, 8, tzinfo=timezone.utc),
            datetime(2026, 2, 25, 8, tzinfo=timezone.utc),
            "swap", None,
        )

        filename, body = CalendarExporter(repo).export(roster.id, today=date(2026, 2, 23))

        assert filename == "Platform-oncall.ics"
        assert body.count("BEGIN:VEVENT") == 5
        assert "SUMMARY:Override: Alice" in _unfolded_lines(body)

    def test_explicit_window(self, repo, roster_with_members):
        roster, _ = roster_with_members()
        ScheduleGenerator(repo).generate(roster.id, date(2026, 2, 23), 4)

        _, body = CalendarExporter(repo).export(
            roster.id, start=date(2026, 3, 2), end=date(2026, 3, 9),
        )

        assert body.count("BEGIN:VEVENT") == 1
        assert f"UID:{roster.id}-20260302@oncall-roster" in _unfolded_lines(body)
