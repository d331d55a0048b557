# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Data-access layer for rosters, members, schedule weeks and overrides.

The repository is bound to one (tenant-scoped) connection for the lifetime of
a request or worker pass. Every write commits on its own, so a long
generation pass keeps the weeks it already wrote if it is aborted.
"""
import uuid
from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterator, Optional

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from oncall_roster.core.errors import (
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from oncall_roster.core.logging import get_logger
from oncall_roster.models.domain import Member, Override, Roster, ScheduleEntry
from oncall_roster.repositories.encoding import (
    DEFAULT_HANDOFF_TIME,
    decode_bool,
    decode_date,
    decode_instant,
    decode_time_of_day,
    decode_uuid,
    encode_date,
    encode_instant,
)

logger = get_logger(__name__)

ROSTER_COLS = (
    "id, name, description, timezone, handoff_time, handoff_day, "
    "schedule_weeks_ahead, max_consecutive_weeks, is_follow_the_sun, "
    "linked_roster_id, active_hours_start, active_hours_end, "
    "escalation_policy_id, end_date, is_active, created_at, updated_at"
)

MEMBER_SELECT = """
    SELECT rm.id, rm.roster_id, rm.user_id, COALESCE(u.display_name, rm.user_id),
           rm.is_active, rm.joined_at, rm.left_at
    FROM roster_members rm
    LEFT JOIN users u ON u.id = rm.user_id
"""

SCHEDULE_SELECT = """
    SELECT rs.id, rs.roster_id, rs.week_start, rs.week_end,
           rs.primary_user_id, COALESCE(up.display_name, ''),
           rs.secondary_user_id, COALESCE(us.display_name, ''),
           rs.is_locked, rs.generated, rs.notes, rs.created_at, rs.updated_at
    FROM roster_schedule rs
    LEFT JOIN users up ON up.id = rs.primary_user_id
    LEFT JOIN users us ON us.id = rs.secondary_user_id
"""

OVERRIDE_SELECT = """
    SELECT ro.id, ro.roster_id, ro.user_id, COALESCE(u.display_name, ro.user_id),
           ro.start_at, ro.end_at, ro.reason, ro.created_by, ro.created_at
    FROM roster_overrides ro
    LEFT JOIN users u ON u.id = ro.user_id
"""

ROSTER_FIELDS = (
    "name", "description", "timezone", "handoff_time", "handoff_day",
    "schedule_weeks_ahead", "max_consecutive_weeks", "is_follow_the_sun",
    "linked_roster_id", "active_hours_start", "active_hours_end",
    "escalation_policy_id", "end_date",
)


# ── Row mapping ──

def _row_to_roster(row) -> Roster:
    return Roster(
        id=decode_uuid(row[0]),
        name=row[1],
        description=row[2],
        timezone=row[3],
        handoff_time=decode_time_of_day(row[4], DEFAULT_HANDOFF_TIME),
        handoff_day=row[5] if row[5] is not None else 1,
        schedule_weeks_ahead=row[6],
        max_consecutive_weeks=row[7],
        is_follow_the_sun=decode_bool(row[8]),
        linked_roster_id=decode_uuid(row[9]),
        active_hours_start=decode_time_of_day(row[10]),
        active_hours_end=decode_time_of_day(row[11]),
        escalation_policy_id=decode_uuid(row[12]),
        end_date=decode_date(row[13]),
        is_active=decode_bool(row[14]),
        created_at=decode_instant(row[15]),
        updated_at=decode_instant(row[16]),
    )


def _row_to_member(row, counts: Optional[dict[str, tuple[int, int]]] = None) -> Member:
    user_id = decode_uuid(row[2])
    primary, secondary = (counts or {}).get(user_id, (0, 0))
    return Member(
        id=decode_uuid(row[0]),
        roster_id=decode_uuid(row[1]),
        user_id=user_id,
        display_name=str(row[3]),
        is_active=decode_bool(row[4]),
        joined_at=decode_instant(row[5]),
        left_at=decode_instant(row[6]),
        primary_weeks_served=primary,
        secondary_weeks_served=secondary,
    )


def _row_to_schedule(row) -> ScheduleEntry:
    return ScheduleEntry(
        id=decode_uuid(row[0]),
        roster_id=decode_uuid(row[1]),
        week_start=decode_date(row[2]),
        week_end=decode_date(row[3]),
        primary_user_id=decode_uuid(row[4]),
        primary_display_name=row[5] or "",
        secondary_user_id=decode_uuid(row[6]),
        secondary_display_name=row[7] or "",
        is_locked=decode_bool(row[8]),
        generated=decode_bool(row[9]),
        notes=row[10],
        created_at=decode_instant(row[11]),
        updated_at=decode_instant(row[12]),
    )


def _row_to_override(row) -> Override:
    return Override(
        id=decode_uuid(row[0]),
        roster_id=decode_uuid(row[1]),
        user_id=decode_uuid(row[2]),
        display_name=str(row[3]),
        start_at=decode_instant(row[4]),
        end_at=decode_instant(row[5]),
        reason=row[6],
        created_by=decode_uuid(row[7]),
        created_at=decode_instant(row[8]),
    )


def _encode_roster_value(field: str, value: Any) -> Any:
    if value is None:
        return None
    if field == "end_date":
        return encode_date(value)
    return value


class RosterRepository:
    def __init__(self, conn: Connection):
        self._conn = conn

    # ── Transaction helpers ────────────────────────────────────────────

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[Connection]:
        """Run one write and commit it; roll back and wrap driver errors."""
        try:
            yield self._conn
            self._conn.commit()
        except SQLAlchemyError as exc:
            self._conn.rollback()
            raise PersistenceError(operation, exc)
        except Exception:
            self._conn.rollback()
            raise

    @contextmanager
    def _reading(self, operation: str) -> Iterator[Connection]:
        try:
            yield self._conn
        except SQLAlchemyError as exc:
            raise PersistenceError(operation, exc)

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    # ── Rosters ────────────────────────────────────────────────────────

    def create_roster(self, values: dict[str, Any]) -> Roster:
        roster_id = str(uuid.uuid4())
        now = encode_instant(self._now())
        params = {f: _encode_roster_value(f, values.get(f)) for f in ROSTER_FIELDS}
        params.update({"id": roster_id, "is_active": True, "ts": now})
        with self._transaction("creating roster") as conn:
            conn.execute(
                text(f"""
                    INSERT INTO rosters ({', '.join(('id',) + ROSTER_FIELDS)},
                                         is_active, created_at, updated_at)
                    VALUES (:id, {', '.join(':' + f for f in ROSTER_FIELDS)},
                            :is_active, :ts, :ts)
                """),
                params,
            )
        logger.info("Roster created", extra={"roster_id": roster_id})
        return self.get_roster(roster_id)

    def get_roster(self, roster_id: str) -> Roster:
        with self._reading("getting roster") as conn:
            row = conn.execute(
                text(f"SELECT {ROSTER_COLS} FROM rosters WHERE id = :id"),
                {"id": roster_id},
            ).fetchone()
        if row is None:
            raise NotFoundError(f"roster {roster_id} not found")
        return _row_to_roster(row)

    def list_rosters(self) -> list[Roster]:
        with self._reading("listing rosters") as conn:
            rows = conn.execute(
                text(f"SELECT {ROSTER_COLS} FROM rosters ORDER BY name, id")
            ).fetchall()
        return [_row_to_roster(r) for r in rows]

    def list_active_rosters(self) -> list[Roster]:
        with self._reading("listing active rosters") as conn:
            rows = conn.execute(
                text(f"SELECT {ROSTER_COLS} FROM rosters WHERE is_active = :active ORDER BY name, id"),
                {"active": True},
            ).fetchall()
        return [_row_to_roster(r) for r in rows]

    def update_roster(self, roster_id: str, values: dict[str, Any]) -> Roster:
        fields = [f for f in ROSTER_FIELDS if f in values]
        params = {f: _encode_roster_value(f, values[f]) for f in fields}
        params.update({"id": roster_id, "ts": encode_instant(self._now())})
        assignments = [f"{f} = :{f}" for f in fields] + ["updated_at = :ts"]
        if "is_active" in values:
            assignments.append("is_active = :is_active")
            params["is_active"] = bool(values["is_active"])
        with self._transaction("updating roster") as conn:
            result = conn.execute(
                text(f"UPDATE rosters SET {', '.join(assignments)} WHERE id = :id"),
                params,
            )
            if result.rowcount == 0:
                raise NotFoundError(f"roster {roster_id} not found")
        return self.get_roster(roster_id)

    def set_roster_active(self, roster_id: str, active: bool) -> None:
        with self._transaction("setting roster active") as conn:
            result = conn.execute(
                text("UPDATE rosters SET is_active = :active, updated_at = :ts WHERE id = :id"),
                {"id": roster_id, "active": active, "ts": encode_instant(self._now())},
            )
            if result.rowcount == 0:
                raise NotFoundError(f"roster {roster_id} not found")

    def delete_roster(self, roster_id: str) -> None:
        """Hard-delete a roster together with its members, weeks and overrides."""
        with self._transaction("deleting roster") as conn:
            exists = conn.execute(
                text("SELECT 1 FROM rosters WHERE id = :id"), {"id": roster_id}
            ).fetchone()
            if not exists:
                raise NotFoundError(f"roster {roster_id} not found")
            linked = conn.execute(
                text("SELECT id FROM rosters WHERE linked_roster_id = :id AND id <> :id"),
                {"id": roster_id},
            ).fetchone()
            if linked:
                raise ConflictError(
                    f"roster {roster_id} is linked from roster {decode_uuid(linked[0])}"
                )
            for table in ("roster_overrides", "roster_schedule", "roster_members"):
                conn.execute(
                    text(f"DELETE FROM {table} WHERE roster_id = :id"), {"id": roster_id}
                )
            conn.execute(text("DELETE FROM rosters WHERE id = :id"), {"id": roster_id})
        logger.info("Roster deleted", extra={"roster_id": roster_id})

    # ── Members ────────────────────────────────────────────────────────

    def list_members(self, roster_id: str) -> list[Member]:
        """All members, active first, each with the weeks they have served."""
        with self._reading("listing roster members") as conn:
            rows = conn.execute(
                text(MEMBER_SELECT + " WHERE rm.roster_id = :rid "
                     "ORDER BY rm.is_active DESC, rm.joined_at, rm.id"),
                {"rid": roster_id},
            ).fetchall()
        primary = self.count_primary_weeks(roster_id)
        secondary = self.count_secondary_weeks(roster_id)
        counts = {
            decode_uuid(r[2]): (primary.get(decode_uuid(r[2]), 0), secondary.get(decode_uuid(r[2]), 0))
            for r in rows
        }
        return [_row_to_member(r, counts) for r in rows]

    def list_active_members(self, roster_id: str) -> list[Member]:
        """Active members in join order, which is the rotation's tie-break order."""
        with self._reading("listing active roster members") as conn:
            rows = conn.execute(
                text(MEMBER_SELECT + " WHERE rm.roster_id = :rid AND rm.is_active = :active "
                     "ORDER BY rm.joined_at, rm.id"),
                {"rid": roster_id, "active": True},
            ).fetchall()
        return [_row_to_member(r) for r in rows]

    def get_member(self, roster_id: str, user_id: str) -> Member:
        with self._reading("getting roster member") as conn:
            row = conn.execute(
                text(MEMBER_SELECT + " WHERE rm.roster_id = :rid AND rm.user_id = :uid"),
                {"rid": roster_id, "uid": user_id},
            ).fetchone()
        if row is None:
            raise NotFoundError(f"user {user_id} is not a member of roster {roster_id}")
        return _row_to_member(row)

    def add_member(self, roster_id: str, user_id: str) -> Member:
        """Add a user to a roster, re-activating them if they left earlier."""
        with self._transaction("adding roster member") as conn:
            conn.execute(
                text("""
                    INSERT INTO roster_members (id, roster_id, user_id, is_active, joined_at)
                    VALUES (:id, :rid, :uid, :active, :ts)
                    ON CONFLICT (roster_id, user_id)
                    DO UPDATE SET is_active = excluded.is_active, left_at = NULL
                """),
                {"id": str(uuid.uuid4()), "rid": roster_id, "uid": user_id,
                 "active": True, "ts": encode_instant(self._now())},
            )
        return self.get_member(roster_id, user_id)

    def set_member_active(self, roster_id: str, user_id: str, active: bool) -> Member:
        if not active:
            return self.deactivate_member(roster_id, user_id)
        with self._transaction("re-activating roster member") as conn:
            result = conn.execute(
                text("""
                    UPDATE roster_members SET is_active = :active, left_at = NULL
                    WHERE roster_id = :rid AND user_id = :uid
                """),
                {"rid": roster_id, "uid": user_id, "active": True},
            )
            if result.rowcount == 0:
                raise NotFoundError(f"user {user_id} is not a member of roster {roster_id}")
        return self.get_member(roster_id, user_id)

    def deactivate_member(self, roster_id: str, user_id: str) -> Member:
        with self._transaction("deactivating roster member") as conn:
            result = conn.execute(
                text("""
                    UPDATE roster_members SET is_active = :active, left_at = :ts
                    WHERE roster_id = :rid AND user_id = :uid
                """),
                {"rid": roster_id, "uid": user_id, "active": False,
                 "ts": encode_instant(self._now())},
            )
            if result.rowcount == 0:
                raise NotFoundError(f"user {user_id} is not a member of roster {roster_id}")
        return self.get_member(roster_id, user_id)

    def get_user_display_name(self, user_id: str) -> Optional[str]:
        with self._reading("getting user display name") as conn:
            row = conn.execute(
                text("SELECT display_name FROM users WHERE id = :id"), {"id": user_id}
            ).fetchone()
        return row[0] if row else None

    # ── Schedule ───────────────────────────────────────────────────────

    def list_schedule(self, roster_id: str, start: date, end: date) -> list[ScheduleEntry]:
        """Weeks whose ``week_start`` falls in ``[start, end)``, in week order."""
        with self._reading("listing schedule") as conn:
            rows = conn.execute(
                text(SCHEDULE_SELECT + """
                    WHERE rs.roster_id = :rid AND rs.week_start >= :start AND rs.week_start < :end
                    ORDER BY rs.week_start
                """),
                {"rid": roster_id, "start": encode_date(start), "end": encode_date(end)},
            ).fetchall()
        return [_row_to_schedule(r) for r in rows]

    def get_schedule_week(self, roster_id: str, week_start: date) -> Optional[ScheduleEntry]:
        with self._reading("getting schedule week") as conn:
            row = conn.execute(
                text(SCHEDULE_SELECT + " WHERE rs.roster_id = :rid AND rs.week_start = :ws"),
                {"rid": roster_id, "ws": encode_date(week_start)},
            ).fetchone()
        return _row_to_schedule(row) if row else None

    def get_schedule_for_date(self, roster_id: str, day: date) -> Optional[ScheduleEntry]:
        """The week whose calendar span ``[week_start, week_end)`` contains ``day``."""
        with self._reading("getting schedule for date") as conn:
            row = conn.execute(
                text(SCHEDULE_SELECT + """
                    WHERE rs.roster_id = :rid AND rs.week_start <= :day AND rs.week_end > :day
                    ORDER BY rs.week_start DESC
                """),
                {"rid": roster_id, "day": encode_date(day)},
            ).fetchone()
        return _row_to_schedule(row) if row else None

    def upsert_schedule_week(
        self,
        roster_id: str,
        week_start: date,
        primary_user_id: Optional[str],
        secondary_user_id: Optional[str],
        is_locked: bool,
        generated: bool,
        notes: Optional[str] = None,
    ) -> ScheduleEntry:
        """Insert or overwrite the week keyed by ``(roster_id, week_start)``."""
        if primary_user_id is not None and primary_user_id == secondary_user_id:
            raise ValidationError("primary and secondary must be different users")
        now = encode_instant(self._now())
        try:
            with self._transaction(f"upserting schedule week {week_start.isoformat()}") as conn:
                conn.execute(
                    text("""
                        INSERT INTO roster_schedule
                            (id, roster_id, week_start, week_end, primary_user_id,
                             secondary_user_id, is_locked, generated, notes, created_at, updated_at)
                        VALUES
                            (:id, :rid, :ws, :we, :primary, :secondary,
                             :locked, :generated, :notes, :ts, :ts)
                        ON CONFLICT (roster_id, week_start) DO UPDATE SET
                            primary_user_id = excluded.primary_user_id,
                            secondary_user_id = excluded.secondary_user_id,
                            is_locked = excluded.is_locked,
                            generated = excluded.generated,
                            notes = excluded.notes,
                            updated_at = excluded.updated_at
                    """),
                    {"id": str(uuid.uuid4()), "rid": roster_id,
                     "ws": encode_date(week_start),
                     "we": encode_date(week_start + timedelta(days=7)),
                     "primary": primary_user_id, "secondary": secondary_user_id,
                     "locked": is_locked, "generated": generated, "notes": notes, "ts": now},
                )
        except PersistenceError as exc:
            logger.error(
                "Schedule upsert failed: %s", exc,
                extra={"roster_id": roster_id, "week_start": week_start.isoformat()},
            )
            raise
        return self.get_schedule_week(roster_id, week_start)

    def unlock_schedule_week(self, roster_id: str, week_start: date) -> ScheduleEntry:
        with self._transaction("unlocking schedule week") as conn:
            result = conn.execute(
                text("""
                    UPDATE roster_schedule SET is_locked = :locked, updated_at = :ts
                    WHERE roster_id = :rid AND week_start = :ws
                """),
                {"rid": roster_id, "ws": encode_date(week_start), "locked": False,
                 "ts": encode_instant(self._now())},
            )
            if result.rowcount == 0:
                raise NotFoundError(
                    f"no schedule week {week_start.isoformat()} for roster {roster_id}"
                )
        return self.get_schedule_week(roster_id, week_start)

    # ── Fairness counts ────────────────────────────────────────────────

    def _count_weeks(self, column: str, roster_id: str, before: Optional[date]) -> dict[str, int]:
        sql = (
            f"SELECT {column}, COUNT(*) FROM roster_schedule "
            f"WHERE roster_id = :rid AND {column} IS NOT NULL"
        )
        params: dict[str, Any] = {"rid": roster_id}
        if before is not None:
            sql += " AND week_start < :before"
            params["before"] = encode_date(before)
        sql += f" GROUP BY {column}"
        with self._reading(f"counting {column} weeks") as conn:
            rows = conn.execute(text(sql), params).fetchall()
        return {decode_uuid(r[0]): int(r[1]) for r in rows}

    def count_primary_weeks(self, roster_id: str, before: Optional[date] = None) -> dict[str, int]:
        """Weeks served as primary per user, optionally only weeks starting before ``before``."""
        return self._count_weeks("primary_user_id", roster_id, before)

    def count_secondary_weeks(self, roster_id: str, before: Optional[date] = None) -> dict[str, int]:
        return self._count_weeks("secondary_user_id", roster_id, before)

    # ── Overrides ──────────────────────────────────────────────────────

    def list_overrides(self, roster_id: str) -> list[Override]:
        with self._reading("listing overrides") as conn:
            rows = conn.execute(
                text(OVERRIDE_SELECT + " WHERE ro.roster_id = :rid ORDER BY ro.start_at DESC"),
                {"rid": roster_id},
            ).fetchall()
        return [_row_to_override(r) for r in rows]

    def list_overrides_in_range(self, roster_id: str, start: datetime, end: datetime) -> list[Override]:
        """Overrides intersecting ``[start, end)``, earliest first."""
        with self._reading("listing overrides in range") as conn:
            rows = conn.execute(
                text(OVERRIDE_SELECT + """
                    WHERE ro.roster_id = :rid AND ro.start_at < :end AND ro.end_at > :start
                    ORDER BY ro.start_at, ro.id
                """),
                {"rid": roster_id, "start": encode_instant(start), "end": encode_instant(end)},
            ).fetchall()
        return [_row_to_override(r) for r in rows]

    def get_active_override(self, roster_id: str, at: datetime) -> Optional[Override]:
        """The override covering ``at``; overlapping overrides resolve to the earliest start."""
        with self._reading("checking active override") as conn:
            row = conn.execute(
                text(OVERRIDE_SELECT + """
                    WHERE ro.roster_id = :rid AND ro.start_at <= :at AND ro.end_at > :at
                    ORDER BY ro.start_at, ro.id
                    LIMIT 1
                """),
                {"rid": roster_id, "at": encode_instant(at)},
            ).fetchone()
        return _row_to_override(row) if row else None

    def get_override(self, roster_id: str, override_id: str) -> Override:
        with self._reading("getting override") as conn:
            row = conn.execute(
                text(OVERRIDE_SELECT + " WHERE ro.roster_id = :rid AND ro.id = :id"),
                {"rid": roster_id, "id": override_id},
            ).fetchone()
        if row is None:
            raise NotFoundError(f"override {override_id} not found")
        return _row_to_override(row)

    def create_override(
        self,
        roster_id: str,
        user_id: str,
        start_at: datetime,
        end_at: datetime,
        reason: Optional[str],
        created_by: Optional[str],
    ) -> Override:
        if end_at <= start_at:
            raise ValidationError("end_at must be after start_at")
        override_id = str(uuid.uuid4())
        try:
            with self._transaction("creating override") as conn:
                conn.execute(
                    text("""
                        INSERT INTO roster_overrides
                            (id, roster_id, user_id, start_at, end_at, reason, created_by, created_at)
                        VALUES (:id, :rid, :uid, :start, :end, :reason, :by, :ts)
                    """),
                    {"id": override_id, "rid": roster_id, "uid": user_id,
                     "start": encode_instant(start_at), "end": encode_instant(end_at),
                     "reason": reason, "by": created_by, "ts": encode_instant(self._now())},
                )
        except PersistenceError as exc:
            if isinstance(exc.__cause__, IntegrityError):
                raise ValidationError(f"override rejected: {exc.__cause__.orig}")
            raise
        logger.info(
            "Override created",
            extra={"roster_id": roster_id, "override_id": override_id},
        )
        return self.get_override(roster_id, override_id)

    def delete_override(self, roster_id: str, override_id: str) -> None:
        with self._transaction("deleting override") as conn:
            result = conn.execute(
                text("DELETE FROM roster_overrides WHERE roster_id = :rid AND id = :id"),
                {"rid": roster_id, "id": override_id},
            )
            if result.rowcount == 0:
                raise NotFoundError(f"override {override_id} not found")
        logger.info(
            "Override deleted",
            extra={"roster_id": roster_id, "override_id": override_id},
        )
