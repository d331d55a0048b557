# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Table definitions for the tenant roster schema.

Repositories talk SQL through ``text()``; these definitions exist so the
schema can be created on startup (``CREATE_SCHEMA=true``) and in tests.
Identifiers are stored as canonical UUID strings.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.engine import Engine

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(255)),
    Column("display_name", String(255), nullable=False),
)

rosters = Table(
    "rosters",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", Text, nullable=False),
    Column("description", Text),
    Column("timezone", Text, nullable=False),
    Column("handoff_time", Time, nullable=False),
    Column("handoff_day", Integer, nullable=False, server_default="1"),
    Column("schedule_weeks_ahead", Integer, nullable=False, server_default="12"),
    Column("max_consecutive_weeks", Integer, nullable=False, server_default="2"),
    Column("is_follow_the_sun", Boolean, nullable=False, server_default="0"),
    Column("linked_roster_id", String(36), ForeignKey("rosters.id")),
    Column("active_hours_start", Time),
    Column("active_hours_end", Time),
    Column("escalation_policy_id", String(36)),
    Column("end_date", Date),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    CheckConstraint("handoff_day >= 0 AND handoff_day <= 6", name="ck_rosters_handoff_day"),
)

roster_members = Table(
    "roster_members",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("roster_id", String(36), ForeignKey("rosters.id", ondelete="CASCADE"), nullable=False),
    Column("user_id", String(36), nullable=False),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Column("joined_at", DateTime(timezone=True), nullable=False),
    Column("left_at", DateTime(timezone=True)),
    UniqueConstraint("roster_id", "user_id", name="uq_roster_members_roster_user"),
)

roster_schedule = Table(
    "roster_schedule",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("roster_id", String(36), ForeignKey("rosters.id", ondelete="CASCADE"), nullable=False),
    Column("week_start", Date, nullable=False),
    Column("week_end", Date, nullable=False),
    Column("primary_user_id", String(36)),
    Column("secondary_user_id", String(36)),
    Column("is_locked", Boolean, nullable=False, server_default="0"),
    Column("generated", Boolean, nullable=False, server_default="1"),
    Column("notes", Text),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("roster_id", "week_start", name="uq_roster_schedule_week"),
    CheckConstraint(
        "primary_user_id IS NULL OR secondary_user_id IS NULL "
        "OR primary_user_id <> secondary_user_id",
        name="ck_roster_schedule_distinct_users",
    ),
    CheckConstraint("week_end > week_start", name="ck_roster_schedule_week_order"),
)

roster_overrides = Table(
    "roster_overrides",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("roster_id", String(36), ForeignKey("rosters.id", ondelete="CASCADE"), nullable=False),
    Column("user_id", String(36), nullable=False),
    Column("start_at", DateTime(timezone=True), nullable=False),
    Column("end_at", DateTime(timezone=True), nullable=False),
    Column("reason", Text),
    Column("created_by", String(36)),
    Column("created_at", DateTime(timezone=True), nullable=False),
    CheckConstraint("end_at > start_at", name="ck_roster_overrides_interval"),
)

Index("idx_roster_schedule_roster", roster_schedule.c.roster_id, roster_schedule.c.week_start)
Index(
    "idx_roster_overrides_active",
    roster_overrides.c.roster_id,
    roster_overrides.c.start_at,
    roster_overrides.c.end_at,
)


def create_schema(engine: Engine) -> None:
    """Create any missing roster tables (idempotent)."""
    metadata.create_all(engine)
