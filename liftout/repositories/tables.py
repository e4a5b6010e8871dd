# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Relational layout of teams, memberships and profiles."""
from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)

metadata = MetaData()

teams = Table(
    "teams",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    Column("industry", String(255)),
    Column("size", Integer, nullable=False, default=0),
    Column("posting_status", String(16), nullable=False, default="draft"),
    Column("posted_at", DateTime(timezone=True)),
    Column("unposted_at", DateTime(timezone=True)),
    Column("availability_status", String(32)),
    Column("created_by", String(64), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True)),
)

team_memberships = Table(
    "team_memberships",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("team_id", String(36), ForeignKey("teams.id"), nullable=False),
    Column("user_id", String(64)),
    Column("email", String(320)),
    Column("role", String(255)),
    Column("access", String(16), nullable=False, default="member"),
    Column("status", String(16), nullable=False, default="pending"),
    Column("invited_at", DateTime(timezone=True)),
    Column("invitation_token", String(128), unique=True),
    Column("invitation_expires_at", DateTime(timezone=True)),
    Column("invited_by", String(64)),
    Column("joined_at", DateTime(timezone=True)),
    Index("ix_team_memberships_team_status", "team_id", "status"),
)

user_profiles = Table(
    "user_profiles",
    metadata,
    Column("user_id", String(64), primary_key=True),
    Column("email", String(320), index=True),
    Column("first_name", String(255)),
    Column("last_name", String(255)),
    Column("bio", Text),
)
