"""Table definitions (SQLAlchemy Core).

Queries live in ``weekscore.scoring.connector`` as plain SQL; this module
only owns the DDL, including the two uniqueness constraints the upserts
and the week-selection resolver rely on:

  records                 UNIQUE (tactic_id, date)
  week_tactic_selections  UNIQUE (user_id, week_start)
"""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.ext.asyncio import AsyncEngine

metadata = MetaData()

quarters = Table(
    "quarters",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(255), nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("start_date", Date, nullable=False),
    Column("end_date", Date, nullable=False),
    Column("goals", Text),  # JSON array of {title, description}
    Column("review_notes", Text),
    Column("status", String(16), nullable=False, server_default="planning"),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

tactics = Table(
    "tactics",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(255), nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("type", String(32), nullable=False),
    Column("target_value", Float),
    Column("target_direction", String(8), server_default="gte"),
    Column("unit", String(64)),
    Column("category", String(128)),
    Column("quarter_id", String(36), ForeignKey("quarters.id")),
    Column("sort_order", Integer, nullable=False, server_default="0"),
    Column("active", Boolean, nullable=False, server_default="true"),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

records = Table(
    "records",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("tactic_id", String(36), ForeignKey("tactics.id", ondelete="CASCADE"), nullable=False),
    Column("date", Date, nullable=False),
    Column("value", Float, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    UniqueConstraint("tactic_id", "date", name="records_tactic_date_uq"),
)

week_tactic_selections = Table(
    "week_tactic_selections",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(255), nullable=False),
    Column("week_start", Date, nullable=False),
    Column("tactic_ids", Text, nullable=False),  # JSON array of tactic ids
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    UniqueConstraint("user_id", "week_start", name="week_selections_user_week_uq"),
)


async def create_all(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
