"""create competitor watch tables

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def _jsonb() -> postgresql.JSONB:
    return postgresql.JSONB(astext_type=sa.Text())


def upgrade() -> None:
    op.create_table(
        "geo_jurisdictions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("key", sa.String(length=100), nullable=False),
        sa.Column("label", sa.String(length=255), nullable=False),
        sa.Column("state", sa.String(length=2), nullable=False),
        sa.Column("bbox", _jsonb(), nullable=True, comment="[minLon, minLat, maxLon, maxLat]"),
        sa.Column("datasets", _jsonb(), nullable=False),
        sa.Column("agendas", _jsonb(), nullable=False),
        sa.Column("env_notices", _jsonb(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("scrape_frequency", sa.Integer(), nullable=False, comment="Minutes between scrapes"),
        sa.Column("last_scraped", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("key"),
    )

    op.create_table(
        "competitor_entities",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("keywords", _jsonb(), nullable=False),
        sa.Column("cik", sa.String(length=20), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "scrape_jobs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("source", sa.String(length=100), nullable=False),
        sa.Column("query", _jsonb(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("records_found", sa.Integer(), nullable=False),
        sa.Column("records_new", sa.Integer(), nullable=False),
        sa.Column("execution_time_ms", sa.Integer(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_scrape_jobs_status", "scrape_jobs", ["status"], unique=False)
    op.create_index("ix_scrape_jobs_started_at", "scrape_jobs", ["started_at"], unique=False)

    op.create_table(
        "competitor_signals",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("source_id", sa.String(length=255), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("when_iso", sa.DateTime(timezone=True), nullable=False),
        sa.Column("link", sa.Text(), nullable=True),
        sa.Column("raw_data", _jsonb(), nullable=True),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("competitor_match", sa.String(length=255), nullable=True),
        sa.Column("confidence", sa.Float(), nullable=True),
        sa.Column("analyzed", sa.Boolean(), nullable=False),
        sa.Column("analysis_attempts", sa.Integer(), nullable=False),
        sa.Column("source", sa.String(length=100), nullable=False),
        sa.Column("jurisdiction", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "source",
            "jurisdiction",
            "source_id",
            name="uq_competitor_signals_source_jurisdiction_source_id",
        ),
    )
    op.create_index("ix_competitor_signals_when_iso", "competitor_signals", ["when_iso"], unique=False)
    op.create_index("ix_competitor_signals_analyzed", "competitor_signals", ["analyzed"], unique=False)
    op.create_index(
        "ix_competitor_signals_competitor_match",
        "competitor_signals",
        ["competitor_match"],
        unique=False,
    )

    op.create_table(
        "competitor_analyses",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("signal_id", sa.Uuid(), nullable=False),
        sa.Column("competitor_id", sa.String(length=255), nullable=False),
        sa.Column("analysis", sa.Text(), nullable=False),
        sa.Column("impact", sa.String(length=16), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=False),
        sa.Column("recommendations", _jsonb(), nullable=False),
        sa.Column("model", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["signal_id"], ["competitor_signals.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_competitor_analyses_signal_id", "competitor_analyses", ["signal_id"], unique=False)
    op.create_index(
        "ix_competitor_analyses_competitor_id",
        "competitor_analyses",
        ["competitor_id"],
        unique=False,
    )

    op.create_table(
        "watch_cycles",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("trigger", sa.String(length=16), nullable=False),
        sa.Column("days_back", sa.Integer(), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("result_payload", _jsonb(), nullable=True),
        sa.Column("report", sa.Text(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_watch_cycles_status", "watch_cycles", ["status"], unique=False)
    op.create_index("ix_watch_cycles_created_at", "watch_cycles", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_watch_cycles_created_at", table_name="watch_cycles")
    op.drop_index("ix_watch_cycles_status", table_name="watch_cycles")
    op.drop_table("watch_cycles")
    op.drop_index("ix_competitor_analyses_competitor_id", table_name="competitor_analyses")
    op.drop_index("ix_competitor_analyses_signal_id", table_name="competitor_analyses")
    op.drop_table("competitor_analyses")
    op.drop_index("ix_competitor_signals_competitor_match", table_name="competitor_signals")
    op.drop_index("ix_competitor_signals_analyzed", table_name="competitor_signals")
    op.drop_index("ix_competitor_signals_when_iso", table_name="competitor_signals")
    op.drop_table("competitor_signals")
    op.drop_index("ix_scrape_jobs_started_at", table_name="scrape_jobs")
    op.drop_index("ix_scrape_jobs_status", table_name="scrape_jobs")
    op.drop_table("scrape_jobs")
    op.drop_table("competitor_entities")
    op.drop_table("geo_jurisdictions")
