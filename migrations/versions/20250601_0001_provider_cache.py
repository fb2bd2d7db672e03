# migrations/versions/20250601_0001_provider_cache.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Create provider_cache table.

Revision ID: 20250601_0001
Revises:
Create Date: 2025-06-01

Stores one cached provider payload per (ticker, data_type, period_type).
Rows are overwritten on refresh and kept after expiry so stale data can be
served while a provider is unavailable.
"""

from __future__ import annotations

import os

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

DEFAULT_DB_SCHEMA = os.getenv("DB_SCHEMA") or None

revision = "20250601_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "provider_cache",
        sa.Column("ticker", sa.String(length=16), nullable=False),
        sa.Column("data_type", sa.String(length=32), nullable=False),
        sa.Column("period_type", sa.String(length=16), nullable=False),
        sa.Column(
            "payload",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
        ),
        sa.Column("fetched_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ttl_seconds", sa.Integer(), nullable=False),
        sa.Column("provider", sa.String(length=32), nullable=True),
        sa.PrimaryKeyConstraint(
            "ticker", "data_type", "period_type", name="pk_provider_cache"
        ),
        schema=DEFAULT_DB_SCHEMA,
    )


def downgrade() -> None:
    op.drop_table("provider_cache", schema=DEFAULT_DB_SCHEMA)
