# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Declarative Base and persistence helpers for Recon.

This module defines:
    - A project-wide SQLAlchemy Declarative Base with deterministic naming
      conventions.
    - A JSON column type that uses JSONB on PostgreSQL and plain JSON
      elsewhere (SQLite in tests and local runs).
    - UTC timestamp helpers.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, MetaData
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, declared_attr

__all__ = [
    "Base",
    "DEFAULT_DB_SCHEMA",
    "JSONType",
    "NAMING_CONVENTIONS",
    "metadata",
    "now_utc",
]

#: Optional database schema for all tables. Only meaningful on PostgreSQL.
DEFAULT_DB_SCHEMA: str | None = os.getenv("DB_SCHEMA") or None

#: Deterministic naming conventions for stable constraint names.
NAMING_CONVENTIONS: dict[str, str] = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=NAMING_CONVENTIONS)

#: JSONB on PostgreSQL, JSON on every other dialect.
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Declarative Base for all ORM models.

    Attaches the metadata with stable naming conventions and the optional
    schema from ``DB_SCHEMA``.
    """

    metadata = metadata

    @declared_attr.directive
    def __table_args__(cls) -> tuple[dict[str, Any]] | tuple[()]:
        """Attach default schema when configured."""
        if DEFAULT_DB_SCHEMA:
            return ({"schema": DEFAULT_DB_SCHEMA},)
        return ()


def now_utc() -> datetime:
    """Return the current UTC time with timezone info."""
    return datetime.now(UTC)
