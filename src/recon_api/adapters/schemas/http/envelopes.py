# src/recon_api/adapters/schemas/http/envelopes.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Transport Envelopes (Adapters Layer).

Purpose:
    Canonical error envelope returned instead of a scored-stock document:
    ``{"error": ErrorObject}``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

__all__ = ["ErrorEnvelope", "ErrorObject"]


class ErrorObject(BaseModel):
    """Structured error object inside ErrorEnvelope.

    Error codes are UPPER_SNAKE_CASE and stable across releases, e.g.
    ``DATA_MISSING``, ``PROVIDER_UNAVAILABLE``, ``PROVIDER_RATE_LIMITED``.
    """

    model_config = ConfigDict(
        title="ErrorObject",
        extra="forbid",
        json_schema_extra={
            "examples": [
                {
                    "code": "DATA_MISSING",
                    "http_status": 404,
                    "message": "No financial statements for ZZZZ",
                    "details": {"ticker": "ZZZZ"},
                    "trace_id": "req-123",
                }
            ]
        },
    )

    code: str = Field(..., description="Stable machine-readable error code.")
    http_status: int = Field(..., description="Associated HTTP status.")
    message: str = Field(..., description="Human-readable error description.")
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Structured details safe for clients.",
    )
    trace_id: str | None = Field(
        default=None,
        description="Request correlation identifier.",
    )


class ErrorEnvelope(BaseModel):
    """Canonical error envelope: {"error": ErrorObject}."""

    model_config = ConfigDict(title="ErrorEnvelope", extra="forbid")

    error: ErrorObject = Field(..., description="Structured error details.")
