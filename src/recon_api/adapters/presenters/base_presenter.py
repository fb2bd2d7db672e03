# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Presenter utilities and canonical envelope helpers.

Purpose:
    Framework-agnostic helpers used to shape JSON-ready response documents
    and headers consistently.

Responsibilities:
    * Build error envelopes.
    * Compute strong, quoted ETags from canonical JSON material.
    * Apply standard headers such as X-Request-ID.

Layer:
    adapters/presenters
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from recon_api.adapters.schemas.http.envelopes import ErrorEnvelope, ErrorObject
from recon_api.infrastructure.logging.logger import get_request_id


def _json_default(value: Any) -> str:
    """Serialize non-JSON-native types deterministically for hashing."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    raise TypeError(f"unsupported type for JSON hashing: {type(value)!r}")


def _compute_quoted_etag(payload: Mapping[str, Any]) -> str:
    """Return a quoted strong ETag (SHA-256 of canonical JSON for ``payload``)."""
    material = json.dumps(
        payload,
        sort_keys=True,
        separators=(",", ":"),
        default=_json_default,
    ).encode("utf-8")
    digest = hashlib.sha256(material).hexdigest()
    return f'"{digest}"'


@dataclass(slots=True)
class PresentResult:
    """Presentation result.

    Attributes:
        body: JSON-ready document, or ``None`` for e.g. 304.
        headers: Extra HTTP headers to apply.
        status_code: HTTP status.
    """

    body: dict[str, Any] | None
    headers: Mapping[str, str] = field(default_factory=dict)
    status_code: int = 200


class BasePresenter:
    """Base presenter for response shaping.

    Provides helpers to assemble standard envelopes and headers, leaving all
    business decisions to the use-case/application layer.
    """

    @staticmethod
    def base_headers() -> dict[str, str]:
        """Return headers every response carries (currently ``X-Request-ID``)."""
        headers: dict[str, str] = {}
        request_id = get_request_id()
        if request_id:
            headers["X-Request-ID"] = request_id
        return headers

    def present_document(
        self,
        document: dict[str, Any],
        *,
        etag_exclude: frozenset[str] = frozenset(),
        if_none_match: str | None = None,
    ) -> PresentResult:
        """Return ``document`` with a strong ETag.

        Args:
            document: JSON-ready body.
            etag_exclude: Top-level keys left out of the ETag material.
            if_none_match: Client validator; a match yields a bodiless 304.
        """
        material = {k: v for k, v in document.items() if k not in etag_exclude}
        headers = self.base_headers()
        headers["ETag"] = _compute_quoted_etag(material)
        if if_none_match is not None and if_none_match.strip() == headers["ETag"]:
            return PresentResult(body=None, headers=headers, status_code=304)
        return PresentResult(body=document, headers=headers)

    def present_error_envelope(
        self,
        *,
        code: str,
        http_status: int,
        message: str,
        trace_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> PresentResult:
        """Build an ErrorEnvelope and attach ``X-Request-ID`` (no ETag)."""
        err = ErrorObject(
            code=code,
            http_status=http_status,
            message=message,
            details=details or {},
            trace_id=trace_id,
        )
        body = ErrorEnvelope(error=err).model_dump(mode="json")
        return PresentResult(body=body, headers=self.base_headers(), status_code=http_status)
