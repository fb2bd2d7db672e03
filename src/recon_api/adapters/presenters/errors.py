# src/recon_api/adapters/presenters/errors.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Error presentation.

Maps exceptions raised by the scoring core to the canonical error envelope:

* ``DataMissing`` (incl. ``InvalidTicker``) -> 404
* ``ProviderRateLimited`` / ``ProviderTimeout`` -> 503
* any other ``ProviderFailure`` -> 502
* any other ``DomainError`` -> 400
* anything else -> 500 with a generic message
"""

from __future__ import annotations

import logging

from recon_api.adapters.presenters.base_presenter import BasePresenter, PresentResult
from recon_api.domain.exceptions.base import DomainError
from recon_api.domain.exceptions.fundamentals import (
    DataMissing,
    ProviderFailure,
    ProviderRateLimited,
    ProviderTimeout,
)
from recon_api.infrastructure.logging.logger import get_request_id, get_trace_id

logger = logging.getLogger(__name__)

INTERNAL_ERROR_CODE = "INTERNAL_ERROR"


def http_status_for(exc: BaseException) -> int:
    """Return the HTTP status an exception maps to."""
    if isinstance(exc, DataMissing):
        return 404
    if isinstance(exc, ProviderRateLimited | ProviderTimeout):
        return 503
    if isinstance(exc, ProviderFailure):
        return 502
    if isinstance(exc, DomainError):
        return 400
    return 500


def present_error(exc: BaseException) -> PresentResult:
    """Build the error envelope for ``exc``.

    Unknown exceptions are logged with their traceback and presented without
    their message.
    """
    status = http_status_for(exc)
    trace_id = get_trace_id() or get_request_id()

    if isinstance(exc, DomainError):
        code, message, details = exc.code, exc.message or exc.code, dict(exc.details)
    else:
        logger.error(
            "presenter.error.unhandled",
            exc_info=exc,
            extra={"extra": {"exception": type(exc).__name__}},
        )
        code, message, details = INTERNAL_ERROR_CODE, "Internal error", {}

    return BasePresenter().present_error_envelope(
        code=code,
        http_status=status,
        message=message,
        trace_id=trace_id,
        details=details,
    )


__all__ = ["http_status_for", "present_error"]
