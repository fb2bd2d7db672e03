# src/recon_api/adapters/presenters/scored_stock_presenter.py
# Copyright (c) Recon.
# SPDX-License-Identifier: MIT
"""Scored-stock presenter.

Turns a :class:`ScoredStockDTO` into the camelCase JSON document clients
consume. The ETag covers everything except ``asOf`` so the validator only
changes when the scores or inputs change.
"""

from __future__ import annotations

from recon_api.adapters.presenters.base_presenter import BasePresenter, PresentResult
from recon_api.application.schemas.dto.scored_stock import ScoredStockDTO

ETAG_EXCLUDED_FIELDS = frozenset({"asOf"})


class ScoredStockPresenter(BasePresenter):
    """Presenter for the scored-stock document."""

    def present(self, dto: ScoredStockDTO, *, if_none_match: str | None = None) -> PresentResult:
        """Return the JSON-ready document and its headers.

        Args:
            dto: Use-case output.
            if_none_match: Optional client ``If-None-Match`` value.

        Returns:
            PresentResult: 200 with the document, or 304 without a body.
        """
        document = dto.model_dump(mode="json", by_alias=True)
        return self.present_document(
            document, etag_exclude=ETAG_EXCLUDED_FIELDS, if_none_match=if_none_match
        )


__all__ = ["ETAG_EXCLUDED_FIELDS", "ScoredStockPresenter"]
