"""Time-filtered traversal of the transaction listing.

Without a cutoff only page 1 is fetched and returned untouched. With a cutoff,
pages of ``PAGE_SIZE`` are fetched one after another and filtered on
``created_at >= since``. The loop stops on an empty page, or on a short page
where nothing survived the filter. A full page never stops the loop, even with
zero matches, since later pages may still hold matches.
"""
from __future__ import annotations

import logging
import math
import numbers
from dataclasses import dataclass, field
from typing import Any, List, Optional

from pydantic import ValidationError

from .data_models import Transaction, TransactionPage
from .dispatcher import ApiDispatcher
from .errors import FetchFailure, InvalidArgument
from .observers import ClientObserver

logger = logging.getLogger(__name__)

PAGE_SIZE = 40
TRANSACTION_TYPES = "checking,credit card"
TRANSACTIONS_PATH = "/api/transaction"


def validate_cutoff(since: Any) -> float:
    """Return ``since`` as a float, or raise ``InvalidArgument`` if it is not a finite number."""
    if isinstance(since, bool) or not isinstance(since, numbers.Real):
        raise InvalidArgument("since must be a number of seconds since the epoch.")
    value = float(since)
    if not math.isfinite(value):
        raise InvalidArgument("since must be a finite number of seconds since the epoch.")
    return value


@dataclass
class FetchCursor:
    page_size: int = PAGE_SIZE
    current_page: int = 1
    accumulated: List[Transaction] = field(default_factory=list)
    has_more: bool = True


class PaginatedFetcher:
    def __init__(
        self,
        dispatcher: ApiDispatcher,
        observer: Optional[ClientObserver] = None,
        page_size: int = PAGE_SIZE,
    ) -> None:
        self._dispatcher = dispatcher
        self._observer = observer or ClientObserver()
        self.page_size = page_size

    async def fetch(self, since: Any = None, budget_id: Optional[str] = None) -> List[Transaction]:
        if since is None:
            page = await self.fetch_page(1, budget_id)
            self._observer.on_pagination_stop(1, "no cutoff given")
            return page.transactions

        cutoff = validate_cutoff(since)
        cursor = FetchCursor(page_size=self.page_size)

        while cursor.has_more:
            page = await self.fetch_page(cursor.current_page, budget_id)
            survivors = [tx for tx in page.transactions if self._matches(tx, cutoff)]
            cursor.accumulated.extend(survivors)

            if not page.transactions:
                self._stop(cursor, "empty page")
            elif len(page.transactions) < cursor.page_size and not survivors:
                self._stop(cursor, "short page with no matches")
            else:
                cursor.current_page += 1

        logger.info(
            "Returning %d transactions since %s across %d pages",
            len(cursor.accumulated),
            cutoff,
            cursor.current_page,
        )
        return cursor.accumulated

    async def fetch_page(self, page: int, budget_id: Optional[str] = None) -> TransactionPage:
        logger.debug("Fetching transactions page %d with limit %d", page, self.page_size)
        payload = await self._dispatcher.request(
            "GET",
            TRANSACTIONS_PATH,
            params={"page": page, "limit": self.page_size, "types": TRANSACTION_TYPES},
            budget_id=budget_id,
        )
        try:
            result = TransactionPage.model_validate(payload or {})
        except ValidationError as exc:
            raise FetchFailure(
                f"Transactions page {page} had an unexpected shape.",
                method="GET",
                url=f"{self._dispatcher.api_base_url}{TRANSACTIONS_PATH}",
            ) from exc

        self._observer.on_page(page, len(result.transactions), result.total)
        return result

    def _matches(self, transaction: Transaction, cutoff: float) -> bool:
        created_at = transaction.created_at_epoch
        kept = created_at is not None and created_at >= cutoff
        self._observer.on_filter_decision(transaction.id, created_at, cutoff, kept)
        return kept

    def _stop(self, cursor: FetchCursor, reason: str) -> None:
        cursor.has_more = False
        self._observer.on_pagination_stop(cursor.current_page, reason)
