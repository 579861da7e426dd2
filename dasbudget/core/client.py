from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar, Union

import httpx
from pydantic import BaseModel, ValidationError
from tenacity.wait import wait_base

from ..config import ClientConfig
from .data_models import (
    FREE_TO_SPEND,
    FREE_TO_SPEND_SEGMENT,
    Account,
    Bucket,
    BucketKind,
    Budget,
    Item,
    RefreshesResponse,
    Transaction,
)
from .dispatcher import ApiDispatcher, TenantContext
from .errors import FetchFailure, InvalidArgument
from .observers import ClientObserver, CompositeObserver, LoggingObserver
from .pagination import TRANSACTION_TYPES, PaginatedFetcher
from .token_manager import TokenManager

logger = logging.getLogger(__name__)

BUCKET_PAGE_LIMIT = 1000
BUCKET_SORT = "schedule_date,name_clean"

ModelT = TypeVar("ModelT", bound=BaseModel)


class DasBudget:
    """Async client for the DasBudget API.

    Every call makes sure the bearer token is fresh first, then sends the
    request with the active budget in the context header. Use as an async
    context manager, or call :meth:`close` when done.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        http: Optional[httpx.AsyncClient] = None,
        observer: Optional[ClientObserver] = None,
        clock: Callable[[], float] = time.time,
        retry_wait: Optional[wait_base] = None,
    ) -> None:
        self.config = config
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(
            timeout=httpx.Timeout(config.timeout_seconds, connect=5.0),
        )

        logging_observer = LoggingObserver(debug=config.debug)
        self.observer = CompositeObserver([logging_observer, observer]) if observer else logging_observer

        self.tokens = TokenManager(
            self._http,
            config.refresh_token,
            config.api_key,
            config.identity_base_url,
            observer=self.observer,
            clock=clock,
        )
        self.context = TenantContext(config.budget_id)
        self.dispatcher = ApiDispatcher(
            self._http,
            self.tokens,
            config.api_base_url,
            context=self.context,
            observer=self.observer,
            max_attempts=config.max_attempts,
            retry_wait=retry_wait,
        )
        self.fetcher = PaginatedFetcher(self.dispatcher, observer=self.observer)

    async def __aenter__(self) -> "DasBudget":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Dispose the underlying HTTP client if this instance created it."""
        if self._owns_http:
            await self._http.aclose()

    @property
    def user_id(self) -> Optional[str]:
        return self.tokens.subject_id

    @property
    def budget_id(self) -> Optional[str]:
        return self.context.budget_id

    async def initialize(self) -> None:
        """Fetch an access token up front instead of on the first call."""
        logger.info("Initializing DasBudget client")
        await self.tokens.refresh()

    def set_budget_id(self, budget_id: Optional[str]) -> None:
        """Select the budget for later calls; ``None`` falls back to the oldest budget."""
        self.context.set(budget_id)
        logger.info("Set budget ID to: %s", budget_id if budget_id is not None else "null")

    async def transactions(self, since: Any = None, budget_id: Optional[str] = None) -> List[Transaction]:
        """List transactions.

        Without ``since`` only the first page is returned, unfiltered. With
        ``since`` (seconds since the epoch) every transaction created at or
        after it is returned, in server order.
        """
        return await self.fetcher.fetch(since=since, budget_id=budget_id)

    async def _buckets_by_kind(self, kind: BucketKind, budget_id: Optional[str]) -> List[Bucket]:
        logger.info("Fetching %ss", kind)
        payload = await self.dispatcher.request(
            "GET",
            "/api/bucket",
            params={"page": 1, "limit": BUCKET_PAGE_LIMIT, "kind": kind, "sort": BUCKET_SORT},
            budget_id=budget_id,
        )
        return _parse_items(Bucket, payload, "/api/bucket")

    async def expenses(self, budget_id: Optional[str] = None) -> List[Bucket]:
        return await self._buckets_by_kind("expense", budget_id)

    async def goals(self, budget_id: Optional[str] = None) -> List[Bucket]:
        return await self._buckets_by_kind("goal", budget_id)

    async def vaults(self, budget_id: Optional[str] = None) -> List[Bucket]:
        return await self._buckets_by_kind("vault", budget_id)

    async def accounts(self, budget_id: Optional[str] = None) -> List[Account]:
        logger.info("Fetching accounts")
        payload = await self.dispatcher.request(
            "GET",
            "/api/item/account",
            params={"types": TRANSACTION_TYPES},
            budget_id=budget_id,
        )
        return _parse_items(Account, payload, "/api/item/account")

    async def assign_transaction_to_bucket(
        self,
        transaction_id: str,
        bucket_id: Union[str, Bucket],
        budget_id: Optional[str] = None,
    ) -> Transaction:
        """Move a transaction into a bucket, or back to free-to-spend with ``FREE_TO_SPEND``."""
        if isinstance(bucket_id, Bucket):
            bucket_id = bucket_id.id
        if not transaction_id or not bucket_id:
            raise InvalidArgument("transaction_id and bucket_id are required.")

        segment = FREE_TO_SPEND_SEGMENT if bucket_id == FREE_TO_SPEND else bucket_id
        logger.info("Assigning transaction %s to bucket %s", transaction_id, segment)
        payload = await self.dispatcher.request(
            "POST",
            f"/api/item/swap/{transaction_id}/{segment}",
            json={},
            budget_id=budget_id,
        )
        return _parse_one(Transaction, payload, "/api/item/swap")

    async def update_transaction_note(
        self,
        transaction: Transaction,
        note: Optional[str],
        budget_id: Optional[str] = None,
    ) -> Transaction:
        """Replace a transaction's note and return the updated copy."""
        updated = transaction.model_copy(update={"notes": note})
        await self.dispatcher.request(
            "PUT",
            f"/api/transaction/{transaction.id}",
            params={"remember_category": "false", "remember_name": "false"},
            json=updated.model_dump(mode="json"),
            budget_id=budget_id,
        )
        return updated

    async def refreshes(self, budget_id: Optional[str] = None) -> RefreshesResponse:
        logger.info("Fetching refresh information")
        payload = await self.dispatcher.request("GET", "/api/item/refreshes", budget_id=budget_id)
        return _parse_one(RefreshesResponse, payload or {}, "/api/item/refreshes")

    async def refresh(
        self,
        account_id: str,
        use_premium: bool = False,
        budget_id: Optional[str] = None,
    ) -> str:
        """Ask the server to re-sync a linked item. Returns the idempotency key sent."""
        if not isinstance(account_id, str) or not account_id:
            raise InvalidArgument("account_id must be a non-empty string.")
        if not isinstance(use_premium, bool):
            raise InvalidArgument("use_premium must be a boolean.")

        idempotency_key = str(uuid.uuid4())
        logger.info("Refreshing account %s (premium=%s)", account_id, use_premium)
        await self.dispatcher.request(
            "POST",
            f"/api/item/{account_id}/refresh",
            json={
                "use_premium": use_premium,
                "idempotency_key": idempotency_key,
                "user_initiated": True,
            },
            budget_id=budget_id,
            extra_headers={"Content-Type": "application/json"},
        )
        return idempotency_key

    async def budgets(self) -> List[Budget]:
        logger.info("Fetching budgets")
        payload = await self.dispatcher.request("GET", "/api/context")
        return _parse_items(Budget, payload, "/api/context")

    async def items(self, budget_id: Optional[str] = None) -> List[Item]:
        logger.info("Fetching linked items")
        payload = await self.dispatcher.request("GET", "/api/item", budget_id=budget_id)
        return _parse_items(Item, payload, "/api/item")


def _items(payload: Any) -> List[Dict[str, Any]]:
    if isinstance(payload, dict):
        section = payload.get("items")
        if isinstance(section, list):
            return [entry for entry in section if isinstance(entry, dict)]
    return []


def _parse_one(model: Type[ModelT], payload: Any, path: str) -> ModelT:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise FetchFailure(f"{path} returned an unexpected {model.__name__} payload.", url=path) from exc


def _parse_items(model: Type[ModelT], payload: Any, path: str) -> List[ModelT]:
    return [_parse_one(model, item, path) for item in _items(payload)]
