"""Data models for the DasBudget REST API."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

FREE_TO_SPEND = "FREE_TO_SPEND"
# Path segment the swap endpoint expects for the free-to-spend pool.
FREE_TO_SPEND_SEGMENT = "fts"

BucketKind = Literal["expense", "goal", "vault"]


class ApiModel(BaseModel):
    """Base for server payloads; unknown fields are kept as-is."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class Category(ApiModel):
    id: int
    name: Optional[str] = None
    emoji: Optional[str] = None
    folder_id: Optional[int] = None
    folder_name: Optional[str] = None


class Transaction(ApiModel):
    """A single transaction. Only ``id`` and ``created_at`` are required."""

    id: str
    created_at: str
    updated_at: Optional[str] = None
    name: Optional[str] = None
    notes: Optional[str] = None
    amount: Optional[str] = None
    pending: Optional[bool] = None
    bucket_id: Optional[str] = None
    account_id: Optional[str] = None
    category_id: Optional[int] = None
    posted_date: Optional[str] = None
    authorized_date: Optional[str] = None
    context_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @property
    def created_at_epoch(self) -> Optional[float]:
        return parse_timestamp(self.created_at)

    @property
    def merchant_name(self) -> Optional[str]:
        if isinstance(self.metadata, dict):
            return self.metadata.get("merchant_name")
        return None


class TransactionPage(ApiModel):
    transactions: List[Transaction] = Field(default_factory=list)
    total: int = 0
    page: Optional[int] = None
    limit: Optional[int] = None


class Bucket(ApiModel):
    id: str
    name: Optional[str] = None
    kind: Optional[BucketKind] = None
    notes: Optional[str] = None
    target_amount: Optional[str] = None
    current_amount: Optional[str] = None
    contribution: Optional[str] = None
    paused: Optional[bool] = None
    off_track: Optional[bool] = None
    schedule_date: Optional[str] = None
    name_clean: Optional[str] = None


class Account(ApiModel):
    id: str
    name: Optional[str] = None
    official_name: Optional[str] = None
    type: Optional[str] = None
    mask: Optional[str] = None
    available_balance: Optional[str] = None
    current_balance: Optional[str] = None
    active: Optional[bool] = None
    spendable: Optional[bool] = None
    is_owner: Optional[bool] = None
    item_id: Optional[str] = None


class Budget(ApiModel):
    """A budget, called a "context" by the API."""

    id: str
    name: Optional[str] = None
    name_clean: Optional[str] = None
    user_id: Optional[str] = None
    subscription_id: Optional[str] = None
    created_at: Optional[str] = None


class Item(ApiModel):
    """A linked institution connection."""

    id: str
    institution_id: Optional[str] = None
    institution_name: Optional[str] = None
    syncing: Optional[bool] = None
    needs_action: Optional[bool] = None
    last_sync: Optional[str] = None
    can_refresh: Optional[bool] = None
    accounts: Optional[List[Account]] = None


class ItemRefresh(ApiModel):
    id: str
    institution_name: Optional[str] = None
    refresh_cost: Optional[int] = None
    can_refresh: Optional[bool] = None
    last_provider_sync: Optional[str] = None
    last_das_sync: Optional[str] = None


class RefreshesResponse(ApiModel):
    credit_balance: Optional[int] = None
    refresh_balance: Optional[int] = None
    has_premium_refreshes: Optional[bool] = None
    can_manage_refreshes: Optional[bool] = None
    premium_rolling_days: Optional[int] = None
    premium_rolling_credits: Optional[int] = None
    next_credits: List[str] = Field(default_factory=list)
    item_refreshes: List[ItemRefresh] = Field(default_factory=list)


def parse_timestamp(raw_value: Any) -> Optional[float]:
    """Convert an ISO-8601 timestamp to epoch seconds. Naive values are UTC."""
    if not isinstance(raw_value, str):
        return None

    value = raw_value.strip()
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()
