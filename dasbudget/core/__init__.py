"""Core package exposing the client, its collaborators and the API models."""

from .client import DasBudget
from .data_models import (
    FREE_TO_SPEND,
    Account,
    Bucket,
    Budget,
    Item,
    ItemRefresh,
    RefreshesResponse,
    Transaction,
    TransactionPage,
)
from .dispatcher import ApiDispatcher, TenantContext
from .errors import AuthenticationFailure, DasBudgetError, FetchFailure, InvalidArgument
from .observers import ClientObserver, CompositeObserver, LoggingObserver, RecordingObserver
from .pagination import PAGE_SIZE, PaginatedFetcher
from .token_manager import Credential, TokenManager

__all__ = [
    "DasBudget",
    "TokenManager",
    "Credential",
    "ApiDispatcher",
    "TenantContext",
    "PaginatedFetcher",
    "PAGE_SIZE",
    "FREE_TO_SPEND",
    "Transaction",
    "TransactionPage",
    "Bucket",
    "Account",
    "Budget",
    "Item",
    "ItemRefresh",
    "RefreshesResponse",
    "DasBudgetError",
    "AuthenticationFailure",
    "InvalidArgument",
    "FetchFailure",
    "ClientObserver",
    "LoggingObserver",
    "RecordingObserver",
    "CompositeObserver",
]
