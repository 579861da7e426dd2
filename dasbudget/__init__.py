"""Async Python client for the DasBudget personal-budgeting API."""

from .config import ClientConfig, load_config
from .core import (
    FREE_TO_SPEND,
    AuthenticationFailure,
    DasBudget,
    DasBudgetError,
    FetchFailure,
    InvalidArgument,
)

__version__ = "0.1.0"

__all__ = [
    "DasBudget",
    "ClientConfig",
    "load_config",
    "FREE_TO_SPEND",
    "DasBudgetError",
    "AuthenticationFailure",
    "InvalidArgument",
    "FetchFailure",
]
