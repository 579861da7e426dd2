from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

DEFAULT_API_BASE_URL = "https://api.dasbudget.com"
DEFAULT_IDENTITY_BASE_URL = "https://securetoken.googleapis.com"

_TRUTHY = {"1", "true", "yes", "on"}


class ClientConfig(BaseModel):
    """Everything the SDK needs at construction time."""

    refresh_token: str
    api_key: str
    debug: bool = False
    budget_id: Optional[str] = None
    api_base_url: str = DEFAULT_API_BASE_URL
    identity_base_url: str = DEFAULT_IDENTITY_BASE_URL
    timeout_seconds: float = Field(default=20.0, gt=0)
    # Resource calls only; token refresh is never retried.
    max_attempts: int = Field(default=1, ge=1)

    @field_validator("refresh_token", "api_key")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("refresh_token and api_key are required.")
        return value

    @field_validator("api_base_url", "identity_base_url")
    @classmethod
    def _strip_slash(cls, value: str) -> str:
        return value.rstrip("/")


def load_config(env_file: Optional[Union[str, Path]] = None, **overrides) -> ClientConfig:
    """Build a ``ClientConfig`` from ``DASBUDGET_*`` environment variables.

    A ``.env`` file is loaded first (the given path, or one found from the
    working directory); variables already set in the process win. Keyword
    overrides win over both.
    """
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    values = {
        "refresh_token": os.getenv("DASBUDGET_REFRESH_TOKEN", ""),
        "api_key": os.getenv("DASBUDGET_API_KEY", ""),
        "debug": os.getenv("DASBUDGET_DEBUG", "").strip().lower() in _TRUTHY,
        "budget_id": os.getenv("DASBUDGET_BUDGET_ID") or None,
        "api_base_url": os.getenv("DASBUDGET_API_BASE_URL", DEFAULT_API_BASE_URL),
        "identity_base_url": os.getenv("DASBUDGET_IDENTITY_BASE_URL", DEFAULT_IDENTITY_BASE_URL),
        "timeout_seconds": float(os.getenv("DASBUDGET_TIMEOUT_SECONDS", "20")),
        "max_attempts": int(os.getenv("DASBUDGET_MAX_ATTEMPTS", "1")),
    }
    values.update(overrides)
    return ClientConfig(**values)
