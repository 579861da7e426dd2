from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from .errors import AuthenticationFailure
from .observers import ClientObserver

logger = logging.getLogger(__name__)

# Refresh this long before the reported expiry so a token never lapses mid-request.
REFRESH_MARGIN_SECONDS = 5 * 60
GRANT_TYPE = "refresh_token"


@dataclass(frozen=True)
class Credential:
    access_token: Optional[str] = None
    expires_at: Optional[float] = None
    subject_id: Optional[str] = None


class TokenManager:
    """Owns the bearer credential and the refresh protocol against the identity endpoint."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        refresh_token: str,
        api_key: str,
        identity_base_url: str,
        observer: Optional[ClientObserver] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not refresh_token or not api_key:
            raise ValueError("refresh_token and api_key are required.")

        self._http = http
        self._refresh_token = refresh_token
        self._api_key = api_key
        self.identity_base_url = identity_base_url.rstrip("/")
        self._observer = observer or ClientObserver()
        self._clock = clock
        self._credential = Credential()
        self._refresh_lock = asyncio.Lock()

    @property
    def credential(self) -> Credential:
        return self._credential

    @property
    def access_token(self) -> Optional[str]:
        return self._credential.access_token

    @property
    def expires_at(self) -> Optional[float]:
        return self._credential.expires_at

    @property
    def subject_id(self) -> Optional[str]:
        return self._credential.subject_id

    @property
    def has_token(self) -> bool:
        return self._credential.access_token is not None

    def needs_refresh(self) -> bool:
        credential = self._credential
        if not credential.access_token or credential.expires_at is None:
            return True
        return self._clock() >= credential.expires_at - REFRESH_MARGIN_SECONDS

    async def ensure_valid(self) -> None:
        """Refresh the credential if it is missing or inside the safety margin."""
        if not self.needs_refresh():
            return

        async with self._refresh_lock:
            # Another task may have refreshed while this one waited on the lock.
            if self.needs_refresh():
                await self._refresh_unlocked()

    async def refresh(self) -> None:
        """Unconditionally exchange the refresh secret for a new access token."""
        async with self._refresh_lock:
            await self._refresh_unlocked()

    async def _refresh_unlocked(self) -> None:
        url = f"{self.identity_base_url}/v1/token"
        logger.info("Requesting new access token from %s", url)

        try:
            response = await self._http.post(
                url,
                params={"key": self._api_key},
                json={"grant_type": GRANT_TYPE, "refresh_token": self._refresh_token},
            )
            response.raise_for_status()
            payload = response.json()
            access_token = payload["access_token"]
            expires_in = float(payload["expires_in"])
            subject_id = payload.get("user_id")
        except httpx.HTTPStatusError as exc:
            logger.error("Token refresh rejected with status %s", exc.response.status_code)
            self._observer.on_token_refresh(False, error=exc)
            raise AuthenticationFailure(
                f"Token refresh rejected with status {exc.response.status_code}.",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Token refresh failed: %s", exc)
            self._observer.on_token_refresh(False, error=exc)
            raise AuthenticationFailure(f"Token refresh failed: {exc}") from exc
        except (KeyError, TypeError, ValueError) as exc:
            logger.error("Token refresh returned a malformed payload: %s", exc)
            self._observer.on_token_refresh(False, error=exc)
            raise AuthenticationFailure("Token refresh returned a malformed payload.") from exc

        if not access_token:
            self._observer.on_token_refresh(False)
            raise AuthenticationFailure("Token refresh returned an empty access token.")

        self._credential = Credential(
            access_token=str(access_token),
            expires_at=self._clock() + expires_in,
            subject_id=str(subject_id) if subject_id is not None else None,
        )
        logger.info("Successfully obtained new access token.")
        self._observer.on_token_refresh(True, subject_id=self._credential.subject_id)
