from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential
from tenacity.wait import wait_base

from .errors import FetchFailure
from .observers import ClientObserver
from .token_manager import TokenManager

logger = logging.getLogger(__name__)

# Sent as the context header when no budget is selected; the server then uses the oldest budget.
NO_CONTEXT = "null"

WEB_APP_ORIGIN = "https://app.dasbudget.com"
CLIENT_PLATFORM = "web"
CLIENT_BUILD = "179"
CLIENT_VERSION = "0.9.5"

RETRYABLE_EXCEPTIONS = (
    httpx.TimeoutException,
    httpx.ConnectError,
    httpx.NetworkError,
)


def _is_retryable(exc: BaseException) -> bool:
    """Retry only on transport errors and HTTP 5xx."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return isinstance(exc, RETRYABLE_EXCEPTIONS)


class TenantContext:
    """Process-wide default budget; ``None`` means the server's default budget."""

    def __init__(self, budget_id: Optional[str] = None) -> None:
        self.budget_id = budget_id

    def set(self, budget_id: Optional[str]) -> None:
        self.budget_id = budget_id

    def clear(self) -> None:
        self.budget_id = None


class ApiDispatcher:
    """Assembles per-request headers and issues single authenticated requests."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        tokens: TokenManager,
        api_base_url: str,
        context: Optional[TenantContext] = None,
        observer: Optional[ClientObserver] = None,
        max_attempts: int = 1,
        retry_wait: Optional[wait_base] = None,
    ) -> None:
        self._http = http
        self._tokens = tokens
        self.api_base_url = api_base_url.rstrip("/")
        self.context = context or TenantContext()
        self._observer = observer or ClientObserver()
        self._retry = retry(
            stop=stop_after_attempt(max_attempts),
            wait=retry_wait or wait_exponential(multiplier=1, min=1, max=5),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )

    def resolve_context(self, override: Optional[str] = None) -> str:
        if override is not None:
            return override
        if self.context.budget_id is not None:
            return self.context.budget_id
        return NO_CONTEXT

    def build_headers(self, context: str) -> Dict[str, str]:
        """Header block shared by every authenticated call."""
        return {
            "Authorization": f"Bearer {self._tokens.access_token}",
            "Accept": "*/*",
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
            "Origin": WEB_APP_ORIGIN,
            "Referer": f"{WEB_APP_ORIGIN}/",
            "X-Das-Context-Id": context,
            "X-Das-Platform": CLIENT_PLATFORM,
            "X-Das-Build": CLIENT_BUILD,
            "X-Das-Version": CLIENT_VERSION,
        }

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        budget_id: Optional[str] = None,
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Send one request and return the decoded JSON body (``None`` when empty)."""
        await self._tokens.ensure_valid()

        headers = self.build_headers(self.resolve_context(budget_id))
        if extra_headers:
            headers.update(extra_headers)
        url = f"{self.api_base_url}{path}"

        @self._retry
        async def _send() -> httpx.Response:
            self._observer.on_request(method, url, params)
            response = await self._http.request(method, url, params=params, json=json, headers=headers)
            self._observer.on_response(method, url, response.status_code)
            response.raise_for_status()
            return response

        try:
            response = await _send()
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            logger.error("%s %s failed with status %s", method, url, status_code)
            raise FetchFailure(
                f"{method} {path} failed with status {status_code}.",
                method=method,
                url=url,
                status_code=status_code,
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("%s %s failed: %s", method, url, exc)
            raise FetchFailure(f"{method} {path} failed: {exc}", method=method, url=url) from exc

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise FetchFailure(
                f"{method} {path} returned a non-JSON body.",
                method=method,
                url=url,
                status_code=response.status_code,
            ) from exc
