"""Lifecycle observers notified by the token manager, dispatcher and fetcher."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)


class ClientObserver:
    """No-op base; subclasses override the hooks they care about."""

    def on_token_refresh(self, success: bool, subject_id: Optional[str] = None, error: Optional[BaseException] = None) -> None:
        pass

    def on_request(self, method: str, url: str, params: Optional[Dict[str, Any]] = None) -> None:
        pass

    def on_response(self, method: str, url: str, status_code: int) -> None:
        pass

    def on_page(self, page: int, fetched: int, total: Optional[int]) -> None:
        pass

    def on_filter_decision(self, transaction_id: str, created_at: Optional[float], since: float, kept: bool) -> None:
        pass

    def on_pagination_stop(self, page: int, reason: str) -> None:
        pass


class LoggingObserver(ClientObserver):
    """Writes lifecycle events to ``logging``; INFO when debug is on, DEBUG otherwise."""

    def __init__(self, debug: bool = False, log: Optional[logging.Logger] = None) -> None:
        self.level = logging.INFO if debug else logging.DEBUG
        self.log = log or logger

    def on_token_refresh(self, success, subject_id=None, error=None):
        if success:
            self.log.log(self.level, "Access token refreshed for subject %s", subject_id)
        else:
            self.log.warning("Access token refresh failed: %s", error)

    def on_request(self, method, url, params=None):
        self.log.log(self.level, "%s %s params=%s", method, url, params)

    def on_response(self, method, url, status_code):
        self.log.log(self.level, "%s %s -> %d", method, url, status_code)

    def on_page(self, page, fetched, total):
        self.log.log(self.level, "Page %d: fetched %d transactions (total=%s)", page, fetched, total)

    def on_filter_decision(self, transaction_id, created_at, since, kept):
        self.log.log(
            self.level,
            "Transaction %s created_at=%s since=%s kept=%s",
            transaction_id,
            created_at,
            since,
            kept,
        )

    def on_pagination_stop(self, page, reason):
        self.log.log(self.level, "Pagination stopped at page %d: %s", page, reason)


@dataclass
class ObservedEvent:
    name: str
    data: Dict[str, Any] = field(default_factory=dict)


class RecordingObserver(ClientObserver):
    """Keeps every event in memory so call sequences can be asserted on."""

    def __init__(self) -> None:
        self.events: List[ObservedEvent] = []

    def _record(self, name: str, **data: Any) -> None:
        self.events.append(ObservedEvent(name, data))

    def names(self) -> List[str]:
        return [event.name for event in self.events]

    def of(self, name: str) -> List[ObservedEvent]:
        return [event for event in self.events if event.name == name]

    def on_token_refresh(self, success, subject_id=None, error=None):
        self._record("token_refresh", success=success, subject_id=subject_id, error=error)

    def on_request(self, method, url, params=None):
        self._record("request", method=method, url=url, params=params)

    def on_response(self, method, url, status_code):
        self._record("response", method=method, url=url, status_code=status_code)

    def on_page(self, page, fetched, total):
        self._record("page", page=page, fetched=fetched, total=total)

    def on_filter_decision(self, transaction_id, created_at, since, kept):
        self._record("filter_decision", transaction_id=transaction_id, created_at=created_at, since=since, kept=kept)

    def on_pagination_stop(self, page, reason):
        self._record("pagination_stop", page=page, reason=reason)


class CompositeObserver(ClientObserver):
    """Fans every event out to several observers, in order."""

    def __init__(self, observers: Sequence[ClientObserver]) -> None:
        self.observers = list(observers)

    def on_token_refresh(self, success, subject_id=None, error=None):
        for observer in self.observers:
            observer.on_token_refresh(success, subject_id, error)

    def on_request(self, method, url, params=None):
        for observer in self.observers:
            observer.on_request(method, url, params)

    def on_response(self, method, url, status_code):
        for observer in self.observers:
            observer.on_response(method, url, status_code)

    def on_page(self, page, fetched, total):
        for observer in self.observers:
            observer.on_page(page, fetched, total)

    def on_filter_decision(self, transaction_id, created_at, since, kept):
        for observer in self.observers:
            observer.on_filter_decision(transaction_id, created_at, since, kept)

    def on_pagination_stop(self, page, reason):
        for observer in self.observers:
            observer.on_pagination_stop(page, reason)
