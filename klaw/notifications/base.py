"""Notifier contract and the fan-out dispatcher.

Notifier            -- ABC every chat platform implements (send_text, send_chart).
NotificationDispatcher -- Calls every notifier in turn; a failing notifier is
                          logged and skipped, never propagated to the caller.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import httpx
import structlog

from klaw.errors import NotificationError

_log = structlog.get_logger(component="notifications.dispatcher")

DEFAULT_TIMEOUT = 10.0


class Notifier(ABC):
    """An outbound chat-delivery endpoint.

    Implementations raise NotificationError on any transport error, non-2xx
    response or platform error code. No retries.

    Args:
        timeout:   Per-request deadline in seconds.
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._timeout = timeout
        self._transport = transport

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier used in logs."""

    @abstractmethod
    async def send_text(self, message: str) -> None:
        """Deliver a plain-text message."""

    @abstractmethod
    async def send_chart(self, chart: bytes, title: str) -> None:
        """Deliver a rendered chart artifact under *title*."""

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def _post_json(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        """POST *payload* as JSON; raise NotificationError unless the answer is 2xx."""
        try:
            async with self._client() as client:
                response = await client.post(url, json=payload, headers=headers, params=params)
        except httpx.TimeoutException as exc:
            raise NotificationError(self.name, f"request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise NotificationError(self.name, f"request failed: {exc}") from exc
        if not response.is_success:
            raise NotificationError(self.name, f"status code {response.status_code}: {response.text[:200]}")
        return response


class NotificationDispatcher:
    """Sends every message to each configured notifier, in order.

    * Never raises: errors from one notifier are logged and the next one is
      still attempted.
    * Awaited by the caller, so a monitoring tick finishes its fan-out before
      the next tick starts.
    """

    def __init__(self, notifiers: Sequence[Notifier] = ()) -> None:
        self._notifiers = list(notifiers)

    @property
    def notifiers(self) -> list[Notifier]:
        return list(self._notifiers)

    def __len__(self) -> int:
        return len(self._notifiers)

    async def send_text(self, message: str) -> int:
        """Fan *message* out; return how many notifiers accepted it."""
        return await self._fan_out("text", lambda n: n.send_text(message))

    async def send_chart(self, chart: bytes, title: str) -> int:
        """Fan a chart out; return how many notifiers accepted it."""
        return await self._fan_out("chart", lambda n: n.send_chart(chart, title), title=title)

    async def _fan_out(self, kind: str, send: Callable[[Notifier], Awaitable[None]], **context: Any) -> int:
        delivered = 0
        for notifier in self._notifiers:
            try:
                await send(notifier)
            except NotificationError as exc:
                _log.warning("notification_failed", notifier=notifier.name, kind=kind, error=exc.detail, **context)
                continue
            except Exception as exc:  # noqa: BLE001
                _log.error(
                    "notification_unexpected_error", notifier=notifier.name, kind=kind, error=str(exc), **context
                )
                continue
            delivered += 1
            _log.info("notification_sent", notifier=notifier.name, kind=kind, **context)
        return delivered
