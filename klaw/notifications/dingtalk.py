"""DingTalk custom-robot notifier (signed webhook).

When a secret is configured every request URL carries ``timestamp`` (ms)
and ``sign``: HMAC-SHA256 over ``"{timestamp}\\n{secret}"`` keyed by the
secret, base64-encoded, then URL-encoded.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
from typing import Any
from urllib.parse import quote_plus

import httpx
import structlog

from klaw.clock import Clock, utc_now
from klaw.errors import NotificationError
from klaw.notifications.base import DEFAULT_TIMEOUT, Notifier

_log = structlog.get_logger(component="notifications.dingtalk")


def sign(timestamp_ms: int, secret: str) -> str:
    """Return the URL-encoded DingTalk signature for *timestamp_ms*."""
    string_to_sign = f"{timestamp_ms}\n{secret}"
    digest = hmac.new(secret.encode("utf-8"), string_to_sign.encode("utf-8"), hashlib.sha256).digest()
    return quote_plus(base64.b64encode(digest).decode("ascii"))


class DingTalkNotifier(Notifier):
    """Posts text and markdown-chart messages to a DingTalk robot webhook.

    Args:
        webhook:   Robot URL, normally ``https://oapi.dingtalk.com/robot/send?access_token=...``.
        secret:    Signing secret (``SEC...``). Empty disables signing.
        timeout:   Per-request deadline in seconds.
        transport: Optional httpx transport for tests.
        clock:     Wall clock used for the signature timestamp.
    """

    def __init__(
        self,
        webhook: str,
        secret: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Clock = utc_now,
    ) -> None:
        if not webhook:
            raise ValueError("DingTalk webhook must not be empty")
        super().__init__(timeout=timeout, transport=transport)
        self._webhook = webhook
        self._secret = secret
        self._clock = clock

    @property
    def name(self) -> str:
        return "dingtalk"

    def signed_url(self, timestamp_ms: int | None = None) -> str:
        if not self._secret:
            return self._webhook
        if timestamp_ms is None:
            timestamp_ms = int(self._clock().timestamp() * 1000)
        separator = "&" if "?" in self._webhook else "?"
        return f"{self._webhook}{separator}timestamp={timestamp_ms}&sign={sign(timestamp_ms, self._secret)}"

    async def send_text(self, message: str) -> None:
        await self._send({"msgtype": "text", "text": {"content": message}})

    async def send_chart(self, chart: bytes, title: str) -> None:
        payload = base64.b64encode(chart).decode("ascii")
        await self._send(
            {
                "msgtype": "markdown",
                "markdown": {
                    "title": title,
                    "text": f"## {title}\n\n![chart](data:image/png;base64,{payload})",
                },
            }
        )

    async def _send(self, body: dict[str, Any]) -> None:
        response = await self._post_json(self.signed_url(), body)
        # The robot API answers 200 with an errcode for rejected messages.
        try:
            result = response.json()
        except ValueError:
            return
        if isinstance(result, dict) and result.get("errcode", 0) != 0:
            raise NotificationError(self.name, f"errcode {result.get('errcode')}: {result.get('errmsg', '')}")
        _log.debug("dingtalk_message_accepted", msgtype=body["msgtype"])
