"""Feishu (Lark) app notifier.

Messages go through the IM API with an app access token. The token is
cached and refreshed once ``now >= fetched_at + (expire - 300s)``; the
refresh runs under a lock so concurrent senders trigger a single fetch.
"""

from __future__ import annotations

import asyncio
import base64
import json
from datetime import datetime, timedelta
from typing import Any

import httpx
import structlog

from klaw.clock import Clock, utc_now
from klaw.errors import NotificationError
from klaw.notifications.base import DEFAULT_TIMEOUT, Notifier

_log = structlog.get_logger(component="notifications.feishu")

DEFAULT_BASE_URL = "https://open.feishu.cn"
TOKEN_PATH = "/open-apis/auth/v3/app_access_token/internal"
MESSAGE_PATH = "/open-apis/im/v1/messages"
TOKEN_REFRESH_SLACK = timedelta(seconds=300)


class FeishuNotifier(Notifier):
    """Sends text and rich-post chart messages to one Feishu chat.

    Args:
        app_id:     Feishu app id.
        app_secret: Feishu app secret.
        chat_id:    Receiving chat (``oc_...``).
        base_url:   API host, overridable for Lark or tests.
        timeout:    Per-request deadline in seconds.
        transport:  Optional httpx transport for tests.
        clock:      Wall clock used for token expiry.
    """

    def __init__(
        self,
        app_id: str,
        app_secret: str,
        chat_id: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Clock = utc_now,
    ) -> None:
        if not app_id or not app_secret:
            raise ValueError("Feishu app_id and app_secret must not be empty")
        if not chat_id:
            raise ValueError("Feishu chat_id must not be empty")
        super().__init__(timeout=timeout, transport=transport)
        self._app_id = app_id
        self._app_secret = app_secret
        self._chat_id = chat_id
        self._base_url = base_url.rstrip("/")
        self._clock = clock
        self._token: str | None = None
        self._token_expiry: datetime | None = None
        self._token_lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return "feishu"

    @property
    def token_expiry(self) -> datetime | None:
        return self._token_expiry

    async def access_token(self) -> str:
        """Return a valid app access token, fetching a new one when due."""
        async with self._token_lock:
            if self._token is None or self._token_expiry is None or self._clock() >= self._token_expiry:
                await self._refresh_token()
            assert self._token is not None
            return self._token

    async def _refresh_token(self) -> None:
        fetched_at = self._clock()
        response = await self._post_json(
            f"{self._base_url}{TOKEN_PATH}",
            {"app_id": self._app_id, "app_secret": self._app_secret},
        )
        body = self._decode(response)
        if body.get("code") != 0:
            raise NotificationError(self.name, f"token refresh failed, code {body.get('code')}: {body.get('msg', '')}")
        # The internal endpoint returns the token at the top level; some
        # gateways wrap it in "data".
        data = body.get("data") if isinstance(body.get("data"), dict) else body
        token = data.get("app_access_token")
        if not token:
            raise NotificationError(self.name, "token refresh response has no app_access_token")
        expire = int(data.get("expire") or 0)
        self._token = str(token)
        self._token_expiry = fetched_at + timedelta(seconds=expire) - TOKEN_REFRESH_SLACK
        _log.info("feishu_token_refreshed", expires_at=self._token_expiry.isoformat())

    async def send_text(self, message: str) -> None:
        await self._send("text", {"text": message})

    async def send_chart(self, chart: bytes, title: str) -> None:
        post = {
            "zh_cn": {
                "title": title,
                "content": [
                    [{"tag": "text", "text": title}],
                    [{"tag": "img", "image_key": base64.b64encode(chart).decode("ascii")}],
                ],
            }
        }
        await self._send("post", post)

    async def _send(self, msg_type: str, content: dict[str, Any]) -> None:
        token = await self.access_token()
        response = await self._post_json(
            f"{self._base_url}{MESSAGE_PATH}",
            {
                "receive_id": self._chat_id,
                "msg_type": msg_type,
                "content": json.dumps(content, ensure_ascii=False),
            },
            headers={"Authorization": f"Bearer {token}"},
            params={"receive_id_type": "chat_id"},
        )
        body = self._decode(response)
        if body.get("code", 0) != 0:
            raise NotificationError(self.name, f"send failed, code {body.get('code')}: {body.get('msg', '')}")

    def _decode(self, response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError as exc:
            raise NotificationError(self.name, f"invalid JSON response: {exc}") from exc
        if not isinstance(body, dict):
            raise NotificationError(self.name, "unexpected response shape")
        return body
