"""Notification system for klaw.

Delivers alert messages and monitoring charts to chat platforms.

Exports:
    Notifier               -- Abstract base for every chat platform.
    NotificationDispatcher -- Sends to all notifiers in order, isolating failures.
    DingTalkNotifier       -- Signed custom-robot webhook.
    FeishuNotifier         -- App-token IM API.
    build_notification_dispatcher -- Factory used by the application bootstrap.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from klaw.notifications.base import NotificationDispatcher, Notifier
from klaw.notifications.dingtalk import DingTalkNotifier
from klaw.notifications.feishu import FeishuNotifier

if TYPE_CHECKING:
    from klaw.models.config import MessagingConfig

_log = structlog.get_logger(component="notifications")

__all__ = [
    "DingTalkNotifier",
    "FeishuNotifier",
    "NotificationDispatcher",
    "Notifier",
    "build_notification_dispatcher",
]


def build_notification_dispatcher(config: MessagingConfig) -> NotificationDispatcher:
    """Build a dispatcher with every enabled and correctly configured platform.

    Order is fixed: DingTalk first, then Feishu. A platform that is enabled
    but misconfigured is skipped with a warning rather than failing startup.
    """
    notifiers: list[Notifier] = []

    dingtalk = config.dingtalk
    if dingtalk.enabled:
        try:
            notifiers.append(
                DingTalkNotifier(webhook=dingtalk.webhook, secret=dingtalk.secret, timeout=dingtalk.timeout)
            )
            _log.info("dingtalk_notifier_enabled", signed=bool(dingtalk.secret))
        except ValueError as exc:
            _log.warning("dingtalk_notifier_disabled", reason=str(exc))

    feishu = config.feishu
    if feishu.enabled:
        try:
            notifiers.append(
                FeishuNotifier(
                    app_id=feishu.app_id,
                    app_secret=feishu.app_secret,
                    chat_id=feishu.chat_id,
                    base_url=feishu.base_url,
                    timeout=feishu.timeout,
                )
            )
            _log.info("feishu_notifier_enabled", chat_id=feishu.chat_id)
        except ValueError as exc:
            _log.warning("feishu_notifier_disabled", reason=str(exc))

    if not notifiers:
        _log.info("no_notifiers_configured")

    return NotificationDispatcher(notifiers)
