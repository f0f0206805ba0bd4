"""Notification delivery adapters."""

import logging
from dataclasses import dataclass

import httpx

from peak_performance.services.notifications import Notification, Notifier

_logger = logging.getLogger(__name__)


@dataclass
class HttpxTelegramNotifier(Notifier):
    """Delivers notifications as Telegram messages using httpx."""

    bot_token: str
    chat_id: int
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, bot_token: str, chat_id: int) -> "HttpxTelegramNotifier":
        """Create a notifier with a managed httpx session."""
        return cls(
            bot_token=bot_token, chat_id=chat_id, http_client=httpx.AsyncClient()
        )

    async def send(self, notification: Notification) -> None:
        """Send the notification using Telegram's sendMessage API."""
        url = f"https://api.telegram.org/bot{self.bot_token}/sendMessage"
        payload: dict[str, object] = {
            "chat_id": self.chat_id,
            "text": format_notification(notification),
            "disable_notification": notification.sound is None,
        }
        response = await self.http_client.post(url, json=payload, timeout=10)
        response.raise_for_status()

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()


@dataclass
class LoggingNotifier(Notifier):
    """Writes notifications to the application log."""

    async def send(self, notification: Notification) -> None:
        _logger.info("Notification: %s", format_notification(notification))

    async def close(self) -> None:
        return None


def format_notification(notification: Notification) -> str:
    lines = [notification.title]
    if notification.subtitle:
        lines.append(notification.subtitle)
    lines.append(notification.body)
    return "\n".join(lines)
