"""
Shopper notification sinks.

The cart engine reports rejections through ``report_error(message)`` and
never waits for delivery. Sinks:
- LogNotifier: writes the message to the log (default, CLI)
- TelegramNotifier: delivers the message to a Telegram chat with retries
"""

import asyncio
from typing import Optional, Protocol

import httpx

from rocketcart.config import Settings
from rocketcart.errors import ConfigurationError
from rocketcart.logging import get_logger

logger = get_logger(__name__)

# Constants
NO_RESPONSE_BODY = "No response body"
PERMANENT_ERROR_CODES = {400, 401, 403, 404}
TELEGRAM_API_URL = "https://api.telegram.org"
MAX_MESSAGE_LENGTH = 4096


class Notifier(Protocol):
    """Fire-and-forget sink for user-facing failure messages."""

    def report_error(self, message: str) -> None:
        ...


class LogNotifier:
    """Report messages through the logger."""

    def __init__(self, name: str = "rocketcart.shopper") -> None:
        self._logger = get_logger(name)

    def report_error(self, message: str) -> None:
        self._logger.warning(message)


# =============================================================================
# Telegram delivery
# =============================================================================


def _is_permanent_error(status_code: int) -> bool:
    """Check if error is permanent (no retry needed)."""
    return status_code in PERMANENT_ERROR_CODES


def _calculate_backoff_delay(attempt: int, base: float) -> float:
    """Calculate exponential backoff delay."""
    return float(base * (2 ** attempt))


def _truncate_message(text: str, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    """Truncate message to Telegram's limit."""
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + "..."


class TelegramNotifier:
    """
    Deliver messages to a Telegram chat.

    report_error() schedules the delivery on the running event loop and
    returns immediately; failed deliveries are logged, never raised.
    """

    def __init__(
        self,
        token: str,
        chat_id: int,
        retries: int = 2,
        timeout: float = 10.0,
        backoff: float = 0.5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not token:
            raise ConfigurationError("TELEGRAM_TOKEN must be set for Telegram notifications")
        self.chat_id = chat_id
        self.retries = retries
        self.timeout = timeout
        self.backoff = backoff
        self._url = f"{TELEGRAM_API_URL}/bot{token}/sendMessage"
        self._transport = transport
        self._tasks: set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, settings: Settings) -> "TelegramNotifier":
        if settings.telegram_chat_id is None:
            raise ConfigurationError("TELEGRAM_CHAT_ID must be set for Telegram notifications")
        return cls(settings.telegram_token, settings.telegram_chat_id)

    def report_error(self, message: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop, Telegram notification dropped: {message}")
            return
        task = loop.create_task(self.send(message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def send(self, text: str) -> bool:
        """
        Send a message with retry logic.

        Returns:
            True if sent successfully, False otherwise
        """
        payload = {"chat_id": self.chat_id, "text": _truncate_message(text)}
        last_error = None

        async with httpx.AsyncClient(transport=self._transport) as client:
            for attempt in range(self.retries + 1):
                try:
                    response = await client.post(self._url, json=payload, timeout=self.timeout)
                    if response.status_code == 200:
                        logger.debug(f"Notification sent to {self.chat_id}")
                        return True

                    error_text = response.text[:200] if response.text else NO_RESPONSE_BODY
                    logger.warning(
                        f"Telegram API error for {self.chat_id}: status={response.status_code}, response={error_text}"
                    )
                    if _is_permanent_error(response.status_code):
                        return False
                    last_error = f"HTTP {response.status_code}"

                except httpx.TimeoutException:
                    last_error = "Timeout"
                    logger.warning(
                        f"Timeout sending notification to {self.chat_id} (attempt {attempt + 1}/{self.retries + 1})"
                    )
                except httpx.TransportError as e:
                    last_error = f"Connection error: {e}"
                    logger.warning(f"Connection error sending notification to {self.chat_id}: {e}")

                if attempt < self.retries:
                    await asyncio.sleep(_calculate_backoff_delay(attempt, self.backoff))

        logger.error(f"Failed to notify {self.chat_id} after {self.retries + 1} attempts: {last_error}")
        return False

    async def drain(self) -> None:
        """Wait for scheduled deliveries to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


def get_notifier(settings: Settings) -> Notifier:
    """
    Build the sink selected by CART_NOTIFIER.

    Raises:
        ConfigurationError: If the backend is unknown or not configured
    """
    if settings.notifier_backend == "log":
        return LogNotifier()
    if settings.notifier_backend == "telegram":
        return TelegramNotifier.from_settings(settings)
    raise ConfigurationError(f"Unknown notifier backend: {settings.notifier_backend}")


__all__ = [
    "Notifier",
    "LogNotifier",
    "TelegramNotifier",
    "get_notifier",
]
