"""
Telegram notification service.

Sends opportunity and volume alerts to the configured chat.
"""

from typing import Optional

from telegram import Bot
from telegram.error import TelegramError

from arbscout.core.config import Settings, get_settings
from arbscout.core.logging import get_logger

logger = get_logger("telegram")


class TelegramService:
    """
    Telegram notification service.

    Sends messages to a configured chat using a bot.
    """

    def __init__(
        self,
        bot_token: Optional[str] = None,
        chat_id: Optional[str] = None,
        enabled: bool = True,
        settings: Optional[Settings] = None,
        bot: Optional[Bot] = None,
    ):
        settings = settings or get_settings()

        self.bot_token = bot_token or settings.telegram_bot_token
        self.chat_id = chat_id or settings.telegram_chat_id
        self.enabled = enabled and settings.telegram_enabled

        self._bot = bot

        if self.enabled and (not self.bot_token or not self.chat_id):
            logger.warning("Telegram enabled but credentials not configured")
            self.enabled = False

    def _get_bot(self) -> Bot:
        """Lazy-initialize Telegram bot."""
        if self._bot is None:
            self._bot = Bot(token=self.bot_token)
        return self._bot

    async def send_message_async(
        self,
        text: str,
        parse_mode: str = "HTML",
    ) -> bool:
        """
        Send message asynchronously.

        Args:
            text: Message text
            parse_mode: Parse mode (HTML, Markdown, None)

        Returns:
            True if sent successfully
        """
        if not self.enabled:
            logger.debug("Telegram disabled, skipping message")
            return False

        try:
            await self._get_bot().send_message(
                chat_id=self.chat_id,
                text=text,
                parse_mode=parse_mode,
            )
            logger.info("Telegram message sent")
            return True
        except TelegramError as e:
            logger.warning(f"Failed to send Telegram message: {e}")
            return False


def create_telegram_service(
    settings: Optional[Settings] = None,
) -> TelegramService:
    """Create Telegram service from settings."""
    return TelegramService(settings=settings)
