"""Push delivery through the Telegram bot."""
import logging
from typing import Optional

from telegram import Bot
from telegram.error import Forbidden, BadRequest, InvalidToken, TelegramError

from braincraft.config import settings

logger = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Push delivery is not configured; no user can be processed."""


class TelegramPushService:
    """Sends reminder texts to users' Telegram chats."""

    def __init__(self, bot: Optional[Bot] = None, token: Optional[str] = None):
        """Use the given bot, or build one from the configured token."""
        if bot is None:
            token = token if token is not None else settings.bot.token
            bot = Bot(token) if token else None
        self.bot = bot

    @property
    def is_configured(self) -> bool:
        return self.bot is not None

    async def __aenter__(self) -> "TelegramPushService":
        if self.bot is None:
            raise ConfigurationError("TELEGRAM_BOT_TOKEN not set")
        try:
            await self.bot.initialize()
        except InvalidToken as e:
            raise ConfigurationError(f"Invalid TELEGRAM_BOT_TOKEN: {e}") from e
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.bot.shutdown()

    async def send(self, telegram_id: int, text: str) -> bool:
        """Send one plain-text message. Returns False on any Telegram error."""
        if self.bot is None:
            logger.error("Cannot send to user %d: TELEGRAM_BOT_TOKEN not set", telegram_id)
            return False

        try:
            await self.bot.send_message(chat_id=telegram_id, text=text)
        except (Forbidden, BadRequest) as e:
            if self._is_user_blocked_error(e):
                logger.warning(
                    "User %d cannot receive messages (bot blocked or chat missing): %s",
                    telegram_id,
                    str(e),
                )
            else:
                logger.error("Telegram rejected message to user %d: %s", telegram_id, str(e))
            return False
        except TelegramError as e:
            # Handle other Telegram errors (network issues, etc.)
            logger.error("Telegram error sending to user %d: %s", telegram_id, str(e))
            return False

        logger.info("Sent message to user %d", telegram_id)
        return True

    def _is_user_blocked_error(self, error: Exception) -> bool:
        """Check if the error indicates the user blocked or never started the bot."""
        error_str = str(error).lower()

        blocked_patterns = [
            "bot was blocked by the user",
            "forbidden: bot was blocked",
            "forbidden: user is deactivated",
            "bot can't initiate conversation",
            "chat not found",
            "user not found",
        ]

        return any(pattern in error_str for pattern in blocked_patterns)
