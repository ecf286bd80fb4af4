"""Test configuration."""
import os
from typing import Generator
from unittest.mock import AsyncMock, Mock

import pytest

# Set test environment before any imports
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TELEGRAM_BOT_TOKEN"] = ""
os.environ.pop("CRON_SECRET", None)

# Import after environment setup
from faker import Faker
from sqlalchemy.orm import Session
from telegram import Bot

from braincraft.models.base import Base, SessionLocal, engine
import braincraft.models.models  # noqa: F401
from braincraft.services.push_service import TelegramPushService

fake = Faker()


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def telegram_id() -> int:
    """A random Telegram chat id."""
    return fake.unique.random_int(min=1000, max=10**9)


@pytest.fixture
def mock_bot() -> Mock:
    """Create a mock Telegram bot."""
    bot = Mock(spec=Bot)
    bot.token = "test_token"
    bot.initialize = AsyncMock()
    bot.shutdown = AsyncMock()
    bot.send_message = AsyncMock()
    return bot


@pytest.fixture
def push_service(mock_bot: Mock) -> TelegramPushService:
    """Push service backed by the mock bot."""
    return TelegramPushService(bot=mock_bot)
