"""Configuration settings for the service."""
import os
from dataclasses import dataclass, field
from datetime import timedelta, timezone
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Define base directory
BASE_DIR = Path(__file__).parent.parent.parent

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)

# Reserved list name for entries without a list
UNCATEGORIZED_LIST_NAME = "Uncategorized"

# Notification settings
MAX_TIME_SLOTS = 5
DEFAULT_TIME_SLOT = "08:00"
NOTIFICATION_UTC_OFFSET_HOURS = 9  # all scheduling is evaluated in UTC+9


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///braincraft.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


@dataclass
class BotSettings:
    """Telegram bot settings used for push delivery."""
    token: str = os.getenv("TELEGRAM_BOT_TOKEN", "")


@dataclass
class NotificationSettings:
    """Notification scheduling settings."""
    utc_offset_hours: int = int(
        os.getenv("NOTIFICATION_UTC_OFFSET_HOURS", str(NOTIFICATION_UTC_OFFSET_HOURS))
    )
    max_time_slots: int = int(os.getenv("MAX_TIME_SLOTS", str(MAX_TIME_SLOTS)))
    default_time_slot: str = os.getenv("DEFAULT_TIME_SLOT", DEFAULT_TIME_SLOT)
    scheduler_tick_seconds: int = int(os.getenv("SCHEDULER_TICK_SECONDS", "60"))
    sent_mark_retries: int = int(os.getenv("SENT_MARK_RETRIES", "3"))

    @property
    def tz(self) -> timezone:
        """Fixed time zone all time slots are evaluated in."""
        return timezone(timedelta(hours=self.utc_offset_hours))


@dataclass
class WebSettings:
    """HTTP API settings."""
    cron_secret: Optional[str] = os.getenv("CRON_SECRET") or None
    host: str = os.getenv("WEB_HOST", "0.0.0.0")
    port: int = int(os.getenv("WEB_PORT", "5000"))


@dataclass
class MonitoringSettings:
    """Prometheus exporter settings."""
    port: int = int(os.getenv("METRICS_PORT", "0"))


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_bot_settings() -> BotSettings:
    """Get bot settings."""
    return BotSettings()


def get_notification_settings() -> NotificationSettings:
    """Get notification settings."""
    return NotificationSettings()


def get_web_settings() -> WebSettings:
    """Get web settings."""
    return WebSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    bot: BotSettings = field(default_factory=get_bot_settings)
    notification: NotificationSettings = field(default_factory=get_notification_settings)
    web: WebSettings = field(default_factory=get_web_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid.

        A missing bot token is not an error here: it is reported per tick
        by the dispatcher so the HTTP API can still serve settings.
        """
        if not -12 <= self.notification.utc_offset_hours <= 14:
            raise ValueError("NOTIFICATION_UTC_OFFSET_HOURS must be between -12 and 14")

        if self.notification.max_time_slots < 1:
            raise ValueError("MAX_TIME_SLOTS must be positive")

        if self.notification.scheduler_tick_seconds < 1:
            raise ValueError("SCHEDULER_TICK_SECONDS must be positive")

        if self.notification.sent_mark_retries < 1:
            raise ValueError("SENT_MARK_RETRIES must be positive")


# Create global settings instance
settings = Settings()
settings.validate()
