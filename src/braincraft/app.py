"""Main application: database, metrics, and the notification scheduler."""
import asyncio
import logging
from typing import Optional

from braincraft.config import settings
from braincraft.models.base import init_db
from braincraft.monitoring import start_monitoring
from braincraft.services.push_service import TelegramPushService
from braincraft.services.scheduler_service import SchedulerService


class BraincraftApp:
    """Main application class."""

    def __init__(self, push_service: Optional[TelegramPushService] = None):
        """Initialize the application."""
        self.push_service = push_service
        self.scheduler: Optional[SchedulerService] = None
        self.running = False
        self.logger = logging.getLogger(__name__)

    async def start(self) -> None:
        """Start the application."""
        if self.running:
            return

        try:
            init_db()
            self.logger.info("Database initialized")

            if settings.monitoring.port:
                start_monitoring(settings.monitoring.port)
                self.logger.info("Metrics exposed on port %d", settings.monitoring.port)

            if self.push_service is None:
                self.push_service = TelegramPushService()
            if not self.push_service.is_configured:
                self.logger.warning("TELEGRAM_BOT_TOKEN not set; ticks will be skipped")

            self.scheduler = SchedulerService(self.push_service)
            await self.scheduler.start()
            self.logger.info("Scheduler service started")

            self.running = True

        except Exception as e:
            self.logger.error("Failed to start application: %s", str(e))
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop the application."""
        if self.scheduler:
            await self.scheduler.stop()
            self.scheduler = None
            self.logger.info("Scheduler service stopped")

        self.running = False

    async def serve_forever(self) -> None:
        """Start and keep running until cancelled."""
        await self.start()
        try:
            while True:
                await asyncio.sleep(1)
        except asyncio.CancelledError:
            pass
        finally:
            self.logger.info("Cleaning up...")
            await self.stop()
