"""Service triggering notification ticks on a fixed schedule."""
import asyncio
import logging
from datetime import datetime, UTC
from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session

from braincraft.config import settings
from braincraft.models.base import SessionLocal
from braincraft.services.dispatch_service import ConfigurationError, DispatchResult, Dispatcher
from braincraft.services.push_service import TelegramPushService

logger = logging.getLogger(__name__)

# Wake shortly after the boundary so the tick lands inside the new minute
TICK_OFFSET_SECONDS = 1


def seconds_until_next_tick(now: datetime, interval: int) -> float:
    """Seconds from ``now`` to the next multiple of ``interval`` since the epoch."""
    elapsed = now.timestamp() % interval
    return interval - elapsed


class SchedulerService:
    """Invokes the dispatcher once per tick interval.

    The dispatcher itself keeps no state between ticks; this loop is only
    the trigger, like the HTTP cron endpoint.
    """

    def __init__(
        self,
        push_service: TelegramPushService,
        session_factory: Callable[[], Session] = SessionLocal,
        interval: Optional[int] = None,
    ):
        """Initialize the service with a push service and a session factory."""
        self.push_service = push_service
        self.session_factory = session_factory
        self.interval = interval or settings.notification.scheduler_tick_seconds
        self.tasks: Dict[str, asyncio.Task] = {}
        self.running = False

    async def start(self) -> None:
        """Start the scheduler service."""
        if self.running:
            return

        self.running = True
        logger.info("Starting scheduler service (tick every %ds)...", self.interval)

        self.tasks["notifications"] = asyncio.create_task(self._run_notifications())

    async def stop(self) -> None:
        """Stop the scheduler service."""
        if not self.running:
            return

        self.running = False
        logger.info("Stopping scheduler service...")

        # Cancel all tasks
        for task in self.tasks.values():
            task.cancel()

        # Wait for tasks to complete
        await asyncio.gather(*self.tasks.values(), return_exceptions=True)
        self.tasks.clear()

    async def run_once(self, now: Optional[datetime] = None) -> Optional[DispatchResult]:
        """Run a single tick with a fresh database session."""
        db = self.session_factory()
        try:
            result = await Dispatcher(db, self.push_service).run_tick(now)
        except ConfigurationError as e:
            logger.error("Skipping notification tick: %s", str(e))
            return None
        finally:
            db.close()

        if result.results:
            logger.info(
                "Tick %s %s: %d processed, %d failed",
                result.date,
                result.time_slot,
                result.sent,
                len(result.failed),
            )
        return result

    async def _run_notifications(self) -> None:
        """Run notification task."""
        while self.running:
            try:
                await asyncio.sleep(
                    seconds_until_next_tick(datetime.now(UTC), self.interval) + TICK_OFFSET_SECONDS
                )
                await self.run_once()

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Error in notification task: %s", str(e))
                await asyncio.sleep(self.interval)
