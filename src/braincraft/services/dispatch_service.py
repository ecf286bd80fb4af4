"""Dispatcher running one notification tick across all due users."""
import logging
import time
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from braincraft import monitoring
from braincraft.models.models import normalize_list_name
from braincraft.services.list_settings_service import ListSettingsService
from braincraft.services.notification_service import NotificationService, build_message
from braincraft.services.preference_service import PreferenceService
from braincraft.services.push_service import ConfigurationError, TelegramPushService
from braincraft.services.time_slots import format_time_slot, notification_now
from braincraft.services.word_service import WordService

logger = logging.getLogger(__name__)


class NothingToSendError(ValueError):
    """The user has no entries eligible for a reminder."""


@dataclass
class UserDispatchResult:
    """Outcome for one user in a tick.

    ``ok`` is True when the reminder was pushed, or when there was nothing
    to push and the slot was marked sent anyway.
    """
    user_id: int
    ok: bool


@dataclass
class DispatchResult:
    """Summary of one tick."""
    time_slot: str
    date: date
    results: List[UserDispatchResult] = field(default_factory=list)

    @property
    def sent(self) -> int:
        """Number of users processed in the tick."""
        return len(self.results)

    @property
    def failed(self) -> List[int]:
        """Users whose reminder was not delivered."""
        return [result.user_id for result in self.results if not result.ok]

    def to_dict(self) -> Dict[str, Any]:
        """Response body of the cron endpoint."""
        return {
            "sent": self.sent,
            "results": [{"userId": r.user_id, "ok": r.ok} for r in self.results],
        }


class Dispatcher:
    """Selects due users, builds their reminders, pushes, and marks them sent."""

    def __init__(self, db: Session, push_service: Optional[TelegramPushService] = None):
        """Initialize the dispatcher with a database session and push service."""
        self.db = db
        self.push_service = push_service or TelegramPushService()
        self.notification_service = NotificationService(db)
        self.preference_service = PreferenceService(db)
        self.list_settings = ListSettingsService(db)
        self.word_service = WordService(db)

    def _ensure_configured(self) -> None:
        if not self.push_service.is_configured:
            monitoring.error_count.labels(error_type="configuration").inc()
            raise ConfigurationError("TELEGRAM_BOT_TOKEN not set")

    def build_user_message(self, telegram_id: int) -> str:
        """Load a user's entries and preferences and build the reminder text."""
        entries = self.word_service.list_entries(telegram_id)
        list_names = {normalize_list_name(entry.list_name) for entry in entries}
        list_prefs = self.list_settings.get_list_notification_map(telegram_id, list_names)
        idiom_enabled = self.preference_service.is_idiom_notifications_enabled(telegram_id)
        return build_message(entries, list_prefs, idiom_enabled)

    async def run_tick(self, now: Optional[datetime] = None) -> DispatchResult:
        """Process every user due at ``now`` (default: current time).

        Raises ConfigurationError before touching any user when push
        delivery is not configured. Per-user failures are recorded in the
        result and never abort the tick.
        """
        self._ensure_configured()

        started = time.monotonic()
        local_now = notification_now(now)
        today = local_now.date()
        time_slot = format_time_slot(local_now.hour, local_now.minute)
        result = DispatchResult(time_slot=time_slot, date=today)

        user_ids = self.notification_service.select_eligible_users(
            local_now.hour, local_now.minute, today
        )
        monitoring.eligible_users.set(len(user_ids))
        if user_ids:
            logger.info("Dispatching %s reminders to %d user(s)", time_slot, len(user_ids))
            async with self.push_service:
                for telegram_id in sorted(user_ids):
                    ok = await self._process_user(telegram_id, today, time_slot)
                    result.results.append(UserDispatchResult(user_id=telegram_id, ok=ok))

        monitoring.tick_duration.observe(time.monotonic() - started)
        if result.failed:
            logger.warning(
                "Tick %s %s finished with %d failure(s): %s",
                today,
                time_slot,
                len(result.failed),
                result.failed,
            )
        return result

    async def _process_user(self, telegram_id: int, today: date, time_slot: str) -> bool:
        try:
            message = self.build_user_message(telegram_id)

            if not message:
                logger.info("Nothing to send to user %d at %s; marking sent", telegram_id, time_slot)
                monitoring.notifications_skipped.inc()
            else:
                if not await self.push_service.send(telegram_id, message):
                    monitoring.notifications_failed.inc()
                    return False
                monitoring.notifications_sent.inc()

            self.preference_service.mark_notification_sent(telegram_id, today, time_slot)
            return True

        except Exception as e:
            # Handle unexpected errors
            self.db.rollback()
            monitoring.error_count.labels(error_type=type(e).__name__).inc()
            logger.error(
                "Unexpected error dispatching %s to user %d: %s",
                time_slot,
                telegram_id,
                str(e),
                exc_info=True,
            )
            return False

    async def send_now(self, telegram_id: int) -> bool:
        """Push the user's reminder immediately, ignoring slots and sent-tracking."""
        self._ensure_configured()

        message = self.build_user_message(telegram_id)
        if not message:
            if self.word_service.list_entries(telegram_id):
                raise NothingToSendError("No entries in lists with notifications enabled")
            raise NothingToSendError("No entries registered")

        async with self.push_service:
            ok = await self.push_service.send(telegram_id, message)
        if ok:
            monitoring.notifications_sent.inc()
        else:
            monitoring.notifications_failed.inc()
        return ok
