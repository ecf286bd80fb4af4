"""HTTP API: cron trigger, notification settings, lists and entries."""
import asyncio
import hmac
import logging
import threading
from typing import Callable, Optional

from flask import Flask, g, jsonify, request
from sqlalchemy.orm import Session

from braincraft.config import settings
from braincraft.models.base import SessionLocal
from braincraft.models.models import EntryType
from braincraft.services.dispatch_service import ConfigurationError, Dispatcher, NothingToSendError
from braincraft.services.list_settings_service import ListSettingsService
from braincraft.services.notification_service import build_registration_message
from braincraft.services.preference_service import DuplicateTimeSlotError, PreferenceService
from braincraft.services.push_service import TelegramPushService
from braincraft.services.word_service import WordService

logger = logging.getLogger(__name__)

# JSON field name -> WordService keyword
ENTRY_FIELDS = {
    "text": "text",
    "meaning": "meaning",
    "example": "example",
    "quizPrompt": "quiz_prompt",
    "quizAnswer": "quiz_answer",
    "listName": "list_name",
}


def _error(message: str, status: int, **extra):
    body = {"error": message}
    body.update(extra)
    return jsonify(body), status


def _is_authorized_cron_request(secret: Optional[str]) -> bool:
    if not secret:
        return True
    header = request.headers.get("Authorization", "")
    return hmac.compare_digest(header.encode(), f"Bearer {secret}".encode())


def create_app(
    session_factory: Callable[[], Session] = SessionLocal,
    push_service: Optional[TelegramPushService] = None,
    cron_secret: Optional[str] = None,
) -> Flask:
    """Create the Flask application."""
    app = Flask(__name__)
    app.json.ensure_ascii = False
    secret = cron_secret if cron_secret is not None else settings.web.cron_secret
    pusher = push_service or TelegramPushService()
    push_lock = threading.Lock()

    def run_push(coro):
        # The bot's HTTP client belongs to the event loop that initialized it
        with push_lock:
            return asyncio.run(coro)

    async def push_registration(user_id: int, entry) -> bool:
        async with pusher:
            return await pusher.send(user_id, build_registration_message(entry))

    def db() -> Session:
        if "db" not in g:
            g.db = session_factory()
        return g.db

    @app.teardown_appcontext
    def close_db(exc):
        session = g.pop("db", None)
        if session is not None:
            session.close()

    @app.route("/api/cron/send-notifications", methods=["GET", "POST"])
    def send_notifications():
        if not _is_authorized_cron_request(secret):
            return _error("Unauthorized", 401)
        try:
            result = run_push(Dispatcher(db(), pusher).run_tick())
        except ConfigurationError as e:
            logger.error("Notification tick aborted: %s", str(e))
            return _error(str(e), 500)
        return jsonify(result.to_dict())

    @app.route("/api/users/<int:user_id>/settings/notification", methods=["GET"])
    def get_notification_settings(user_id: int):
        return jsonify(PreferenceService(db()).get_preferences(user_id).to_dict())

    @app.route("/api/users/<int:user_id>/settings/notification", methods=["POST"])
    def update_notification_settings(user_id: int):
        body = request.get_json(silent=True) or {}
        enabled = body.get("enabled")
        idiom_enabled = body.get("idiomNotificationsEnabled")
        time_slots = body.get("timeSlots")
        if time_slots is not None and not isinstance(time_slots, list):
            return _error("timeSlots must be a list", 400)

        try:
            preference = PreferenceService(db()).update_preferences(
                user_id,
                enabled=enabled if isinstance(enabled, bool) else None,
                time_slots=time_slots,
                idiom_notifications_enabled=idiom_enabled if isinstance(idiom_enabled, bool) else None,
            )
        except DuplicateTimeSlotError as e:
            return _error(str(e), 400, duplicates=e.duplicates)
        return jsonify(preference.to_dict())

    @app.route("/api/users/<int:user_id>/settings/notification/send-now", methods=["POST"])
    def send_now(user_id: int):
        try:
            ok = run_push(Dispatcher(db(), pusher).send_now(user_id))
        except ConfigurationError as e:
            return _error(str(e), 500)
        except NothingToSendError as e:
            return _error(str(e), 400)
        if not ok:
            return _error("Failed to send message", 500)
        return jsonify({"success": True})

    @app.route("/api/users/<int:user_id>/lists", methods=["GET"])
    def get_lists(user_id: int):
        return jsonify({"lists": WordService(db()).get_list_summary(user_id)})

    @app.route("/api/users/<int:user_id>/lists/<path:list_name>", methods=["PATCH"])
    def update_list(user_id: int, list_name: str):
        body = request.get_json(silent=True) or {}
        renamed = 0
        try:
            if isinstance(body.get("isNotificationEnabled"), bool):
                ListSettingsService(db()).set_list_notification_enabled(
                    user_id, list_name, body["isNotificationEnabled"]
                )
            new_name = body.get("newName")
            if isinstance(new_name, str) and new_name.strip():
                renamed = WordService(db()).rename_list(user_id, list_name, new_name)
        except ValueError as e:
            return _error(str(e), 400)
        return jsonify({"success": True, "movedCount": renamed})

    @app.route("/api/users/<int:user_id>/lists/<path:list_name>", methods=["DELETE"])
    def delete_list(user_id: int, list_name: str):
        hard = request.args.get("hard", "false").lower() == "true"
        try:
            count = WordService(db()).delete_list(user_id, list_name, hard=hard)
        except ValueError as e:
            return _error(str(e), 400)
        return jsonify({"success": True, "movedCount": count})

    @app.route("/api/users/<int:user_id>/words", methods=["GET"])
    def get_words(user_id: int):
        entries = WordService(db()).list_entries(user_id)
        return jsonify({"words": [entry.to_dict() for entry in entries if not entry.is_learned]})

    @app.route("/api/users/<int:user_id>/words/learned", methods=["GET"])
    def get_learned_words(user_id: int):
        word_service = WordService(db())
        entries = word_service.get_learned_entries(user_id)
        return jsonify(
            {
                "words": [entry.to_dict() for entry in entries],
                "stats": word_service.get_learned_stats(user_id),
            }
        )

    @app.route("/api/users/<int:user_id>/words", methods=["POST"])
    def register_word(user_id: int):
        body = request.get_json(silent=True) or {}
        fields = {key: body[name] for name, key in ENTRY_FIELDS.items() if name in body}
        try:
            entry_type = EntryType(body.get("entryType", EntryType.WORD.value))
            entry = WordService(db()).add_entry(user_id, entry_type=entry_type, **fields)
        except (TypeError, ValueError) as e:
            return _error(str(e), 400)

        if pusher.is_configured:
            try:
                if not run_push(push_registration(user_id, entry)):
                    logger.warning("Registration confirmation not delivered to user %d", user_id)
            except ConfigurationError as e:
                logger.warning("Registration confirmation skipped: %s", str(e))
        return jsonify(entry.to_dict()), 201

    @app.route("/api/users/<int:user_id>/words/<entry_id>", methods=["PATCH"])
    def update_word(user_id: int, entry_id: str):
        body = request.get_json(silent=True) or {}
        fields = {key: body[name] for name, key in ENTRY_FIELDS.items() if name in body}
        try:
            entry = WordService(db()).update_entry(user_id, entry_id, **fields)
        except ValueError as e:
            return _error(str(e), 400)
        if entry is None:
            return _error("Not found", 404)
        return jsonify(entry.to_dict())

    @app.route("/api/users/<int:user_id>/words/<entry_id>", methods=["DELETE"])
    def delete_word(user_id: int, entry_id: str):
        if not WordService(db()).delete_entry(user_id, entry_id):
            return _error("Not found", 404)
        return jsonify({"success": True})

    @app.route("/api/users/<int:user_id>/words/<entry_id>/learn", methods=["POST"])
    def learn_word(user_id: int, entry_id: str):
        if not WordService(db()).mark_as_learned(user_id, entry_id):
            return _error("Not found", 404)
        return jsonify({"success": True})

    return app
