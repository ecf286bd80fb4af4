"""Database models for the service."""
import enum
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from braincraft.config import UNCATEGORIZED_LIST_NAME
from braincraft.models.base import Base, TimestampMixin


class EntryType(enum.Enum):
    """Kind of vocabulary entry."""

    WORD = "word"
    IDIOM = "idiom"


def normalize_list_name(list_name) -> str:
    """Return the stored form of a list name.

    Missing, empty or whitespace-only names map to the reserved
    uncategorized list.
    """
    if not isinstance(list_name, str):
        return UNCATEGORIZED_LIST_NAME
    return list_name.strip() or UNCATEGORIZED_LIST_NAME


class User(Base, TimestampMixin):
    """User model.

    The Telegram chat id doubles as the user's identity for push delivery.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    telegram_id = Column(Integer, unique=True, nullable=False)
    username = Column(String, nullable=True)

    # Relationships
    entries = relationship(
        "ContentEntry",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="ContentEntry.id.desc()",
    )
    notification_preference = relationship(
        "NotificationPreference",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )
    list_preferences = relationship(
        "ListPreference", back_populates="user", cascade="all, delete-orphan"
    )


class ContentEntry(Base, TimestampMixin):
    """A word or idiom registered by a user."""

    __tablename__ = "content_entries"

    id = Column(Integer, primary_key=True)  # insertion order, newest has the highest id
    entry_id = Column(
        String(32), unique=True, nullable=False, index=True, default=lambda: uuid4().hex
    )
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    text = Column(String, nullable=False)
    meaning = Column(Text, nullable=True)
    example = Column(Text, nullable=True)
    quiz_prompt = Column(Text, nullable=True)
    quiz_answer = Column(Text, nullable=True)
    list_name = Column(String, nullable=False, default=UNCATEGORIZED_LIST_NAME)
    entry_type = Column(
        Enum(EntryType, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=EntryType.WORD,
    )
    learned_at = Column(Date, nullable=True)

    # Relationships
    user = relationship("User", back_populates="entries")

    @property
    def is_learned(self) -> bool:
        return self.learned_at is not None

    def to_dict(self) -> dict:
        return {
            "id": self.entry_id,
            "text": self.text,
            "meaning": self.meaning or "",
            "example": self.example or "",
            "quizPrompt": self.quiz_prompt,
            "quizAnswer": self.quiz_answer,
            "listName": self.list_name,
            "entryType": self.entry_type.value if self.entry_type else EntryType.WORD.value,
            "learnedAt": self.learned_at.isoformat() if self.learned_at else None,
        }


class NotificationPreference(Base, TimestampMixin):
    """Per-user notification settings and sent-tracking."""

    __tablename__ = "notification_preferences"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    enabled = Column(Boolean, default=False, nullable=False)
    time_slots = Column(JSON, default=list, nullable=False)
    idiom_notifications_enabled = Column(Boolean, default=True, nullable=False)
    last_sent_date = Column(Date, nullable=True)
    last_sent_time_slots = Column(JSON, default=list, nullable=False)
    version = Column(Integer, nullable=False)

    # Concurrent writers are detected with StaleDataError on flush
    __mapper_args__ = {"version_id_col": version}

    # Relationships
    user = relationship("User", back_populates="notification_preference")

    def to_dict(self) -> dict:
        return {
            "enabled": self.enabled,
            "timeSlots": list(self.time_slots or []),
            "idiomNotificationsEnabled": self.idiom_notifications_enabled,
            "lastSentDate": self.last_sent_date.isoformat() if self.last_sent_date else None,
            "lastSentTimeSlots": list(self.last_sent_time_slots or []),
        }


class ListPreference(Base, TimestampMixin):
    """Per-user, per-list notification toggle."""

    __tablename__ = "list_preferences"
    __table_args__ = (UniqueConstraint("user_id", "list_name", name="uq_list_preference"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    list_name = Column(String, nullable=False)
    is_notification_enabled = Column(Boolean, default=True, nullable=False)

    # Relationships
    user = relationship("User", back_populates="list_preferences")
