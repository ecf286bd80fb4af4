"""User service for looking up and registering users."""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from braincraft.models.models import User

# Configure logging
logger = logging.getLogger(__name__)


class UserService:
    """Service for managing users."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db

    def get_user_by_telegram_id(self, telegram_id: int) -> Optional[User]:
        """Get user by telegram ID."""
        return self.db.query(User).filter(User.telegram_id == telegram_id).first()

    def get_or_create_user(self, telegram_id: int, username: Optional[str] = None) -> User:
        """Get existing user or create a new one."""
        user = self.get_user_by_telegram_id(telegram_id)

        if not user:
            user = User(telegram_id=telegram_id, username=username)
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
            logger.info("Registered user %d", telegram_id)

        return user
