"""User service - Profile lookups and updates"""

import logging

from sqlalchemy.orm import Session

from ...models import User
from ...shared.exceptions import ValidationError
from ...shared.validators import validate_email
from ..scheduling.time_calculator import resolve_zone
from .repository import UserRepository
from .schemas import UserUpdate

logger = logging.getLogger(__name__)


class UserService:
    """Service layer for user profiles"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepository()

    def register_user(self, email: str, display_name: str, timezone: str = "UTC") -> User:
        """Provision a user the identity provider has already authenticated"""
        try:
            email = validate_email(email)
        except ValueError:
            raise ValidationError("Invalid email format") from None
        if not email:
            raise ValidationError("Email is required")
        resolve_zone(timezone)
        if self.repo.get_by_email(self.db, email):
            raise ValidationError("A user with this email already exists")
        user = self.repo.create_user(self.db, email, display_name, timezone)
        logger.info(f"✅ Registered user {user.id}")
        return user

    def update_profile(self, user: User, data: UserUpdate) -> User:
        updates = {}
        if data.displayName is not None:
            updates["display_name"] = data.displayName
        if data.timezone is not None:
            resolve_zone(data.timezone)
            updates["timezone"] = data.timezone
        if not updates:
            return user
        logger.info(f"📝 Updating profile for user {user.id}: {sorted(updates)}")
        return self.repo.update_user(self.db, user, **updates)
