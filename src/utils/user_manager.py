"""User management utilities.

This module provides the identity store: registration, credential checks,
profile updates and the raw role update used by role management.
"""

import logging
from typing import List, Optional

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import MIN_PASSWORD_LENGTH, ROLES
from core.exceptions import (
    AuthenticationError,
    InvalidPasswordError,
    InvalidRoleError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from core.interfaces import Clock, CredentialVerifier, utc_now
from models.user import UserModel
from schemas.user import User
from utils.converters import model_to_user, user_to_model
from utils.security import BcryptVerifier

logger = logging.getLogger(__name__)


class UserManager:
    """Manages user data persistence and operations using SQLAlchemy."""

    def __init__(
        self,
        db: Session,
        verifier: Optional[CredentialVerifier] = None,
        clock: Clock = utc_now,
    ):
        """Initialize UserManager.

        Args:
            db: SQLAlchemy Session.
            verifier: Credential verifier; bcrypt when omitted.
            clock: Source of timestamps.
        """
        self.db = db
        self.verifier = verifier or BcryptVerifier()
        self.clock = clock

    def create_user(
        self,
        username: str,
        email: str,
        password: str,
        role: str = "student",
        display_name: Optional[str] = None,
    ) -> User:
        """Create a new user.

        Args:
            username: Username for the new user.
            email: Email address, unique across users.
            password: Plain text password.
            role: User role ('student', 'instructor', or 'admin').
            display_name: Optional display alias.

        Returns:
            Created User object.

        Raises:
            UserAlreadyExistsError: If username or email already exists.
            InvalidRoleError: If role is not a known role.
        """
        if role not in ROLES:
            raise InvalidRoleError(role)

        existing = (
            self.db.query(UserModel)
            .filter(or_(UserModel.username == username, UserModel.email == email))
            .first()
        )
        if existing:
            field = "Username" if existing.username == username else "Email"
            raise UserAlreadyExistsError(f"{field} already exists")

        user = User(
            username=username,
            email=email,
            password_hash=self.verifier.hash(password),
            role=role,
            display_name=display_name,
            create_at=self.clock(),
        )

        # Two concurrent registrations can both pass the check above; the
        # unique constraints decide the winner.
        try:
            model = user_to_model(user)
            self.db.add(model)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise UserAlreadyExistsError(
                f"User '{username}' or email '{email}' already exists"
            ) from e

        logger.info("Created user: %s (%s)", username, role)
        return user

    def find_by_credentials(self, username: str, password: str) -> Optional[User]:
        """Return the user matching the credential pair, or None."""
        model = self.db.query(UserModel).filter(UserModel.username == username).first()
        if model is None:
            return None
        if not self.verifier.verify(password, model.password_hash):
            return None
        return model_to_user(model)

    def authenticate(self, username: str, password: str) -> User:
        """Authenticate a credential pair.

        Raises:
            AuthenticationError: If the username is unknown or the password
                does not match. The two cases are indistinguishable.
        """
        if not username or not password:
            raise AuthenticationError("Username and password are required")
        user = self.find_by_credentials(username, password)
        if user is None:
            logger.info("Failed login for username: %s", username)
            raise AuthenticationError()
        return user

    def get_user_by_username(self, username: str) -> Optional[User]:
        model = self.db.query(UserModel).filter(UserModel.username == username).first()
        if model:
            return model_to_user(model)
        return None

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        """Get a user by user ID.

        Args:
            user_id: User ID to look up.

        Returns:
            User object if found, None otherwise.
        """
        model = self.db.query(UserModel).filter(UserModel.user_id == user_id).first()
        if model:
            return model_to_user(model)
        return None

    def require_user(self, user_id: str) -> User:
        """Like ``get_user_by_id`` but raises ``UserNotFoundError``."""
        user = self.get_user_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def list_users(self, role: Optional[str] = None) -> List[User]:
        """List users, newest first.

        Args:
            role: Optional role filter.
        """
        query = self.db.query(UserModel)
        if role:
            query = query.filter(UserModel.role == role)
        models = query.order_by(UserModel.create_at.desc()).all()
        return [model_to_user(m) for m in models]

    def update_role(self, user_id: str, role: str, commit: bool = True) -> bool:
        """Set a user's role.

        This is the raw identity-store write; who may call it for which role
        is decided by ``PromotionManager``.

        Args:
            user_id: Target user.
            role: New role.
            commit: Commit immediately. Pass False to enlist the update in the
                caller's transaction.

        Returns:
            True if a row was updated, False if the user does not exist.

        Raises:
            InvalidRoleError: If role is not a known role.
        """
        if role not in ROLES:
            raise InvalidRoleError(role)

        result = self.db.execute(
            update(UserModel).where(UserModel.user_id == user_id).values(role=role)
        )
        if commit:
            self.db.commit()
        updated = result.rowcount > 0
        if updated:
            logger.info("Updated role of user %s to %s", user_id, role)
        return updated

    def update_profile(
        self,
        user_id: str,
        email: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> User:
        """Update the editable profile fields.

        Raises:
            UserNotFoundError: If the user does not exist.
            UserAlreadyExistsError: If the new email belongs to another user.
        """
        model = self.db.query(UserModel).filter(UserModel.user_id == user_id).first()
        if model is None:
            raise UserNotFoundError(user_id)

        if email is not None:
            model.email = email
        if display_name is not None:
            model.display_name = display_name or None

        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise UserAlreadyExistsError("Email already exists") from e
        self.db.refresh(model)
        return model_to_user(model)

    def change_password(
        self, user_id: str, current_password: str, new_password: str
    ) -> None:
        """Replace a user's password after checking the current one.

        Raises:
            UserNotFoundError: If the user does not exist.
            InvalidPasswordError: If the new password is too short.
            AuthenticationError: If the current password is wrong.
        """
        if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
            raise InvalidPasswordError(
                f"New password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        model = self.db.query(UserModel).filter(UserModel.user_id == user_id).first()
        if model is None:
            raise UserNotFoundError(user_id)
        if not self.verifier.verify(current_password, model.password_hash):
            raise AuthenticationError("Current password is incorrect")

        model.password_hash = self.verifier.hash(new_password)
        self.db.commit()
        logger.info("Password changed for user %s", user_id)
