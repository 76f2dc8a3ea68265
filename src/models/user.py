"""Identity store table.

One row per account; the role column drives every permission check.
"""

from sqlalchemy import CheckConstraint, Column, DateTime, String
from .base import Base


class UserModel(Base):
    """Registered account with its role."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "role IN ('student', 'instructor', 'admin')", name="ck_users_role"
        ),
    )

    user_id = Column(String, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default="student")  # 'admin', 'instructor', or 'student'
    display_name = Column(String, nullable=True)
    create_at = Column(DateTime(timezone=True), nullable=False)
