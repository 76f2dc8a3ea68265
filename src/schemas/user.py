"""User schema definitions."""

import uuid
from datetime import datetime
from typing import Optional

import pytz
from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    """A registered user as seen by the core (verifier output included)."""

    user_id: str = Field(
        description="The unique identifier for the user.",
        default_factory=lambda: str(uuid.uuid4()),
        frozen=True,
    )
    username: str = Field(description="Unique login name.")
    email: str = Field(description="Unique email address.")
    password_hash: str = Field(
        description="Opaque credential verifier output.", repr=False
    )
    role: str = Field(
        description="One of 'student', 'instructor' or 'admin'.",
        default="student",
    )
    display_name: Optional[str] = Field(
        default=None, description="Optional display alias."
    )
    create_at: datetime = Field(
        description="The time when the user registered.",
        default_factory=lambda: datetime.now(pytz.utc),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class UserPublic(BaseModel):
    """User data safe to hand to any caller."""

    user_id: str
    username: str
    email: str
    role: str
    display_name: Optional[str] = None
    create_at: datetime

    model_config = ConfigDict(from_attributes=True)
