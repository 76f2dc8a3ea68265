"""Progress ledger schema definitions.

This module defines the submission payload, progress records and the
per-user statistics derived from them.
"""

import json
import logging
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

# Review may move a record to any of these
REVIEW_STATUSES = ("reviewed", "completed", "in_progress")

# Statuses counted as completed by every aggregate
DONE_STATUSES = ("completed", "reviewed")

STATUSES = ("locked", "unlocked", "in_progress", "completed", "reviewed")


class SubmissionPayload(BaseModel):
    """Proof bundle attached to a submission.

    Stored as one serialized value; the file reference is opaque to the core.
    """

    link: Optional[str] = Field(default=None, description="URL to the work.")
    file_reference: Optional[str] = Field(
        default=None, description="Opaque reference into the blob store."
    )
    file_name: Optional[str] = Field(
        default=None, description="Display name of the uploaded file."
    )

    def has_link(self) -> bool:
        return bool(self.link and self.link.strip())

    def serialize(self) -> str:
        return self.model_dump_json()

    @classmethod
    def deserialize(cls, raw: Optional[str]) -> Optional["SubmissionPayload"]:
        """Parse a stored payload.

        A value that is not a JSON object is treated as a bare link, which is
        how rows written before the bundle existed look.
        """
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            return cls(link=raw)
        if not isinstance(data, dict):
            return cls(link=raw)
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            logger.warning("Unreadable submission payload, keeping as link: %s", e)
            return cls(link=raw)


class ProgressRecord(BaseModel):
    id: int
    user_id: str
    skill_node_id: int
    status: str
    submission: Optional[SubmissionPayload] = None
    submission_notes: Optional[str] = None
    submitted_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    review_notes: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    # Filled by joined listings
    node_title: Optional[str] = None
    node_level: Optional[int] = None
    tree_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class PendingReview(ProgressRecord):
    """A completed record waiting for a reviewer."""

    username: str
    display_name: Optional[str] = None


class UserStats(BaseModel):
    """Counts over the user's existing progress records only."""

    total_nodes: int = 0
    completed_nodes: int = 0
    in_progress_nodes: int = 0
    unlocked_nodes: int = 0
