"""Progress ledger.

This module owns the per-(user, node) progress state machine:

    locked -> unlocked -> in_progress -> completed -> reviewed

with a reviewer able to send a ``completed`` record back to ``in_progress``.

Unlock, start and submit are each a single ``INSERT ... ON CONFLICT DO UPDATE``
keyed by the (user_id, skill_node_id) unique constraint, so concurrent calls
for the same pair never create a second row. Concurrent writes are
last-writer-wins; there is no version column.

Start and submit overwrite unconditionally, whatever the current status.
Resubmission after a review depends on this, so they are not guarded
transitions.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import case, func, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import REVIEWER_ROLES
from core.exceptions import (
    ConfigurationError,
    InvalidReviewStatusError,
    InvalidSubmissionError,
    MissingReviewNotesError,
    NodeNotFoundError,
    ProgressNotFoundError,
    ReviewerNotAuthorizedError,
    UserNotFoundError,
)
from core.interfaces import Clock, utc_now
from models.progress import ProgressModel
from models.skill_tree import SkillNodeModel, SkillTreeModel
from models.user import UserModel
from schemas.progress import (
    DONE_STATUSES,
    REVIEW_STATUSES,
    PendingReview,
    ProgressRecord,
    SubmissionPayload,
    UserStats,
)
from utils.converters import model_to_progress, progress_fields

logger = logging.getLogger(__name__)

_DIALECT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class ProgressManager:
    """Manages progress records using SQLAlchemy."""

    def __init__(self, db: Session, clock: Clock = utc_now):
        """Initialize ProgressManager.

        Args:
            db: SQLAlchemy Session.
            clock: Source of timestamps.
        """
        self.db = db
        self.clock = clock

    # --- Writes ---

    def unlock_node(self, user_id: str, node_id: int) -> ProgressRecord:
        """Unlock a node for a user.

        Creates an ``unlocked`` record when none exists and advances a
        ``locked`` one. Any other record is returned unchanged. Prerequisites
        are not checked; any node may be unlocked at any time.
        """
        self._check_pair(user_id, node_id)
        self._upsert(
            user_id,
            node_id,
            {"status": "unlocked"},
            where=ProgressModel.status == "locked",
        )
        logger.info("Unlock node %s for user %s", node_id, user_id)
        return self._require(user_id, node_id)

    def start_node(self, user_id: str, node_id: int) -> ProgressRecord:
        """Move a record to ``in_progress`` from any state, creating it if needed."""
        self._check_pair(user_id, node_id)
        self._upsert(user_id, node_id, {"status": "in_progress"})
        logger.info("Started node %s for user %s", node_id, user_id)
        return self._require(user_id, node_id)

    def submit_node(
        self,
        user_id: str,
        node_id: int,
        payload: Optional[SubmissionPayload] = None,
        notes: Optional[str] = None,
    ) -> ProgressRecord:
        """Submit work for a node.

        The record becomes ``completed`` with the submission time set to now.
        A second submission replaces the first; no history is kept.

        Args:
            user_id: Submitting user.
            node_id: Node being submitted.
            payload: Link and/or uploaded file reference.
            notes: Free-text description of the submission.

        Raises:
            InvalidSubmissionError: If both the link and the notes are empty.
            UserNotFoundError: If the user does not exist.
            NodeNotFoundError: If the node does not exist.
        """
        payload = payload or SubmissionPayload()
        notes = notes.strip() if notes else None
        if not payload.has_link() and not notes:
            raise InvalidSubmissionError()

        self._check_pair(user_id, node_id)
        self._upsert(
            user_id,
            node_id,
            {
                "status": "completed",
                "submission_payload": payload.serialize(),
                "submission_notes": notes,
                "submitted_at": self.clock(),
            },
        )
        logger.info("User %s submitted node %s", user_id, node_id)
        return self._require(user_id, node_id)

    def review_submission(
        self,
        progress_id: int,
        reviewer_id: str,
        review_notes: str,
        status: str = "reviewed",
    ) -> ProgressRecord:
        """Record a review on a progress record.

        The status is set to ``status`` whatever the current one is, so an
        already reviewed record can be reviewed again. Sending a record back
        to ``in_progress`` asks the student to resubmit.

        Raises:
            MissingReviewNotesError: If the notes are empty.
            InvalidReviewStatusError: If status is not a review status.
            UserNotFoundError: If the reviewer does not exist.
            ReviewerNotAuthorizedError: If the reviewer is not staff.
            ProgressNotFoundError: If the record does not exist.
        """
        if not review_notes or not review_notes.strip():
            raise MissingReviewNotesError()
        if status not in REVIEW_STATUSES:
            raise InvalidReviewStatusError(status)

        reviewer = self.db.query(UserModel).filter(UserModel.user_id == reviewer_id).first()
        if reviewer is None:
            raise UserNotFoundError(reviewer_id)
        if reviewer.role not in REVIEWER_ROLES:
            logger.warning(
                "User %s (%s) attempted to review record %s",
                reviewer_id,
                reviewer.role,
                progress_id,
            )
            raise ReviewerNotAuthorizedError(reviewer_id)

        now = self.clock()
        result = self.db.execute(
            update(ProgressModel)
            .where(ProgressModel.id == progress_id)
            .values(
                status=status,
                reviewed_by=reviewer_id,
                review_notes=review_notes.strip(),
                reviewed_at=now,
                updated_at=now,
            )
        )
        if result.rowcount == 0:
            self.db.rollback()
            raise ProgressNotFoundError(progress_id)
        self.db.commit()

        logger.info(
            "Reviewer %s set record %s to %s", reviewer_id, progress_id, status
        )
        return self.get_by_id(progress_id)

    # --- Reads ---

    def get_by_id(self, progress_id: int) -> ProgressRecord:
        model = self.db.query(ProgressModel).filter(ProgressModel.id == progress_id).first()
        if model is None:
            raise ProgressNotFoundError(progress_id)
        return model_to_progress(model)

    def get_by_user_and_node(self, user_id: str, node_id: int) -> Optional[ProgressRecord]:
        model = self._get_model(user_id, node_id)
        if model is None:
            return None
        return model_to_progress(model)

    def get_by_user(self, user_id: str) -> List[ProgressRecord]:
        """All of a user's records, ordered by tree then node level."""
        rows = (
            self.db.query(
                ProgressModel,
                SkillNodeModel.title,
                SkillNodeModel.level,
                SkillTreeModel.name,
            )
            .join(SkillNodeModel, SkillNodeModel.id == ProgressModel.skill_node_id)
            .join(SkillTreeModel, SkillTreeModel.id == SkillNodeModel.skill_tree_id)
            .filter(ProgressModel.user_id == user_id)
            .order_by(SkillTreeModel.display_order, SkillNodeModel.level)
            .all()
        )
        return [
            model_to_progress(
                model, node_title=title, node_level=level, tree_name=tree_name
            )
            for model, title, level, tree_name in rows
        ]

    def get_pending_reviews(self) -> List[PendingReview]:
        """Completed records waiting for review, newest submission first."""
        rows = (
            self.db.query(
                ProgressModel,
                UserModel.username,
                UserModel.display_name,
                SkillNodeModel.title,
                SkillNodeModel.level,
                SkillTreeModel.name,
            )
            .join(UserModel, UserModel.user_id == ProgressModel.user_id)
            .join(SkillNodeModel, SkillNodeModel.id == ProgressModel.skill_node_id)
            .join(SkillTreeModel, SkillTreeModel.id == SkillNodeModel.skill_tree_id)
            .filter(ProgressModel.status == "completed")
            .order_by(ProgressModel.submitted_at.desc(), ProgressModel.id.desc())
            .all()
        )
        return [
            PendingReview(
                **progress_fields(model),
                username=username,
                display_name=display_name,
                node_title=title,
                node_level=level,
                tree_name=tree_name,
            )
            for model, username, display_name, title, level, tree_name in rows
        ]

    def get_user_stats(self, user_id: str) -> UserStats:
        """Count the user's records by status.

        Only existing records are counted: ``total_nodes`` is the number of
        nodes the user has any progress on, not the size of the catalog.
        """
        total, completed, in_progress, unlocked = (
            self.db.query(
                func.count(ProgressModel.id),
                func.sum(case((ProgressModel.status.in_(DONE_STATUSES), 1), else_=0)),
                func.sum(case((ProgressModel.status == "in_progress", 1), else_=0)),
                func.sum(case((ProgressModel.status == "unlocked", 1), else_=0)),
            )
            .filter(ProgressModel.user_id == user_id)
            .one()
        )
        return UserStats(
            total_nodes=total or 0,
            completed_nodes=completed or 0,
            in_progress_nodes=in_progress or 0,
            unlocked_nodes=unlocked or 0,
        )

    # --- Helpers ---

    def _get_model(self, user_id: str, node_id: int) -> Optional[ProgressModel]:
        return (
            self.db.query(ProgressModel)
            .filter(
                ProgressModel.user_id == user_id,
                ProgressModel.skill_node_id == node_id,
            )
            .first()
        )

    def _require(self, user_id: str, node_id: int) -> ProgressRecord:
        model = self._get_model(user_id, node_id)
        if model is None:
            # Only reachable if the row was removed between write and read
            raise ProgressNotFoundError(node_id)
        return model_to_progress(model)

    def _check_pair(self, user_id: str, node_id: int) -> None:
        if self.db.query(UserModel.user_id).filter(UserModel.user_id == user_id).first() is None:
            raise UserNotFoundError(user_id)
        if self.db.query(SkillNodeModel.id).filter(SkillNodeModel.id == node_id).first() is None:
            raise NodeNotFoundError(node_id)

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        try:
            return _DIALECT_INSERTS[dialect](ProgressModel)
        except KeyError:
            raise ConfigurationError(
                f"Progress upserts are not supported on '{dialect}'"
            ) from None

    def _upsert(
        self,
        user_id: str,
        node_id: int,
        values: Dict[str, Any],
        where=None,
    ) -> None:
        """Insert a record or update the existing one in a single statement.

        Args:
            user_id: Record owner.
            node_id: Record node.
            values: Columns written on insert and on conflict.
            where: Optional condition on the existing row; when false the
                existing row is left untouched.
        """
        now = self.clock()
        stmt = self._insert().values(
            user_id=user_id,
            skill_node_id=node_id,
            created_at=now,
            updated_at=now,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "skill_node_id"],
            set_={**values, "updated_at": now},
            where=where,
        )
        try:
            self.db.execute(stmt)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
