"""Aggregation over the progress ledger.

Every report is recomputed from the current rows on each call; nothing is
cached. Two counting rules coexist and must not be unified:

* per-user stats (``ProgressManager.get_user_stats``) and the student summary
  count existing progress records only;
* the gradebook and per-tree progress are catalog-complete: every node
  appears whether or not the user has a record for it.
"""

import csv
import logging
from typing import IO, List, Optional

from sqlalchemy import and_, case, func, true
from sqlalchemy.orm import Session

from core.exceptions import TreeNotFoundError
from core.interfaces import BlobResolver
from models.progress import ProgressModel
from models.skill_tree import SkillNodeModel, SkillTreeModel
from models.user import UserModel
from schemas.progress import DONE_STATUSES, SubmissionPayload
from schemas.report import (
    Dashboard,
    GradebookRow,
    NodeProgress,
    StudentSummary,
    TreeProgress,
)
from utils.progress_manager import ProgressManager
from utils.storage import PrefixBlobResolver, resolve_optional

logger = logging.getLogger(__name__)

GRADEBOOK_CSV_HEADER = [
    "Student",
    "Email",
    "Display Name",
    "Skill Tree",
    "Node",
    "Level",
    "Max Points",
    "Status",
    "Submitted At",
    "Review Notes",
    "Reviewed At",
]

# Labels used in exports for each status; None means no record
STATUS_LABELS = {
    None: "Not Started",
    "locked": "Not Started",
    "unlocked": "Unlocked",
    "in_progress": "In Progress",
    "completed": "Submitted",
    "reviewed": "Reviewed",
}


def _done_count():
    return func.sum(case((ProgressModel.status.in_(DONE_STATUSES), 1), else_=0))


class ReportManager:
    """Builds gradebooks, student summaries and dashboards."""

    def __init__(self, db: Session, blob_resolver: Optional[BlobResolver] = None):
        """Initialize ReportManager.

        Args:
            db: SQLAlchemy Session.
            blob_resolver: Turns stored file references into URLs.
        """
        self.db = db
        self.blob_resolver = blob_resolver or PrefixBlobResolver()

    def get_gradebook(self) -> List[GradebookRow]:
        """Every student against every catalog node.

        Students without a record for a node still get a row, with
        ``status`` None. Row count is always students x nodes.
        """
        rows = (
            self.db.query(UserModel, SkillNodeModel, SkillTreeModel, ProgressModel)
            .select_from(UserModel)
            .join(SkillNodeModel, true())
            .join(SkillTreeModel, SkillTreeModel.id == SkillNodeModel.skill_tree_id)
            .outerjoin(
                ProgressModel,
                and_(
                    ProgressModel.user_id == UserModel.user_id,
                    ProgressModel.skill_node_id == SkillNodeModel.id,
                ),
            )
            .filter(UserModel.role == "student")
            .order_by(
                UserModel.username,
                SkillTreeModel.display_order,
                SkillTreeModel.name,
                SkillNodeModel.level,
                SkillNodeModel.id,
            )
            .all()
        )
        return [self._gradebook_row(*row) for row in rows]

    def _gradebook_row(
        self,
        user: UserModel,
        node: SkillNodeModel,
        tree: SkillTreeModel,
        progress: Optional[ProgressModel],
    ) -> GradebookRow:
        row = GradebookRow(
            user_id=user.user_id,
            username=user.username,
            email=user.email,
            display_name=user.display_name,
            tree_id=tree.id,
            tree_name=tree.name,
            node_id=node.id,
            node_title=node.title,
            node_level=node.level,
            max_points=node.points,
        )
        if progress is None:
            return row

        payload = SubmissionPayload.deserialize(progress.submission_payload)
        row.progress_id = progress.id
        row.status = progress.status
        row.submission_notes = progress.submission_notes
        row.submitted_at = progress.submitted_at
        row.review_notes = progress.review_notes
        row.reviewed_at = progress.reviewed_at
        if payload is not None:
            row.submission_link = payload.link
            row.submission_file_url = resolve_optional(
                self.blob_resolver, payload.file_reference
            )
            row.submission_file_name = payload.file_name
        return row

    def get_all_student_stats(self) -> List[StudentSummary]:
        """Per-student totals, including students with no records.

        ``earned_points`` sums node points over completed or reviewed records;
        ``total_started`` is the number of records.
        """
        rows = (
            self.db.query(
                UserModel.user_id,
                UserModel.username,
                UserModel.email,
                UserModel.display_name,
                _done_count(),
                func.sum(case((ProgressModel.status == "in_progress", 1), else_=0)),
                func.count(ProgressModel.id),
                func.sum(
                    case(
                        (ProgressModel.status.in_(DONE_STATUSES), SkillNodeModel.points),
                        else_=0,
                    )
                ),
            )
            .outerjoin(ProgressModel, ProgressModel.user_id == UserModel.user_id)
            .outerjoin(SkillNodeModel, SkillNodeModel.id == ProgressModel.skill_node_id)
            .filter(UserModel.role == "student")
            .group_by(
                UserModel.user_id,
                UserModel.username,
                UserModel.email,
                UserModel.display_name,
            )
            .order_by(UserModel.username)
            .all()
        )
        return [
            StudentSummary(
                user_id=user_id,
                username=username,
                email=email,
                display_name=display_name,
                completed_nodes=completed or 0,
                in_progress_nodes=in_progress or 0,
                total_started=total or 0,
                earned_points=points or 0,
            )
            for user_id, username, email, display_name, completed, in_progress, total, points in rows
        ]

    def get_tree_progress(self, user_id: str, tree_id: int) -> TreeProgress:
        """A tree's nodes with the user's status on each.

        Nodes without a record report ``locked``. ``total_nodes`` is the
        number of nodes in the tree.

        Raises:
            TreeNotFoundError: If the tree does not exist.
        """
        tree = self.db.query(SkillTreeModel).filter(SkillTreeModel.id == tree_id).first()
        if tree is None:
            raise TreeNotFoundError(tree_id)

        rows = (
            self.db.query(SkillNodeModel, ProgressModel)
            .outerjoin(
                ProgressModel,
                and_(
                    ProgressModel.skill_node_id == SkillNodeModel.id,
                    ProgressModel.user_id == user_id,
                ),
            )
            .filter(SkillNodeModel.skill_tree_id == tree_id)
            .order_by(SkillNodeModel.level, SkillNodeModel.id)
            .all()
        )

        nodes = []
        for node, progress in rows:
            entry = NodeProgress(
                node_id=node.id,
                level=node.level,
                title=node.title,
                points=node.points,
                submission_requirements=node.submission_requirements,
            )
            if progress is not None:
                entry.status = progress.status
                entry.submitted_at = progress.submitted_at
                entry.review_notes = progress.review_notes
            nodes.append(entry)

        return TreeProgress(
            tree_id=tree.id,
            name=tree.name,
            category=tree.category,
            display_order=tree.display_order,
            completed_nodes=sum(1 for n in nodes if n.status in DONE_STATUSES),
            total_nodes=len(nodes),
            nodes=nodes,
        )

    def get_dashboard(self, user_id: str) -> Dashboard:
        """Completed/total per tree for the user, plus their record stats."""
        rows = (
            self.db.query(SkillTreeModel, func.count(SkillNodeModel.id), _done_count())
            .outerjoin(SkillNodeModel, SkillNodeModel.skill_tree_id == SkillTreeModel.id)
            .outerjoin(
                ProgressModel,
                and_(
                    ProgressModel.skill_node_id == SkillNodeModel.id,
                    ProgressModel.user_id == user_id,
                ),
            )
            .group_by(SkillTreeModel.id)
            .order_by(SkillTreeModel.display_order, SkillTreeModel.name)
            .all()
        )
        trees = [
            TreeProgress(
                tree_id=tree.id,
                name=tree.name,
                category=tree.category,
                display_order=tree.display_order,
                completed_nodes=completed or 0,
                total_nodes=total,
            )
            for tree, total, completed in rows
        ]
        return Dashboard(
            trees=trees,
            stats=ProgressManager(self.db).get_user_stats(user_id),
        )

    def export_gradebook_csv(self, stream: IO[str]) -> int:
        """Write the gradebook as CSV to ``stream``.

        Returns:
            Number of data rows written.
        """
        writer = csv.writer(stream, quoting=csv.QUOTE_ALL)
        writer.writerow(GRADEBOOK_CSV_HEADER)
        count = 0
        for row in self.get_gradebook():
            writer.writerow(
                [
                    row.username,
                    row.email,
                    row.display_name or "",
                    row.tree_name,
                    row.node_title,
                    row.node_level,
                    row.max_points,
                    STATUS_LABELS.get(row.status, row.status),
                    row.submitted_at.isoformat() if row.submitted_at else "",
                    row.review_notes or "",
                    row.reviewed_at.isoformat() if row.reviewed_at else "",
                ]
            )
            count += 1
        logger.info("Exported %d gradebook rows", count)
        return count
