"""Report schema definitions for the gradebook and dashboards."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from schemas.progress import UserStats


class GradebookRow(BaseModel):
    """One (student, node) cell; ``status`` is None when nothing was started."""

    user_id: str
    username: str
    email: str
    display_name: Optional[str] = None
    tree_id: int
    tree_name: str
    node_id: int
    node_title: str
    node_level: int
    max_points: int
    progress_id: Optional[int] = None
    status: Optional[str] = None
    submission_link: Optional[str] = None
    submission_file_url: Optional[str] = None
    submission_file_name: Optional[str] = None
    submission_notes: Optional[str] = None
    submitted_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    reviewed_at: Optional[datetime] = None

    @property
    def is_started(self) -> bool:
        return self.status is not None


class StudentSummary(BaseModel):
    user_id: str
    username: str
    email: str
    display_name: Optional[str] = None
    completed_nodes: int = 0
    in_progress_nodes: int = 0
    total_started: int = 0
    earned_points: int = 0


class NodeProgress(BaseModel):
    node_id: int
    level: int
    title: str
    points: int
    submission_requirements: Optional[str] = None
    status: str = Field(default="locked", description="'locked' when no record exists.")
    submitted_at: Optional[datetime] = None
    review_notes: Optional[str] = None


class TreeProgress(BaseModel):
    tree_id: int
    name: str
    category: Optional[str] = None
    display_order: int = 0
    completed_nodes: int = 0
    total_nodes: int = 0
    nodes: List[NodeProgress] = Field(default_factory=list)


class Dashboard(BaseModel):
    trees: List[TreeProgress] = Field(default_factory=list)
    stats: UserStats = Field(default_factory=UserStats)
