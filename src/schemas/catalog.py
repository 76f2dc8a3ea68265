from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SkillNode(BaseModel):
    id: int
    skill_tree_id: int
    level: int
    title: str
    description: Optional[str] = None
    submission_requirements: Optional[str] = None
    points: int = 0

    model_config = ConfigDict(from_attributes=True)


class SkillTree(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    display_order: int = 0
    create_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SkillTreeSummary(SkillTree):
    """Tree listing entry with its node count."""

    node_count: int = 0


class SkillTreeDetail(SkillTree):
    nodes: List[SkillNode] = Field(default_factory=list)
