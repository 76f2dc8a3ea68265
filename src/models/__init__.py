"""SQLAlchemy models.

Importing this package registers every table with ``Base.metadata``.
"""

from .base import Base
from .user import UserModel
from .skill_tree import SkillTreeModel, SkillNodeModel
from .progress import ProgressModel
from .promotion import PromotionRequestModel

__all__ = [
    "Base",
    "UserModel",
    "SkillTreeModel",
    "SkillNodeModel",
    "ProgressModel",
    "PromotionRequestModel",
]
