from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base


class SkillTreeModel(Base):
    __tablename__ = "skill_trees"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=True)
    display_order = Column(Integer, nullable=False, default=0)
    create_at = Column(DateTime(timezone=True), server_default=func.now())

    nodes = relationship(
        "SkillNodeModel",
        back_populates="tree",
        cascade="all, delete-orphan",
        order_by="SkillNodeModel.level",
    )


class SkillNodeModel(Base):
    __tablename__ = "skill_nodes"

    id = Column(Integer, primary_key=True, index=True)
    skill_tree_id = Column(
        Integer,
        ForeignKey("skill_trees.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    # Ordering key within a tree, not unique
    level = Column(Integer, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    submission_requirements = Column(Text, nullable=True)
    points = Column(Integer, nullable=False, default=0)
    create_at = Column(DateTime(timezone=True), server_default=func.now())

    tree = relationship("SkillTreeModel", back_populates="nodes")
