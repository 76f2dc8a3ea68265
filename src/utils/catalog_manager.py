"""Skill catalog utilities."""

import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from core.exceptions import NodeNotFoundError, TreeNotFoundError
from models.skill_tree import SkillNodeModel, SkillTreeModel
from schemas.catalog import SkillNode, SkillTree, SkillTreeDetail, SkillTreeSummary

logger = logging.getLogger(__name__)


class CatalogManager:
    """Reads and creates skill trees and their nodes."""

    def __init__(self, db: Session):
        self.db = db

    def list_trees(self) -> List[SkillTreeSummary]:
        """List trees with their node counts, in display order."""
        rows = (
            self.db.query(SkillTreeModel, func.count(SkillNodeModel.id))
            .outerjoin(SkillNodeModel, SkillNodeModel.skill_tree_id == SkillTreeModel.id)
            .group_by(SkillTreeModel.id)
            .order_by(SkillTreeModel.display_order, SkillTreeModel.name)
            .all()
        )
        return [
            SkillTreeSummary(
                **SkillTree.model_validate(tree).model_dump(), node_count=count
            )
            for tree, count in rows
        ]

    def _get_tree_model(self, tree_id: int) -> SkillTreeModel:
        model = (
            self.db.query(SkillTreeModel)
            .options(selectinload(SkillTreeModel.nodes))
            .filter(SkillTreeModel.id == tree_id)
            .first()
        )
        if not model:
            raise TreeNotFoundError(tree_id)
        return model

    def get_tree(self, tree_id: int) -> SkillTree:
        return SkillTree.model_validate(self._get_tree_model(tree_id))

    def get_tree_with_nodes(self, tree_id: int) -> SkillTreeDetail:
        """Get a tree with its nodes ordered by level."""
        model = self._get_tree_model(tree_id)
        return SkillTreeDetail(
            **SkillTree.model_validate(model).model_dump(),
            nodes=[SkillNode.model_validate(n) for n in model.nodes],
        )

    def get_tree_by_name(self, name: str) -> Optional[SkillTree]:
        model = self.db.query(SkillTreeModel).filter(SkillTreeModel.name == name).first()
        if model:
            return SkillTree.model_validate(model)
        return None

    def get_node(self, node_id: int) -> SkillNode:
        model = self.db.query(SkillNodeModel).filter(SkillNodeModel.id == node_id).first()
        if not model:
            raise NodeNotFoundError(node_id)
        return SkillNode.model_validate(model)

    def node_exists(self, node_id: int) -> bool:
        return (
            self.db.query(SkillNodeModel.id).filter(SkillNodeModel.id == node_id).first()
            is not None
        )

    def list_nodes(self) -> List[SkillNode]:
        """Every node in the catalog, ordered by tree then level."""
        models = (
            self.db.query(SkillNodeModel)
            .join(SkillTreeModel, SkillTreeModel.id == SkillNodeModel.skill_tree_id)
            .order_by(
                SkillTreeModel.display_order,
                SkillTreeModel.name,
                SkillNodeModel.level,
                SkillNodeModel.id,
            )
            .all()
        )
        return [SkillNode.model_validate(m) for m in models]

    def create_tree(
        self,
        name: str,
        description: Optional[str] = None,
        category: Optional[str] = None,
        display_order: int = 0,
    ) -> SkillTree:
        model = SkillTreeModel(
            name=name,
            description=description,
            category=category,
            display_order=display_order,
        )
        self.db.add(model)
        self.db.commit()
        self.db.refresh(model)
        logger.info("Created skill tree: %s", name)
        return SkillTree.model_validate(model)

    def create_node(
        self,
        tree_id: int,
        level: int,
        title: str,
        points: int = 0,
        description: Optional[str] = None,
        submission_requirements: Optional[str] = None,
    ) -> SkillNode:
        """Add a node to a tree.

        Raises:
            TreeNotFoundError: If the tree does not exist.
        """
        if not self.db.query(SkillTreeModel.id).filter(SkillTreeModel.id == tree_id).first():
            raise TreeNotFoundError(tree_id)

        model = SkillNodeModel(
            skill_tree_id=tree_id,
            level=level,
            title=title,
            description=description,
            submission_requirements=submission_requirements,
            points=points,
        )
        self.db.add(model)
        self.db.commit()
        self.db.refresh(model)
        return SkillNode.model_validate(model)
