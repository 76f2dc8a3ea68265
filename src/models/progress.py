from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from .base import Base


class ProgressModel(Base):
    __tablename__ = "user_progress"
    __table_args__ = (
        # Upserts are keyed on this constraint
        UniqueConstraint(
            "user_id",
            "skill_node_id",
            name="uq_user_progress_user_node",
        ),
        CheckConstraint(
            "status IN ('locked', 'unlocked', 'in_progress', 'completed', 'reviewed')",
            name="ck_user_progress_status",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        String,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    skill_node_id = Column(
        Integer,
        ForeignKey("skill_nodes.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    status = Column(String, nullable=False, default="locked", index=True)

    # JSON of {link, file_reference, file_name}, never interpreted here
    submission_payload = Column(Text, nullable=True)
    submission_notes = Column(Text, nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)

    reviewed_by = Column(
        String, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True
    )
    review_notes = Column(Text, nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
