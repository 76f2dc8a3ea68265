"""Admin promotion request model.

Rows are append-only: a request is created pending and resolved exactly once.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    text,
)

from .base import Base


class PromotionRequestModel(Base):
    """Dual-control request to escalate a user to admin."""

    __tablename__ = "admin_promotions"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_admin_promotions_status",
        ),
        # At most one pending request per target
        Index(
            "uq_admin_promotions_pending_target",
            "target_user_id",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    target_user_id = Column(
        String, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False
    )
    requested_by = Column(
        String, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False
    )
    approved_by = Column(
        String, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True
    )
    status = Column(String, nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), nullable=False)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
