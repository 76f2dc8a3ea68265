"""Role management and the two-admin promotion workflow.

Admins may set another user's role to student or instructor directly. Making
someone an admin always takes two distinct admins: one requests the promotion,
a different one resolves it. Requests move ``pending -> approved|rejected``
and are never reopened.
"""

import logging
from typing import List

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, aliased

from config import DIRECTLY_ASSIGNABLE_ROLES
from core.exceptions import (
    AdminPromotionRequiresWorkflowError,
    AlreadyAdminError,
    DuplicatePendingRequestError,
    InvalidRoleError,
    NotAdminError,
    PromotionPartialFailureError,
    PromotionRequestNotFoundError,
    SelfApprovalForbiddenError,
    SelfRoleChangeError,
    UserNotFoundError,
)
from core.interfaces import Clock, utc_now
from models.promotion import PromotionRequestModel
from models.user import UserModel
from schemas.promotion import PendingPromotion, PromotionRequest
from schemas.user import User
from utils.converters import model_to_promotion
from utils.user_manager import UserManager

logger = logging.getLogger(__name__)


class PromotionManager:
    """Manages role assignment and admin promotion requests."""

    def __init__(self, db: Session, clock: Clock = utc_now):
        """Initialize PromotionManager.

        Args:
            db: SQLAlchemy Session.
            clock: Source of timestamps.
        """
        self.db = db
        self.clock = clock
        self.users = UserManager(db, clock=clock)

    def _require_admin(self, user_id: str) -> User:
        user = self.users.require_user(user_id)
        if not user.is_admin:
            logger.warning("Non-admin user %s attempted an admin action", user_id)
            raise NotAdminError(user_id)
        return user

    def assign_role(self, actor_id: str, target_id: str, role: str) -> User:
        """Directly set another user's role to student or instructor.

        Args:
            actor_id: Admin performing the change.
            target_id: User whose role changes.
            role: 'student' or 'instructor'.

        Returns:
            The updated user.

        Raises:
            NotAdminError: If the actor is not an admin.
            SelfRoleChangeError: If the actor targets themselves.
            AdminPromotionRequiresWorkflowError: If role is 'admin'.
            InvalidRoleError: If role is not directly assignable.
            UserNotFoundError: If the target does not exist.
        """
        self._require_admin(actor_id)
        if target_id == actor_id:
            raise SelfRoleChangeError()
        if role == "admin":
            raise AdminPromotionRequiresWorkflowError()
        if role not in DIRECTLY_ASSIGNABLE_ROLES:
            raise InvalidRoleError(role)

        if not self.users.update_role(target_id, role):
            raise UserNotFoundError(target_id)
        logger.info("Admin %s set role of %s to %s", actor_id, target_id, role)
        return self.users.require_user(target_id)

    def request_promotion(self, target_id: str, requester_id: str) -> PromotionRequest:
        """Open a pending request to make ``target_id`` an admin.

        Raises:
            NotAdminError: If the requester is not an admin.
            UserNotFoundError: If the target does not exist.
            AlreadyAdminError: If the target is already an admin.
            DuplicatePendingRequestError: If a pending request for the target
                already exists.
        """
        self._require_admin(requester_id)
        target = self.users.require_user(target_id)
        if target.is_admin:
            raise AlreadyAdminError(target_id)

        existing = (
            self.db.query(PromotionRequestModel.id)
            .filter(
                PromotionRequestModel.target_user_id == target_id,
                PromotionRequestModel.status == "pending",
            )
            .first()
        )
        if existing:
            raise DuplicatePendingRequestError(target_id)

        model = PromotionRequestModel(
            target_user_id=target_id,
            requested_by=requester_id,
            status="pending",
            created_at=self.clock(),
        )
        # A concurrent request can slip past the check above; the partial
        # unique index on pending targets rejects it.
        try:
            self.db.add(model)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicatePendingRequestError(target_id) from e
        self.db.refresh(model)

        logger.info(
            "Admin %s requested promotion of %s (request %s)",
            requester_id,
            target_id,
            model.id,
        )
        return model_to_promotion(model)

    def get_pending_promotions(self) -> List[PendingPromotion]:
        """Pending requests with target and requester details, newest first."""
        target = aliased(UserModel)
        requester = aliased(UserModel)
        rows = (
            self.db.query(
                PromotionRequestModel,
                target.username,
                target.email,
                target.role,
                requester.username,
            )
            .join(target, target.user_id == PromotionRequestModel.target_user_id)
            .join(requester, requester.user_id == PromotionRequestModel.requested_by)
            .filter(PromotionRequestModel.status == "pending")
            .order_by(PromotionRequestModel.created_at.desc(), PromotionRequestModel.id.desc())
            .all()
        )
        return [
            PendingPromotion(
                **model_to_promotion(model).model_dump(),
                target_username=target_username,
                target_email=target_email,
                target_current_role=target_role,
                requested_by_username=requester_username,
            )
            for model, target_username, target_email, target_role, requester_username in rows
        ]

    def get_request(self, request_id: int) -> PromotionRequest:
        model = (
            self.db.query(PromotionRequestModel)
            .filter(PromotionRequestModel.id == request_id)
            .first()
        )
        if model is None:
            raise PromotionRequestNotFoundError(request_id)
        return model_to_promotion(model)

    def resolve_promotion(
        self, request_id: int, approver_id: str, approve: bool
    ) -> PromotionRequest:
        """Approve or reject a pending request.

        The requesting admin can never resolve their own request. Approval
        flips the request and makes the target an admin in one transaction:
        if the role update fails, everything is rolled back, the request stays
        pending and ``PromotionPartialFailureError`` is raised.

        Raises:
            PromotionRequestNotFoundError: If no pending request has this id,
                including when another admin resolved it first.
            SelfApprovalForbiddenError: If the approver made the request.
            NotAdminError: If the approver is not an admin.
            PromotionPartialFailureError: If the target's role could not be
                updated.
        """
        model = (
            self.db.query(PromotionRequestModel)
            .filter(
                PromotionRequestModel.id == request_id,
                PromotionRequestModel.status == "pending",
            )
            .first()
        )
        if model is None:
            raise PromotionRequestNotFoundError(request_id)
        if model.requested_by == approver_id:
            logger.warning(
                "Admin %s attempted to resolve their own promotion request %s",
                approver_id,
                request_id,
            )
            raise SelfApprovalForbiddenError()
        self._require_admin(approver_id)

        target_id = model.target_user_id
        new_status = "approved" if approve else "rejected"

        try:
            # Conditional on still being pending so two approvers cannot both win
            result = self.db.execute(
                update(PromotionRequestModel)
                .where(
                    PromotionRequestModel.id == request_id,
                    PromotionRequestModel.status == "pending",
                )
                .values(
                    status=new_status,
                    approved_by=approver_id,
                    resolved_at=self.clock(),
                )
            )
            if result.rowcount != 1:
                self.db.rollback()
                raise PromotionRequestNotFoundError(request_id)

            if approve and not self.users.update_role(target_id, "admin", commit=False):
                self.db.rollback()
                logger.error(
                    "Promotion %s approved but target %s is gone; rolled back",
                    request_id,
                    target_id,
                )
                raise PromotionPartialFailureError(request_id, "target user not found")

            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to resolve promotion %s: %s", request_id, e)
            raise PromotionPartialFailureError(request_id, str(e)) from e

        logger.info(
            "Admin %s %s promotion request %s for %s",
            approver_id,
            new_status,
            request_id,
            target_id,
        )
        return self.get_request(request_id)
