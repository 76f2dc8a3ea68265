"""Conversions between ORM rows and pydantic schemas."""

from typing import Any, Dict

from models.progress import ProgressModel
from models.promotion import PromotionRequestModel
from models.user import UserModel
from schemas.progress import ProgressRecord, SubmissionPayload
from schemas.promotion import PromotionRequest
from schemas.user import User


def user_to_model(user: User) -> UserModel:
    return UserModel(
        user_id=user.user_id,
        username=user.username,
        email=user.email,
        password_hash=user.password_hash,
        role=user.role,
        display_name=user.display_name,
        create_at=user.create_at,
    )


def model_to_user(model: UserModel) -> User:
    return User(
        user_id=model.user_id,
        username=model.username,
        email=model.email,
        password_hash=model.password_hash,
        role=model.role,
        display_name=model.display_name,
        create_at=model.create_at,
    )


def progress_fields(model: ProgressModel) -> Dict[str, Any]:
    """Column values of a progress row with the payload deserialized."""
    return {
        "id": model.id,
        "user_id": model.user_id,
        "skill_node_id": model.skill_node_id,
        "status": model.status,
        "submission": SubmissionPayload.deserialize(model.submission_payload),
        "submission_notes": model.submission_notes,
        "submitted_at": model.submitted_at,
        "reviewed_by": model.reviewed_by,
        "review_notes": model.review_notes,
        "reviewed_at": model.reviewed_at,
        "created_at": model.created_at,
        "updated_at": model.updated_at,
    }


def model_to_progress(model: ProgressModel, **extra: Any) -> ProgressRecord:
    return ProgressRecord(**progress_fields(model), **extra)


def model_to_promotion(model: PromotionRequestModel) -> PromotionRequest:
    return PromotionRequest.model_validate(model)
