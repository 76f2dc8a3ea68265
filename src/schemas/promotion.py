from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class PromotionRequest(BaseModel):
    id: int
    target_user_id: str
    requested_by: str
    approved_by: Optional[str] = None
    status: str
    created_at: datetime
    resolved_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PendingPromotion(PromotionRequest):
    """Pending request joined with the people involved."""

    target_username: str
    target_email: str
    target_current_role: str
    requested_by_username: str
