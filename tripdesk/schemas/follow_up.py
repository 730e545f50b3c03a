"""
Follow-up schemas
"""
from datetime import datetime
from typing import Optional

from pydantic import Field

from tripdesk.models.follow_up import FollowUpPriority, FollowUpStatus, FollowUpType
from .base import PatchModel, RecordModel


class FollowUpCreate(RecordModel):
    id: Optional[str] = None
    lead_id: str = Field(min_length=1)
    lead_name: Optional[str] = None
    type: FollowUpType = FollowUpType.CALL
    description: str = ''
    scheduled_at: datetime
    reminder_enabled: bool = True
    priority: FollowUpPriority = FollowUpPriority.MEDIUM
    status: FollowUpStatus = FollowUpStatus.PENDING
    assigned_to: Optional[int] = None


class FollowUpPatch(PatchModel):
    type: Optional[FollowUpType] = None
    description: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    reminder_enabled: Optional[bool] = None
    priority: Optional[FollowUpPriority] = None
    status: Optional[FollowUpStatus] = None
    assigned_to: Optional[int] = None
    completed_at: Optional[datetime] = None
