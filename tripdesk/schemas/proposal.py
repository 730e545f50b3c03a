"""
Proposal schemas
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from tripdesk.core.database import new_id
from tripdesk.models.proposal import ProposalStatus
from .base import PatchModel, RecordModel


class ProposalOption(BaseModel):
    model_config = ConfigDict(extra='forbid')

    id: str = Field(default_factory=new_id)
    name: str = Field(min_length=1)  # e.g. "Luxury", "Standard"
    description: Optional[str] = None
    price: float = Field(ge=0)
    hotels: List[str] = Field(default_factory=list)
    inclusions: List[str] = Field(default_factory=list)
    exclusions: List[str] = Field(default_factory=list)


class ProposalCreate(RecordModel):
    id: Optional[str] = None
    lead_id: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=300)
    status: ProposalStatus = ProposalStatus.DRAFT
    options: List[ProposalOption] = Field(default_factory=list)
    valid_until: Optional[datetime] = None


class ProposalPatch(PatchModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    status: Optional[ProposalStatus] = None
    options: Optional[List[ProposalOption]] = None
    valid_until: Optional[datetime] = None
