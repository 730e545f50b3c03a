"""
Proposal Model

Priced alternatives sent to a lead; one option is picked at conversion time.
Options are stored inline as a JSON array of
{id, name, description, price, hotels, inclusions, exclusions}.
"""
import enum
from sqlalchemy import Column, String, DateTime, JSON

from tripdesk.core.clock import utcnow
from tripdesk.core.database import Base, RecordMixin, new_id


class ProposalStatus(str, enum.Enum):
    DRAFT = "Draft"
    SENT = "Sent"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"


class Proposal(RecordMixin, Base):
    __tablename__ = 'proposals'

    id = Column(String(36), primary_key=True, default=new_id)
    lead_id = Column(String(36), nullable=False, index=True)
    title = Column(String(300), nullable=False)
    status = Column(String(20), default=ProposalStatus.DRAFT.value)  # ProposalStatus
    options = Column(JSON, default=list)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    valid_until = Column(DateTime(timezone=True))
