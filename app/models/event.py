"""
Provider webhook event log model.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.core.database import Base


class ProviderEvent(Base):
    """Raw inbound webhook event, kept for auditing and retry."""

    __tablename__ = "provider_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id", ondelete="SET NULL"), index=True)
    recipient_email = Column(String(255), nullable=False, default="")
    event_type = Column(String(50), nullable=False, default="unknown", index=True)
    provider_message_id = Column(String(255))
    provider_event_id = Column(String(255), index=True)
    event_data = Column(JSON, nullable=False)
    processed = Column(Boolean, default=False, nullable=False, index=True)
    error_message = Column(String)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    campaign = relationship("Campaign", back_populates="events")
