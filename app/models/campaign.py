"""
Campaign, recipient and campaign statistics models.
"""
from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, Text, CheckConstraint, Numeric, JSON,
    UniqueConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.core.database import Base


CAMPAIGN_STATUSES = ("draft", "sending", "sent", "failed")
RECIPIENT_STATUSES = ("pending", "sent", "delivered", "bounced", "failed", "unsubscribed", "spam")


class Campaign(Base):
    """A single email sent to a fixed recipient list."""

    __tablename__ = "campaigns"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    template_id = Column(Integer, ForeignKey("email_templates.id", ondelete="SET NULL"))
    name = Column(String(255), nullable=False)
    subject = Column(String(500), nullable=False)
    html_content = Column(Text, nullable=False)
    text_content = Column(Text)
    status = Column(String(20), default="draft", nullable=False)
    sent_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'sending', 'sent', 'failed')",
            name="check_campaign_status",
        ),
    )

    user = relationship("User", back_populates="campaigns")
    template = relationship("EmailTemplate", back_populates="campaigns")
    recipients = relationship(
        "Recipient",
        back_populates="campaign",
        cascade="all, delete-orphan",
        order_by="Recipient.id",
    )
    statistics = relationship(
        "CampaignStatistics",
        back_populates="campaign",
        cascade="all, delete-orphan",
        uselist=False,
    )
    events = relationship("ProviderEvent", back_populates="campaign")


class Recipient(Base):
    """One addressee of a campaign and its delivery lifecycle."""

    __tablename__ = "recipients"

    id = Column(Integer, primary_key=True, autoincrement=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(255), nullable=False)
    first_name = Column(String(100))
    last_name = Column(String(100))
    custom_fields = Column(JSON, default=dict)
    status = Column(String(20), default="pending", nullable=False)
    provider_message_id = Column(String(255), index=True)
    sent_at = Column(DateTime(timezone=True))
    delivered_at = Column(DateTime(timezone=True))
    opened_at = Column(DateTime(timezone=True))
    clicked_at = Column(DateTime(timezone=True))
    unsubscribed_at = Column(DateTime(timezone=True))
    bounced_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'sent', 'delivered', 'bounced', 'failed', 'unsubscribed', 'spam')",
            name="check_recipient_status",
        ),
    )

    campaign = relationship("Campaign", back_populates="recipients")


class CampaignStatistics(Base):
    """Most recently computed counts and rates for a campaign."""

    __tablename__ = "campaign_statistics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    campaign_id = Column(Integer, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False)
    total_sent = Column(Integer, default=0, nullable=False)
    total_delivered = Column(Integer, default=0, nullable=False)
    total_opened = Column(Integer, default=0, nullable=False)
    total_clicked = Column(Integer, default=0, nullable=False)
    total_unsubscribed = Column(Integer, default=0, nullable=False)
    total_bounced = Column(Integer, default=0, nullable=False)
    delivery_rate = Column(Numeric(7, 2), default=0, nullable=False)
    open_rate = Column(Numeric(7, 2), default=0, nullable=False)
    click_rate = Column(Numeric(7, 2), default=0, nullable=False)
    unsubscribe_rate = Column(Numeric(7, 2), default=0, nullable=False)
    bounce_rate = Column(Numeric(7, 2), default=0, nullable=False)
    last_updated = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("campaign_id", name="uq_campaign_statistics_campaign"),
    )

    campaign = relationship("Campaign", back_populates="statistics")
