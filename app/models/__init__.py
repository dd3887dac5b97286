"""
Database models package.
"""
from .user import User
from .template import EmailTemplate
from .campaign import Campaign, Recipient, CampaignStatistics
from .event import ProviderEvent

__all__ = [
    "User",
    "EmailTemplate",
    "Campaign",
    "Recipient",
    "CampaignStatistics",
    "ProviderEvent",
]
