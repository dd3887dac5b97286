"""
Email template schemas.
"""
from datetime import datetime
from typing import Optional
from pydantic import Field

from .common import CamelModel


class TemplateCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    subject: Optional[str] = Field(None, max_length=500)
    html_content: str = Field(..., min_length=1)
    text_content: Optional[str] = None


class TemplateUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    subject: Optional[str] = Field(None, max_length=500)
    html_content: Optional[str] = Field(None, min_length=1)
    text_content: Optional[str] = None
    is_active: Optional[bool] = None


class TemplateDuplicate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)


class Template(CamelModel):
    """Template response schema."""
    id: int
    user_id: int
    name: str
    subject: Optional[str] = None
    html_content: str
    text_content: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None
