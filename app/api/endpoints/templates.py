"""
Email template endpoints.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import NotFoundException
from app.core.logging import get_logger
from app.models.template import EmailTemplate
from app.models.user import User
from app.schemas.common import ApiResponse
from app.schemas.template import Template, TemplateCreate, TemplateUpdate, TemplateDuplicate
from .auth import get_current_user

logger = get_logger(__name__)
router = APIRouter()


async def get_owned_template(template_id: int, user_id: int, db: AsyncSession) -> EmailTemplate:
    result = await db.execute(
        select(EmailTemplate).where(
            EmailTemplate.id == template_id,
            EmailTemplate.user_id == user_id,
        )
    )
    template = result.scalar_one_or_none()
    if template is None:
        raise NotFoundException("Template not found")
    return template


@router.get("", response_model=ApiResponse[List[Template]])
async def list_templates(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the user's templates, newest first."""
    result = await db.execute(
        select(EmailTemplate)
        .where(EmailTemplate.user_id == current_user.id)
        .order_by(desc(EmailTemplate.created_at), desc(EmailTemplate.id))
    )
    templates = result.scalars().all()

    return ApiResponse(
        success=True,
        data=[Template.model_validate(t) for t in templates],
    )


@router.get("/{template_id}", response_model=ApiResponse[Template])
async def get_template(
    template_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    template = await get_owned_template(template_id, current_user.id, db)
    return ApiResponse(success=True, data=Template.model_validate(template))


@router.post("", response_model=ApiResponse[Template], status_code=status.HTTP_201_CREATED)
async def create_template(
    request: TemplateCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    template = EmailTemplate(
        user_id=current_user.id,
        name=request.name.strip(),
        subject=request.subject,
        html_content=request.html_content,
        text_content=request.text_content,
        is_active=True,
    )
    db.add(template)
    await db.commit()
    await db.refresh(template)

    logger.info("Template created", template_id=template.id, user_id=current_user.id)

    return ApiResponse(
        success=True,
        data=Template.model_validate(template),
        message="Template created successfully",
    )


@router.put("/{template_id}", response_model=ApiResponse[Template])
async def update_template(
    template_id: int,
    request: TemplateUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Partially update a template; only supplied fields change."""
    template = await get_owned_template(template_id, current_user.id, db)

    for field, value in request.model_dump(exclude_unset=True).items():
        if field in ("name", "html_content", "is_active") and value is None:
            continue
        setattr(template, field, value)

    await db.commit()
    await db.refresh(template)

    logger.info("Template updated", template_id=template.id, user_id=current_user.id)

    return ApiResponse(
        success=True,
        data=Template.model_validate(template),
        message="Template updated successfully",
    )


@router.delete("/{template_id}", response_model=ApiResponse[dict])
async def delete_template(
    template_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    template = await get_owned_template(template_id, current_user.id, db)
    await db.delete(template)
    await db.commit()

    logger.info("Template deleted", template_id=template_id, user_id=current_user.id)

    return ApiResponse(success=True, data={}, message="Template deleted successfully")


@router.post(
    "/{template_id}/duplicate",
    response_model=ApiResponse[Template],
    status_code=status.HTTP_201_CREATED,
)
async def duplicate_template(
    template_id: int,
    request: Optional[TemplateDuplicate] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Copy a template; the copy is always active."""
    original = await get_owned_template(template_id, current_user.id, db)

    copy = EmailTemplate(
        user_id=current_user.id,
        name=request.name.strip() if request and request.name else f"{original.name} (Copy)",
        subject=original.subject,
        html_content=original.html_content,
        text_content=original.text_content,
        is_active=True,
    )
    db.add(copy)
    await db.commit()
    await db.refresh(copy)

    logger.info("Template duplicated", template_id=template_id, copy_id=copy.id)

    return ApiResponse(
        success=True,
        data=Template.model_validate(copy),
        message="Template duplicated successfully",
    )
