from typing import Annotated

from fastapi import Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from db_assistant.core import models
from db_assistant.core.database import get_db
from db_assistant.core.proxy_client import ProxyClient, get_proxy_client

db_dep = Annotated[AsyncSession, Depends(get_db)]
proxy_dep = Annotated[ProxyClient, Depends(get_proxy_client)]


async def get_owned_project(
    db: AsyncSession, project_id: int, user_id: int
) -> models.Project:
    """Load a live project owned by `user_id` with its permission, or 404."""
    query = (
        select(models.Project)
        .options(selectinload(models.Project.permission))
        .where(
            models.Project.id == project_id,
            models.Project.user_id == user_id,
            models.Project.deleted_at.is_(None),
        )
        .execution_options(populate_existing=True)
    )
    result = await db.execute(query)
    project = result.scalar_one_or_none()

    if project is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Project not found"
        )
    return project
