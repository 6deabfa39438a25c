import logging
from datetime import datetime, timezone
from typing import List
from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select, update
from sqlalchemy.orm import selectinload

from db_assistant.core import schemas, models
from db_assistant.core.security import user_dep
from db_assistant.api.deps import db_dep, get_owned_project

router = APIRouter(prefix="/api/projects", tags=["Projects"])

PERMISSION_FIELDS = ("allow_ddl", "allow_write", "allow_read", "allow_delete")


# Create project together with its permission row
@router.post(
    "",
    response_model=schemas.ProjectResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_project(
    project: schemas.ProjectCreate, current_user: user_dep, db: db_dep
):
    data = project.model_dump()
    flags = {name: data.pop(name) for name in PERMISSION_FIELDS}
    data["database_type"] = project.database_type.value

    try:
        new_project = models.Project(**data, user_id=current_user.id)
        db.add(new_project)
        await db.flush()  # Need the generated ID for the permission row

        db.add(models.Permission(project_id=new_project.id, **flags))
        await db.commit()
    except Exception as error:
        await db.rollback()
        logging.error(f"Failed to create project: {error}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create project",
        )

    return await get_owned_project(db, new_project.id, current_user.id)


@router.get("", response_model=List[schemas.ProjectResponse])
async def get_projects(current_user: user_dep, db: db_dep):
    query = (
        select(models.Project)
        .options(selectinload(models.Project.permission))
        .where(
            models.Project.user_id == current_user.id,
            models.Project.deleted_at.is_(None),
        )
        .order_by(models.Project.created_at.desc(), models.Project.id.desc())
    )
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/{project_id}", response_model=schemas.ProjectResponse)
async def get_project(project_id: int, current_user: user_dep, db: db_dep):
    return await get_owned_project(db, project_id, current_user.id)


@router.put("/{project_id}", response_model=schemas.ProjectResponse)
async def update_project(
    project_id: int,
    changes: schemas.ProjectUpdate,
    current_user: user_dep,
    db: db_dep,
):
    project = await get_owned_project(db, project_id, current_user.id)

    # Only the fields the client actually sent
    changes_dict = changes.model_dump(exclude_unset=True, exclude_none=True)
    flags = {
        name: changes_dict.pop(name) for name in PERMISSION_FIELDS if name in changes_dict
    }

    for key, value in changes_dict.items():
        setattr(project, key, value)

    if flags:
        # Projects created before permissions existed get a row on first update
        if project.permission is None:
            project.permission = models.Permission(project_id=project.id)
        for key, value in flags.items():
            setattr(project.permission, key, value)

    try:
        await db.commit()
    except Exception as error:
        await db.rollback()
        logging.error(f"Failed to update project {project_id}: {error}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update project",
        )

    return await get_owned_project(db, project_id, current_user.id)


# Soft delete: rows stay for the audit trail but disappear from every read
@router.delete("/{project_id}", status_code=status.HTTP_200_OK)
async def delete_project(project_id: int, current_user: user_dep, db: db_dep):
    project = await get_owned_project(db, project_id, current_user.id)
    now = datetime.now(timezone.utc)

    try:
        project.deleted_at = now
        for dependent in (models.Permission, models.QueryLog, models.Message):
            await db.execute(
                update(dependent)
                .where(dependent.project_id == project_id, dependent.deleted_at.is_(None))
                .values(deleted_at=now)
            )
        await db.commit()
    except Exception as error:
        await db.rollback()
        logging.error(f"Failed to delete project {project_id}: {error}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete project",
        )

    return {"message": "Project deleted successfully"}


@router.get("/{project_id}/permissions", response_model=schemas.PermissionResponse)
async def get_project_permissions(
    project_id: int, current_user: user_dep, db: db_dep
):
    project = await get_owned_project(db, project_id, current_user.id)

    if project.permission is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Permissions not found"
        )
    return project.permission
