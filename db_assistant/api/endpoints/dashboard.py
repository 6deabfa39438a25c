from fastapi import APIRouter
from sqlalchemy import desc, func, select

from db_assistant.core import models, schemas
from db_assistant.core.security import user_dep
from db_assistant.api.deps import db_dep, get_owned_project

router = APIRouter(prefix="/api", tags=["Dashboard"])

RECENT_QUERIES_LIMIT = 10


@router.get("/dashboard", response_model=schemas.UserDashboardResponse)
async def get_user_dashboard(current_user: user_dep, db: db_dep):
    """Counts across every live project of the current user."""
    live_projects = select(models.Project.id).where(
        models.Project.user_id == current_user.id,
        models.Project.deleted_at.is_(None),
    )

    total_projects = await db.scalar(
        select(func.count()).select_from(live_projects.subquery())
    )
    total_queries = await db.scalar(
        select(func.count(models.QueryLog.id)).where(
            models.QueryLog.project_id.in_(live_projects),
            models.QueryLog.deleted_at.is_(None),
        )
    )
    total_messages = await db.scalar(
        select(func.count(models.Message.id)).where(
            models.Message.project_id.in_(live_projects),
            models.Message.deleted_at.is_(None),
        )
    )

    return {
        "total_projects": total_projects or 0,
        "total_queries": total_queries or 0,
        "total_messages": total_messages or 0,
    }


@router.get("/projects/{project_id}/summary", response_model=schemas.ProjectSummaryResponse)
async def get_project_summary(project_id: int, current_user: user_dep, db: db_dep):
    project = await get_owned_project(db, project_id, current_user.id)

    live_queries = (
        models.QueryLog.project_id == project.id,
        models.QueryLog.deleted_at.is_(None),
    )

    total_queries = await db.scalar(
        select(func.count(models.QueryLog.id)).where(*live_queries)
    )

    recent_query = (
        select(models.QueryLog)
        .where(*live_queries)
        .order_by(desc(models.QueryLog.created_at), desc(models.QueryLog.id))
        .limit(RECENT_QUERIES_LIMIT)
    )
    result = await db.execute(recent_query)

    return {
        "project_id": project.id,
        "project_name": project.name,
        "database_type": project.database_type,
        "total_queries": total_queries or 0,
        "recent_queries": result.scalars().all(),
    }
