from typing import List
from fastapi import APIRouter, HTTPException, status

from db_assistant.core import schemas
from db_assistant.core.security import user_dep
from db_assistant.api.deps import db_dep, proxy_dep, get_owned_project
from db_assistant.ai_feature import service

router = APIRouter(prefix="/api/chat", tags=["Chat"])


@router.post("/{project_id}", response_model=schemas.ChatMessageResponse)
async def send_message(
    project_id: int,
    message: schemas.SendMessageRequest,
    current_user: user_dep,
    db: db_dep,
    proxy: proxy_dep,
):
    """Ask the assistant; a proposed statement is logged but not executed."""
    project = await get_owned_project(db, project_id, current_user.id)

    try:
        return await service.send_message(db, proxy, project, message.content)
    except service.AssistantError as error:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to generate SQL: {error}",
        )


@router.get("/{project_id}/history", response_model=List[schemas.ChatHistoryItem])
async def get_chat_history(project_id: int, current_user: user_dep, db: db_dep):
    project = await get_owned_project(db, project_id, current_user.id)
    return await service.get_chat_history(db, project.id)
