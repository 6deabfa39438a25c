"""Chat with the SQL assistant for one project.

Flow:
1. Store the user's message
2. Ask the proxy's AI model for an answer (and maybe a SQL statement)
3. Store the assistant's answer as JSON {content, query, ...}
4. Log a proposed statement as a "generated" query (nothing is executed here)
"""

import logging
from typing import List

import httpx
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db_assistant.core import models, schemas
from db_assistant.core.proxy_client import ProxyClient, ProxyError
from db_assistant.core.query_gate import audit
from db_assistant.core.query_gate.classifier import classify, describe

logger = logging.getLogger(__name__)

APOLOGY = "I'm sorry, I encountered an error while processing your request: "


class AssistantError(Exception):
    """The proxy could not produce an answer; an apology was stored."""


async def _save_message(
    db: AsyncSession, project_id: int, role: schemas.MessageRole, content: str
) -> models.Message:
    message = models.Message(project_id=project_id, role=role.value, content=content)
    db.add(message)
    await db.commit()
    await db.refresh(message)
    return message


def build_ai_response(generated: schemas.GenerateSQLResponse) -> schemas.AIResponseData:
    ai_response = schemas.AIResponseData(content=generated.content)

    if generated.query:
        query_type = classify(generated.query)
        ai_response.query = generated.query
        ai_response.query_type = query_type.value
        ai_response.query_description = describe(query_type)

    return ai_response


async def send_message(
    db: AsyncSession,
    proxy: ProxyClient,
    project: models.Project,
    content: str,
) -> schemas.ChatMessageResponse:
    user_message = await _save_message(
        db, project.id, schemas.MessageRole.USER, content
    )

    # TODO: send the project schema as db_schema once the proxy exposes introspection
    try:
        generated = await proxy.generate_sql(content, project.database_type)
    except (ProxyError, httpx.HTTPError) as error:
        logger.error(f"SQL generation failed for project {project.id}: {error}")
        await _save_message(
            db, project.id, schemas.MessageRole.ASSISTANT, APOLOGY + str(error)
        )
        raise AssistantError(str(error)) from error

    ai_response = build_ai_response(generated)
    ai_message = await _save_message(
        db,
        project.id,
        schemas.MessageRole.ASSISTANT,
        ai_response.model_dump_json(exclude_none=True),
    )

    if ai_response.query:
        db.add(audit.build_generated_entry(project.id, ai_response.query))
        await db.commit()

    return schemas.ChatMessageResponse(
        user_message=schemas.MessageResponse.model_validate(user_message),
        ai_message=schemas.MessageResponse.model_validate(ai_message),
        ai_response=ai_response,
    )


def parse_history_item(message: models.Message) -> schemas.ChatHistoryItem:
    item = schemas.ChatHistoryItem(
        id=message.id,
        project_id=message.project_id,
        role=message.role,
        created_at=message.created_at,
    )

    if message.role == schemas.MessageRole.USER.value:
        item.content = message.content
        return item

    # Assistant rows are JSON, except apologies and rows from older versions
    try:
        item.ai_response = schemas.AIResponseData.model_validate_json(message.content)
    except ValidationError:
        item.content = message.content
    return item


async def get_chat_history(
    db: AsyncSession, project_id: int
) -> List[schemas.ChatHistoryItem]:
    query = (
        select(models.Message)
        .where(
            models.Message.project_id == project_id,
            models.Message.deleted_at.is_(None),
        )
        .order_by(models.Message.created_at.asc(), models.Message.id.asc())
    )
    result = await db.execute(query)
    return [parse_history_item(message) for message in result.scalars().all()]
