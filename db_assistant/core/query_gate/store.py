from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db_assistant.core import models


class QueryStore:
    """Policy reads and audit writes for the query gate, one session per request."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_policy(self, project_id: int) -> Optional[models.Permission]:
        # populate_existing: always the current row, never a stale identity-map copy
        query = (
            select(models.Permission)
            .where(
                models.Permission.project_id == project_id,
                models.Permission.deleted_at.is_(None),
            )
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return result.scalars().first()

    async def add_log_entry(self, entry: models.QueryLog) -> models.QueryLog:
        try:
            self.db.add(entry)
            await self.db.commit()
            await self.db.refresh(entry)
            return entry
        except Exception:
            await self.db.rollback()
            raise
