"""Batch id → record lookups used to enrich payment listings."""

from __future__ import annotations

from typing import Any, Generic, Hashable, Iterable, TypeVar

from services.payments_service.models import Course, User
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class BatchLookup(Generic[K, V]):
    """Fetch rows of ``model`` for a set of keys with one query.

    Used in place of relational joins so listings do not depend on the
    datastore resolving relationships.
    """

    def __init__(self, model: type[V], key_column: Any):
        self.model = model
        self.key_column = key_column

    async def load(self, db: AsyncSession, keys: Iterable[K | None]) -> dict[K, V]:
        distinct = {key for key in keys if key is not None}
        if not distinct:
            return {}
        result = await db.execute(
            select(self.model).where(self.key_column.in_(distinct))
        )
        return {getattr(row, self.key_column.key): row for row in result.scalars()}


users_by_id: BatchLookup[str, User] = BatchLookup(User, User.id)
courses_by_id: BatchLookup[Any, Course] = BatchLookup(Course, Course.id)
