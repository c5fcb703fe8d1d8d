"""
Persistence gateway.

The rest of the service only sees the key-value contract defined by
ItemStore: put / get / query by sort-key prefix / range query on a secondary
index. SQLItemStore implements it on top of a single SQLAlchemy table.

Every call is bounded by a timeout; timeouts and driver errors surface as
PersistenceError so callers can fall back to the offline queue and retry.
"""
import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Awaitable, TypeVar

from sqlalchemy import and_, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from liftcycle.core.exceptions import PersistenceError
from liftcycle.core.metrics import track_store_operation
from liftcycle.models.item import StoreItem
from liftcycle.repositories.keys import GSI_BY_CYCLE, GSI_BY_DATE

logger = logging.getLogger(__name__)

T = TypeVar('T')

SortKeyRange = tuple[str | None, str | None]


class ItemStore(ABC):
    """Abstract key-value store with prefix and secondary-index queries."""

    @abstractmethod
    async def put(self, item: dict) -> None:
        """Insert or fully replace the item identified by item["PK"], item["SK"]."""

    @abstractmethod
    async def get(self, partition_key: str, sort_key: str) -> dict | None:
        ...

    @abstractmethod
    async def delete(self, partition_key: str, sort_key: str) -> None:
        ...

    @abstractmethod
    async def query_by_prefix(
        self,
        partition_key: str,
        sort_key_prefix: str,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict]:
        ...

    @abstractmethod
    async def query_range(
        self,
        index_name: str,
        partition_key: str,
        sort_key_range: SortKeyRange | None = None,
        limit: int | None = None,
    ) -> list[dict]:
        """Query a secondary index; both range bounds are inclusive."""


class SQLItemStore(ItemStore):
    """ItemStore backed by the `items` table."""

    _INDEX_COLUMNS = {
        GSI_BY_DATE: (StoreItem.gsi1pk, StoreItem.gsi1sk),
        GSI_BY_CYCLE: (StoreItem.gsi2pk, StoreItem.gsi2sk),
    }

    def __init__(self, session_maker: async_sessionmaker[AsyncSession], timeout: float = 5.0):
        self._session_maker = session_maker
        self._timeout = timeout

    async def _guard(self, operation: str, call: Awaitable[T]) -> T:
        start = time.perf_counter()
        try:
            result = await asyncio.wait_for(call, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            track_store_operation(operation, "timeout", time.perf_counter() - start)
            logger.warning(f"Item store {operation} timed out after {self._timeout}s")
            raise PersistenceError(operation, f"Item store {operation} timed out") from e
        except (SQLAlchemyError, OSError) as e:
            track_store_operation(operation, "error", time.perf_counter() - start)
            logger.warning(f"Item store {operation} failed: {e}")
            raise PersistenceError(operation, f"Item store {operation} failed: {e}") from e
        track_store_operation(operation, "ok", time.perf_counter() - start)
        return result

    async def put(self, item: dict) -> None:
        if not item.get("PK") or not item.get("SK"):
            raise ValueError("item requires PK and SK")
        if not item.get("type"):
            raise ValueError("item requires a type")

        async def _put():
            async with self._session_maker() as session:
                await session.merge(StoreItem.from_dict(item))
                await session.commit()

        await self._guard("put", _put())

    async def get(self, partition_key: str, sort_key: str) -> dict | None:
        async def _get():
            async with self._session_maker() as session:
                row = await session.get(StoreItem, (partition_key, sort_key))
                return row.to_dict() if row else None

        return await self._guard("get", _get())

    async def delete(self, partition_key: str, sort_key: str) -> None:
        async def _delete():
            async with self._session_maker() as session:
                await session.execute(
                    delete(StoreItem).where(
                        and_(StoreItem.pk == partition_key, StoreItem.sk == sort_key)
                    )
                )
                await session.commit()

        await self._guard("delete", _delete())

    async def query_by_prefix(
        self,
        partition_key: str,
        sort_key_prefix: str,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict]:
        query = (
            select(StoreItem)
            .where(
                and_(
                    StoreItem.pk == partition_key,
                    StoreItem.sk.startswith(sort_key_prefix, autoescape=True),
                )
            )
            .order_by(StoreItem.sk.desc() if descending else StoreItem.sk.asc())
        )
        if limit:
            query = query.limit(limit)

        return await self._guard("query", self._fetch(query))

    async def query_range(
        self,
        index_name: str,
        partition_key: str,
        sort_key_range: SortKeyRange | None = None,
        limit: int | None = None,
    ) -> list[dict]:
        if index_name not in self._INDEX_COLUMNS:
            raise ValueError(f"Unknown index: {index_name}")
        pk_column, sk_column = self._INDEX_COLUMNS[index_name]

        conditions = [pk_column == partition_key]
        if sort_key_range:
            low, high = sort_key_range
            if low is not None:
                conditions.append(sk_column >= low)
            if high is not None:
                conditions.append(sk_column <= high)

        query = select(StoreItem).where(and_(*conditions)).order_by(sk_column.asc())
        if limit:
            query = query.limit(limit)

        return await self._guard("query_range", self._fetch(query))

    async def _fetch(self, query) -> list[dict]:
        async with self._session_maker() as session:
            result = await session.execute(query)
            return [row.to_dict() for row in result.scalars().all()]
