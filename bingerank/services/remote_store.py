"""Remote persisted copy of the ranked and want-to-watch lists."""

from __future__ import annotations

import logging
from datetime import timezone
from typing import Protocol, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import RankedShowRecord, ShowRecord, WantToWatchRecord
from ..errors import RemoteError
from ..models import Show

logger = logging.getLogger(__name__)


class PersistedStore(Protocol):
    """Operations the sync adapter needs from the remote store.

    Every method is scoped to one user and raises :class:`RemoteError` on
    failure.
    """

    async def upsert_metadata(self, user_id: str, shows: Sequence[Show]) -> None:
        ...

    async def replace_ranked_rows(
        self, user_id: str, ordered_external_ids: Sequence[int]
    ) -> None:
        ...

    async def replace_wish_rows(
        self, user_id: str, external_ids: Sequence[int]
    ) -> None:
        ...

    async def read_ranked(self, user_id: str) -> list[int]:
        ...

    async def read_wish(self, user_id: str) -> list[int]:
        ...

    async def read_metadata(
        self, user_id: str, external_ids: Sequence[int]
    ) -> list[Show]:
        ...


class SQLPersistedStore:
    """:class:`PersistedStore` backed by the SQLAlchemy tables in ``db_models``."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def upsert_metadata(self, user_id: str, shows: Sequence[Show]) -> None:
        by_id = {show.external_id: show for show in shows if show.external_id is not None}
        if not by_id:
            return
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(ShowRecord).where(
                        ShowRecord.user_id == user_id,
                        ShowRecord.tmdb_id.in_(list(by_id)),
                    )
                )
                existing = {record.tmdb_id: record for record in result.scalars()}
                for tmdb_id, show in by_id.items():
                    record = existing.get(tmdb_id)
                    if record is None:
                        record = ShowRecord(
                            user_id=user_id,
                            tmdb_id=tmdb_id,
                            local_id=show.id,
                            created_at=show.created_at,
                        )
                        session.add(record)
                    record.title = show.title
                    record.poster_path = show.poster_path
                    record.year = show.year
                    record.genres = list(show.genres)
                    record.overview = show.overview
                await session.commit()
        except SQLAlchemyError as exc:
            raise _remote_error("upsert show metadata", exc) from exc

    async def replace_ranked_rows(
        self, user_id: str, ordered_external_ids: Sequence[int]
    ) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(
                    delete(RankedShowRecord).where(RankedShowRecord.user_id == user_id)
                )
                session.add_all(
                    RankedShowRecord(
                        user_id=user_id, tmdb_id=tmdb_id, rank_position=position
                    )
                    for position, tmdb_id in enumerate(ordered_external_ids)
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise _remote_error("replace ranked shows", exc) from exc

    async def replace_wish_rows(
        self, user_id: str, external_ids: Sequence[int]
    ) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(
                    delete(WantToWatchRecord).where(WantToWatchRecord.user_id == user_id)
                )
                session.add_all(
                    WantToWatchRecord(user_id=user_id, tmdb_id=tmdb_id)
                    for tmdb_id in external_ids
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise _remote_error("replace want-to-watch", exc) from exc

    async def read_ranked(self, user_id: str) -> list[int]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(RankedShowRecord.tmdb_id)
                    .where(RankedShowRecord.user_id == user_id)
                    .order_by(RankedShowRecord.rank_position, RankedShowRecord.id)
                )
                return list(result.scalars())
        except SQLAlchemyError as exc:
            raise _remote_error("read ranked shows", exc) from exc

    async def read_wish(self, user_id: str) -> list[int]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(WantToWatchRecord.tmdb_id)
                    .where(WantToWatchRecord.user_id == user_id)
                    .order_by(WantToWatchRecord.created_at, WantToWatchRecord.id)
                )
                return list(result.scalars())
        except SQLAlchemyError as exc:
            raise _remote_error("read want-to-watch", exc) from exc

    async def read_metadata(
        self, user_id: str, external_ids: Sequence[int]
    ) -> list[Show]:
        if not external_ids:
            return []
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(ShowRecord).where(
                        ShowRecord.user_id == user_id,
                        ShowRecord.tmdb_id.in_(list(external_ids)),
                    )
                )
                return [self._record_to_show(record) for record in result.scalars()]
        except SQLAlchemyError as exc:
            raise _remote_error("read show metadata", exc) from exc

    @staticmethod
    def _record_to_show(record: ShowRecord) -> Show:
        created_at = record.created_at
        if created_at is not None and created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        payload: dict[str, object] = {
            "external_id": record.tmdb_id,
            "title": record.title,
            "poster_path": record.poster_path,
            "year": record.year,
            "genres": record.genres,
            "overview": record.overview,
        }
        if record.local_id:
            payload["id"] = record.local_id
        if created_at is not None:
            payload["created_at"] = created_at
        return Show.model_validate(payload)


def _remote_error(action: str, exc: SQLAlchemyError) -> RemoteError:
    logger.warning("Persisted store failed to %s: %s", action, exc)
    return RemoteError(str(exc))
