"""Reconcile the local lists with the remote persisted store.

Sync uses replace semantics: a push deletes and rewrites the remote ranked and
want-to-watch rows for the user, and a pull rebuilds the local lists from the
remote rows. Ranked beats wished in both directions, so an external id never
ends up on both lists. Shows without an external id stay local-only.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Generic, Sequence, TypeVar

from ..errors import RemoteError
from ..models import Show
from .local_store import LocalStore
from .remote_store import PersistedStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class SyncResult(Generic[T]):
    """Outcome of a pull or push; ``error`` carries the first remote failure verbatim."""

    ok: bool
    data: T | None = None
    error: str | None = None


@dataclass(slots=True)
class HydratedLists:
    ranked: list[Show] = field(default_factory=list)
    wish: list[Show] = field(default_factory=list)


def _unique(ids: Sequence[int]) -> list[int]:
    return list(dict.fromkeys(ids))


class SyncService:
    """Pull remote truth into local lists or push local truth to the remote store."""

    def __init__(self, store: PersistedStore, local_store: LocalStore | None = None):
        self._store = store
        self._local_store = local_store

    async def hydrate(self, user_id: str) -> SyncResult[HydratedLists]:
        """Read the user's lists from the remote store.

        Ranked shows come back in stored position order. Ids without
        resolvable metadata are dropped.
        """

        try:
            ranked_ids = _unique(await self._store.read_ranked(user_id))
            ranked_set = set(ranked_ids)
            wish_ids = [
                tmdb_id
                for tmdb_id in _unique(await self._store.read_wish(user_id))
                if tmdb_id not in ranked_set
            ]
            metadata = await self._store.read_metadata(
                user_id, _unique([*ranked_ids, *wish_ids])
            )
        except RemoteError as exc:
            return SyncResult(ok=False, error=str(exc))

        by_id = {show.external_id: show for show in metadata}
        ranked = [by_id[tmdb_id] for tmdb_id in ranked_ids if tmdb_id in by_id]
        wish = [by_id[tmdb_id] for tmdb_id in wish_ids if tmdb_id in by_id]

        dropped = len(ranked_ids) + len(wish_ids) - len(ranked) - len(wish)
        if dropped:
            logger.warning(
                "Dropped %s remote entries without metadata for %s", dropped, user_id
            )
        logger.info(
            "Hydrated %s ranked and %s wished shows for %s",
            len(ranked),
            len(wish),
            user_id,
        )
        return SyncResult(ok=True, data=HydratedLists(ranked=ranked, wish=wish))

    async def persist(
        self, user_id: str, ranked: Sequence[Show], wish: Sequence[Show]
    ) -> SyncResult[bool]:
        """Replace the remote lists with ``ranked`` and ``wish``.

        Metadata is upserted before any row replacement so rows never reference
        missing shows. Steps already committed stay committed when a later one
        fails.
        """

        ranked_synced = [show for show in ranked if show.external_id is not None]
        ranked_ids = _unique([show.external_id for show in ranked_synced])
        ranked_set = set(ranked_ids)
        wish_synced = [
            show
            for show in wish
            if show.external_id is not None and show.external_id not in ranked_set
        ]
        wish_ids = _unique([show.external_id for show in wish_synced])

        try:
            if ranked_synced or wish_synced:
                await self._store.upsert_metadata(user_id, [*ranked_synced, *wish_synced])
            await self._store.replace_ranked_rows(user_id, ranked_ids)
            await self._store.replace_wish_rows(user_id, wish_ids)
        except RemoteError as exc:
            return SyncResult(ok=False, error=str(exc))

        skipped = len(ranked) - len(ranked_synced)
        if skipped:
            logger.info("%s ranked shows without a TMDB id stay local-only", skipped)
        logger.info(
            "Persisted %s ranked and %s wished shows for %s",
            len(ranked_ids),
            len(wish_ids),
            user_id,
        )
        return SyncResult(ok=True, data=True)

    async def pull(self, user_id: str) -> SyncResult[HydratedLists]:
        """Hydrate and overwrite the local records for ``user_id``."""

        result = await self.hydrate(user_id)
        if result.ok and result.data is not None:
            local_store = self._require_local_store()
            await asyncio.to_thread(local_store.save_ranked, user_id, result.data.ranked)
            await asyncio.to_thread(local_store.save_wish, user_id, result.data.wish)
        return result

    async def push(self, user_id: str) -> SyncResult[bool]:
        """Persist the local records for ``user_id``."""

        local_store = self._require_local_store()
        ranked = await asyncio.to_thread(local_store.load_ranked, user_id)
        wish = await asyncio.to_thread(local_store.load_wish, user_id)
        return await self.persist(user_id, ranked, wish)

    def _require_local_store(self) -> LocalStore:
        if self._local_store is None:
            raise RuntimeError("SyncService was created without a local store")
        return self._local_store
