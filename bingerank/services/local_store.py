"""Scoped on-disk storage for the local copy of a user's lists."""

from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import quote

from pydantic import TypeAdapter, ValidationError

from ..models import Show

logger = logging.getLogger(__name__)

STATE_BASE = "bingerank.state"
WISH_BASE = "bingerank.wantToWatch"
GUEST_SCOPE = "local"

_SHOWS = TypeAdapter(list[Show])


def scope_name(user_id: str | None) -> str:
    """Return the storage scope for ``user_id``; signed-out users share the guest scope."""

    cleaned = (user_id or "").strip()
    return cleaned or GUEST_SCOPE


def state_key(user_id: str | None) -> str:
    return f"{STATE_BASE}.{scope_name(user_id)}"


def wish_key(user_id: str | None) -> str:
    return f"{WISH_BASE}.{scope_name(user_id)}"


class LocalStore:
    """Persist one ranked record and one wish record per scope as JSON files."""

    def __init__(self, directory: Path | str):
        self._directory = Path(directory)

    def load_ranked(self, user_id: str | None) -> list[Show]:
        return self._read(state_key(user_id))

    def save_ranked(self, user_id: str | None, shows: list[Show]) -> None:
        self._write(state_key(user_id), shows)

    def load_wish(self, user_id: str | None) -> list[Show]:
        return self._read(wish_key(user_id))

    def save_wish(self, user_id: str | None, shows: list[Show]) -> None:
        self._write(wish_key(user_id), shows)

    def clear(self, user_id: str | None) -> None:
        """Remove both records for the scope of ``user_id``."""

        for key in (state_key(user_id), wish_key(user_id)):
            self._path_for(key).unlink(missing_ok=True)

    def _path_for(self, key: str) -> Path:
        # Percent-encoding keeps distinct scopes in distinct files.
        return self._directory / f"{quote(key, safe='')}.json"

    def _read(self, key: str) -> list[Show]:
        path = self._path_for(key)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return []
        try:
            return _SHOWS.validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable local record %s", key)
            return []

    def _write(self, key: str, shows: list[Show]) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        path = self._path_for(key)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_bytes(_SHOWS.dump_json(shows))
        tmp_path.replace(path)
