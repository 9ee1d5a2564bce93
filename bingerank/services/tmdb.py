"""Read-only client for TV show metadata from The Movie Database (TMDB)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..config import Settings
from ..errors import RemoteError
from ..models import Show
from ..utils import year_from_date

logger = logging.getLogger(__name__)

MAX_CAST = 10


@dataclass(slots=True)
class CatalogCandidate:
    """Normalized view of a TMDB TV search result."""

    tmdb_id: int
    title: str
    year: str | None
    poster_path: str | None
    overview: str


@dataclass(slots=True)
class ShowDetails:
    """Descriptive fields for a single TMDB TV show."""

    tmdb_id: int
    title: str
    year: str | None
    poster_path: str | None
    overview: str
    genres: list[str] = field(default_factory=list)
    seasons: int | None = None
    episodes: int | None = None
    cast: list[str] = field(default_factory=list)

    def to_show(self) -> Show:
        return Show.create(
            self.title,
            external_id=self.tmdb_id,
            poster_path=self.poster_path,
            year=self.year,
            overview=self.overview,
            genres=self.genres,
        )


class TMDBClient:
    """Client responsible for searching TMDB and resolving show details."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        if not settings.tmdb_api_key:
            raise ValueError("TMDB API key is required when initialising TMDBClient")
        self._settings = settings
        self._client = http_client

    async def search_by_title(self, query: str) -> list[CatalogCandidate]:
        """Return TV shows matching ``query``, best TMDB match first."""

        cleaned = (query or "").strip()
        if not cleaned:
            return []

        data = await self._get(
            "/search/tv",
            {"query": cleaned, "include_adult": "false", "page": 1},
        )
        candidates: list[CatalogCandidate] = []
        for result in data.get("results") or []:
            if not isinstance(result, dict) or result.get("id") is None:
                continue
            candidates.append(
                CatalogCandidate(
                    tmdb_id=int(result["id"]),
                    title=result.get("name") or result.get("title") or "Untitled",
                    year=year_from_date(result.get("first_air_date")),
                    poster_path=result.get("poster_path"),
                    overview=result.get("overview") or "",
                )
            )
        return candidates[: self._settings.search_result_limit]

    async def get_details(self, external_id: int) -> ShowDetails:
        """Return descriptive fields and top-billed cast for one show."""

        data = await self._get(f"/tv/{external_id}")
        credits = await self._get(f"/tv/{external_id}/credits")

        genres = [
            genre["name"]
            for genre in data.get("genres") or []
            if isinstance(genre, dict) and isinstance(genre.get("name"), str)
        ]
        cast = [
            member["name"]
            for member in (credits.get("cast") or [])[:MAX_CAST]
            if isinstance(member, dict) and isinstance(member.get("name"), str)
        ]
        return ShowDetails(
            tmdb_id=int(data.get("id") or external_id),
            title=data.get("name") or "Untitled",
            year=year_from_date(data.get("first_air_date")),
            poster_path=data.get("poster_path"),
            overview=data.get("overview") or "",
            genres=genres,
            seasons=self._coerce_count(data.get("number_of_seasons")),
            episodes=self._coerce_count(data.get("number_of_episodes")),
            cast=cast,
        )

    async def _get(
        self, path: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        query: dict[str, Any] = {
            "api_key": self._settings.tmdb_api_key,
            "language": self._settings.tmdb_language,
        }
        if params:
            query.update({key: value for key, value in params.items() if value is not None})

        try:
            response = await self._client.get(path, params=query)
        except httpx.HTTPError as exc:
            logger.warning("TMDB request to %s failed: %s", path, exc)
            raise RemoteError(f"TMDB request failed: {exc}") from exc

        if response.status_code >= 400:
            logger.warning(
                "TMDB request to %s failed (%s): %s",
                path,
                response.status_code,
                response.text,
            )
            raise RemoteError(
                f"TMDB error {response.status_code}: "
                f"{response.text or response.reason_phrase}"
            )
        payload = response.json()
        return payload if isinstance(payload, dict) else {}

    @staticmethod
    def _coerce_count(value: Any) -> int | None:
        return value if isinstance(value, int) else None
