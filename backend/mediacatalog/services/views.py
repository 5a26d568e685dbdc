"""Read-side compositions over the flat series/season/episode tables."""
from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from mediacatalog.database import use_snapshot
from mediacatalog.models import Episode, Season, Series
from mediacatalog.schemas.media import MovieMediaItem
from mediacatalog.schemas.series import (
    EpisodeResponse, SeasonCompleteResponse, SeriesCompleteResponse, SeriesResponse,
)
from mediacatalog.services.store import CatalogStore

logger = logging.getLogger(__name__)


def nest(series: Series, seasons: Sequence[Season], episodes: Sequence[Episode]) -> SeriesCompleteResponse:
    """Attach episodes to their season by exact season number.

    ``seasons`` and ``episodes`` must already be sorted; order is preserved.
    Episodes whose season row does not exist are dropped.
    """
    episodes_by_season: dict[int, list[Episode]] = {}
    for ep in episodes:
        episodes_by_season.setdefault(ep.season_number, []).append(ep)

    season_responses = []
    for s in seasons:
        eps = episodes_by_season.get(s.season_number, [])
        season = SeasonCompleteResponse.model_validate(s)
        season.episodes = [EpisodeResponse.model_validate(ep) for ep in eps]
        season_responses.append(season)

    complete = SeriesCompleteResponse.model_validate(series)
    complete.seasons = season_responses
    return complete


def _as_utc(ts: datetime) -> datetime:
    # SQLite hands back naive values; treat them as UTC.
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


class ViewComposer:
    def __init__(self, db: AsyncSession, store: CatalogStore | None = None,
                 isolation_level: str | None = None):
        self.db = db
        self.store = store or CatalogStore(db)
        self.isolation_level = isolation_level

    async def complete_series(self, name: str) -> SeriesCompleteResponse | None:
        await use_snapshot(self.db, self.isolation_level)
        series = await self.store.find_one_series(name)
        if series is None:
            return None
        seasons = await self.store.find_seasons(name)
        episodes = await self.store.find_episodes(series_name=name)
        return nest(series, seasons, episodes)

    async def complete_catalog(self, search: str | None = None) -> list[SeriesCompleteResponse]:
        await use_snapshot(self.db, self.isolation_level)
        all_series = await self.store.find_series(search)
        names = [s.name for s in all_series]
        seasons = await self.store.find_seasons_for(names)
        episodes = await self.store.find_episodes_for(names)

        seasons_by_series: dict[str, list[Season]] = {}
        for s in seasons:
            seasons_by_series.setdefault(s.series_name, []).append(s)
        episodes_by_series: dict[str, list[Episode]] = {}
        for ep in episodes:
            episodes_by_series.setdefault(ep.series_name, []).append(ep)

        return [
            nest(s, seasons_by_series.get(s.name, []), episodes_by_series.get(s.name, []))
            for s in all_series
        ]

    async def combined_media(self, search: str | None = None) -> list[MovieMediaItem | SeriesResponse]:
        """Movies and series as one flat list, newest first.

        The sort is stable, so items added at the same instant keep store
        order with movies ahead of series.
        """
        await use_snapshot(self.db, self.isolation_level)
        movies = await self.store.find_movies(search)
        series = await self.store.find_series(search)
        items: list[MovieMediaItem | SeriesResponse] = [
            *(MovieMediaItem.model_validate(m) for m in movies),
            *(SeriesResponse.model_validate(s) for s in series),
        ]
        items.sort(key=lambda item: _as_utc(item.added_at), reverse=True)
        return items
