from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from mediacatalog.schemas.media import GlobalStatsResponse, SeasonEpisodeCount, SeriesStatsResponse
from mediacatalog.services.store import CatalogStore


class StatsAggregator:
    def __init__(self, db: AsyncSession, store: CatalogStore | None = None):
        self.db = db
        self.store = store or CatalogStore(db)

    async def series_stats(self, series_name: str) -> SeriesStatsResponse:
        # No existence check: an unknown name simply counts zero.
        per_season = await self.store.episodes_per_season(series_name)
        return SeriesStatsResponse(
            series_name=series_name,
            total_seasons=await self.store.count_seasons(series_name),
            total_episodes=await self.store.count_episodes(series_name),
            episodes_per_season=[
                SeasonEpisodeCount(season=season, episodes=count) for season, count in per_season
            ],
        )

    async def global_stats(self) -> GlobalStatsResponse:
        movies = await self.store.count_movies()
        series = await self.store.count_series()
        episodes = await self.store.count_episodes()
        return GlobalStatsResponse(
            movies=movies,
            series=series,
            episodes=episodes,
            total=movies + series + episodes,
        )
