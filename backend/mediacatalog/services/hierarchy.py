"""Series → season → episode consistency.

Children reference parents by natural key only, so everything that keeps the
hierarchy coherent lives here: optional parent checks on create (strict
mode), cascading deletes, and re-keying children when a parent's key moves.
Each public method is one transaction; a failure anywhere rolls it back.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from mediacatalog.errors import CatalogError, NotFoundError, PartialCascadeFailure
from mediacatalog.models import Episode, Season, Series
from mediacatalog.schemas.series import (
    EpisodeCreate, EpisodeUpdate, SeasonCreate, SeasonUpdate, SeriesCreate, SeriesUpdate,
)
from mediacatalog.services.store import CatalogStore, transaction, validate_payload

logger = logging.getLogger(__name__)


@dataclass
class CascadeResult:
    deleted_seasons: int = 0
    deleted_episodes: int = 0


class HierarchyService:
    def __init__(self, db: AsyncSession, store: CatalogStore | None = None, strict: bool = False):
        self.db = db
        self.store = store or CatalogStore(db)
        self.strict = strict

    def _transaction(self):
        return transaction(self.db)

    async def _require_series(self, series_name: str) -> None:
        if await self.store.find_one_series(series_name) is None:
            raise NotFoundError(f"Series '{series_name}' not found.")

    async def _require_season(self, series_name: str, season_number: int) -> None:
        await self._require_series(series_name)
        if await self.store.find_one_season(series_name, season_number) is None:
            raise NotFoundError(f"Season {season_number} of '{series_name}' not found.")

    # ── series ───────────────────────────────────────────────────────────────

    async def create_series(self, doc: SeriesCreate | Mapping[str, Any]) -> Series:
        async with self._transaction():
            series = await self.store.insert_series(doc)
        logger.info(f"Created series '{series.name}'")
        return series

    async def update_series(self, name: str, changes: SeriesUpdate | Mapping[str, Any]) -> Series:
        data = validate_payload(SeriesUpdate, changes, "series update")
        async with self._transaction():
            series = await self.store.update_series(name, data)
            if series is None:
                raise NotFoundError("Series not found.")
            if series.name != name:
                seasons, episodes = await self.store.rename_series_children(name, series.name)
                logger.info(
                    f"Renamed series '{name}' → '{series.name}' "
                    f"(re-keyed {seasons} seasons, {episodes} episodes)"
                )
        logger.info(f"Updated series '{series.name}'")
        return series

    async def delete_series(self, name: str) -> CascadeResult:
        """Delete a series, then its seasons, then its episodes.

        A missing series aborts before any child is touched.
        """
        result = CascadeResult()
        async with self._transaction():
            if await self.store.delete_series(name) is None:
                raise NotFoundError("Series not found.")
            logger.info(f"Deleted series '{name}', cascading to children")
            parent = {"seriesName": name}
            result.deleted_seasons = await self._cascade_step(
                "seasons", parent, self.store.delete_seasons_of(name)
            )
            result.deleted_episodes = await self._cascade_step(
                "episodes", parent, self.store.delete_episodes_of(name)
            )
        logger.info(
            f"Cascade for series '{name}' removed "
            f"{result.deleted_seasons} seasons, {result.deleted_episodes} episodes"
        )
        return result

    async def _cascade_step(self, step: str, parent: dict[str, Any], op) -> int:
        try:
            return await op
        except CatalogError as e:
            logger.error(f"Cascade step '{step}' failed for {parent}: {e.message}", exc_info=True)
            raise PartialCascadeFailure(
                f"Parent deleted but removing {step} failed; the delete was rolled back.",
                step=step,
                parent=parent,
            ) from e

    # ── seasons ──────────────────────────────────────────────────────────────

    async def create_season(self, series_name: str, doc: SeasonCreate | Mapping[str, Any]) -> Season:
        async with self._transaction():
            if self.strict:
                await self._require_series(series_name)
            season = await self.store.insert_season(series_name, doc)
        logger.info(f"Created season {season.season_number} of '{series_name}'")
        return season

    async def update_season(
        self, series_name: str, season_number: int, changes: SeasonUpdate | Mapping[str, Any],
    ) -> Season:
        data = validate_payload(SeasonUpdate, changes, "season update")
        async with self._transaction():
            season = await self.store.update_season(series_name, season_number, data)
            if season is None:
                raise NotFoundError("Season not found.")
            if season.season_number != season_number:
                moved = await self.store.renumber_season_episodes(
                    series_name, season_number, season.season_number
                )
                logger.info(
                    f"Renumbered season {season_number} → {season.season_number} of "
                    f"'{series_name}' (moved {moved} episodes)"
                )
        return season

    async def delete_season(self, series_name: str, season_number: int) -> CascadeResult:
        result = CascadeResult()
        async with self._transaction():
            if await self.store.delete_season(series_name, season_number) is None:
                raise NotFoundError("Season not found.")
            logger.info(f"Deleted season {season_number} of '{series_name}', cascading to episodes")
            result.deleted_episodes = await self._cascade_step(
                "episodes",
                {"seriesName": series_name, "seasonNumber": season_number},
                self.store.delete_episodes_of(series_name, season_number),
            )
        logger.info(
            f"Cascade for season {season_number} of '{series_name}' removed "
            f"{result.deleted_episodes} episodes"
        )
        return result

    # ── episodes ─────────────────────────────────────────────────────────────

    async def create_episode(
        self, series_name: str, season_number: int, doc: EpisodeCreate | Mapping[str, Any],
    ) -> Episode:
        async with self._transaction():
            if self.strict:
                await self._require_season(series_name, season_number)
            episode = await self.store.insert_episode(series_name, season_number, doc)
        logger.info(
            f"Created episode {episode.episode_number} of '{series_name}' season {season_number}"
        )
        return episode

    async def create_episodes_bulk(
        self,
        series_name: str,
        season_number: int,
        docs: Sequence[EpisodeCreate | Mapping[str, Any]],
    ) -> list[Episode]:
        async with self._transaction():
            if self.strict:
                await self._require_season(series_name, season_number)
            episodes = await self.store.insert_episodes_bulk(series_name, season_number, docs)
        logger.info(f"Bulk-inserted {len(episodes)} episodes into '{series_name}' season {season_number}")
        return episodes

    async def update_episode(
        self,
        series_name: str,
        season_number: int,
        episode_number: int,
        changes: EpisodeUpdate | Mapping[str, Any],
    ) -> Episode:
        data = validate_payload(EpisodeUpdate, changes, "episode update")
        async with self._transaction():
            target_season = data.season_number
            if self.strict and target_season is not None and target_season != season_number:
                await self._require_season(series_name, target_season)
            episode = await self.store.update_episode(series_name, season_number, episode_number, data)
            if episode is None:
                raise NotFoundError("Episode not found.")
        return episode

    async def delete_episode(self, series_name: str, season_number: int, episode_number: int) -> None:
        async with self._transaction():
            if await self.store.delete_episode(series_name, season_number, episode_number) is None:
                raise NotFoundError("Episode not found.")
        logger.info(f"Deleted episode {episode_number} of '{series_name}' season {season_number}")

    # ── maintenance ──────────────────────────────────────────────────────────

    async def sweep_orphans(self) -> CascadeResult:
        """Remove seasons without a series and episodes without a season."""
        result = CascadeResult()
        async with self._transaction():
            result.deleted_seasons = await self.store.delete_orphan_seasons()
            result.deleted_episodes = await self.store.delete_orphan_episodes()
        return result
