"""Persistence access for series, seasons, episodes and movies.

``CatalogStore`` wraps one ``AsyncSession``. It flushes but never commits:
callers open a ``transaction()`` around their writes (the hierarchy engine,
the movie routes). Lookups by natural key return ``None`` when nothing matches;
list queries return an empty list. Payloads are validated here as well as at
the HTTP edge, so direct callers get the same field-level errors.
"""
from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable, Mapping, Sequence, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy import Select, delete, exists, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mediacatalog.errors import CatalogError, CatalogValidationError, ConflictError, StoreError
from mediacatalog.models import Episode, Movie, Season, Series
from mediacatalog.schemas.movie import MovieCreate, MovieUpdate
from mediacatalog.schemas.series import (
    EpisodeCreate, EpisodeUpdate, SeasonCreate, SeasonUpdate, SeriesCreate, SeriesUpdate,
)
from mediacatalog.services.search import episode_filters, name_contains

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def validate_payload(model: type[M], doc: M | Mapping[str, Any], what: str,
                     prefix: tuple = ()) -> M:
    if isinstance(doc, model):
        return doc
    try:
        return model.model_validate(doc)
    except PydanticValidationError as e:
        raise CatalogValidationError.from_pydantic(e, f"Invalid {what}.", prefix=prefix) from e


@asynccontextmanager
async def transaction(db: AsyncSession) -> AsyncIterator[None]:
    """Commit on success. On failure roll back and re-raise as a catalog error."""
    try:
        yield
        await db.commit()
    except CatalogError:
        await db.rollback()
        raise
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("Natural key already in use.") from e
    except SQLAlchemyError as e:
        await db.rollback()
        raise StoreError(f"Transaction failed: {e}") from e


class CatalogStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ── plumbing ─────────────────────────────────────────────────────────────

    async def _scalars(self, query: Select) -> list:
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            raise StoreError(f"Query failed: {e}") from e
        return list(result.scalars().all())

    async def _first(self, query: Select):
        rows = await self._scalars(query.limit(1))
        return rows[0] if rows else None

    async def _scalar(self, query: Select) -> int:
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            raise StoreError(f"Query failed: {e}") from e
        return result.scalar_one() or 0

    async def _bulk(self, stmt) -> int:
        try:
            result = await self.db.execute(stmt)
        except IntegrityError as e:
            raise ConflictError("Target key already in use.") from e
        except SQLAlchemyError as e:
            raise StoreError(f"Bulk write failed: {e}") from e
        return result.rowcount or 0

    async def _flush(self, what: str) -> None:
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError(f"{what} already exists.") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreError(f"Failed to write {what}: {e}") from e

    @staticmethod
    def _apply(row, changes: BaseModel) -> None:
        for field, value in changes.model_dump(exclude_unset=True).items():
            setattr(row, field, value)

    # ── series ───────────────────────────────────────────────────────────────

    async def find_series(self, search: str | None = None) -> list[Series]:
        query = name_contains(select(Series), Series.name, search)
        return await self._scalars(query.order_by(Series.id))

    async def find_one_series(self, name: str) -> Series | None:
        return await self._first(select(Series).where(Series.name == name))

    async def insert_series(self, doc: SeriesCreate | Mapping[str, Any]) -> Series:
        data = validate_payload(SeriesCreate, doc, "series")
        series = Series(**data.model_dump(exclude_none=True))
        self.db.add(series)
        await self._flush(f"Series '{data.name}'")
        return series

    async def update_series(self, name: str, changes: SeriesUpdate | Mapping[str, Any]) -> Series | None:
        data = validate_payload(SeriesUpdate, changes, "series update")
        series = await self.find_one_series(name)
        if series is None:
            return None
        self._apply(series, data)
        await self._flush(f"Series '{series.name}'")
        return series

    async def delete_series(self, name: str) -> Series | None:
        series = await self.find_one_series(name)
        if series is None:
            return None
        await self.db.delete(series)
        await self._flush(f"Series '{name}'")
        return series

    # ── seasons ──────────────────────────────────────────────────────────────

    async def find_seasons(self, series_name: str) -> list[Season]:
        return await self.find_seasons_for([series_name])

    async def find_seasons_for(self, series_names: Iterable[str]) -> list[Season]:
        names = list(series_names)
        if not names:
            return []
        query = (
            select(Season)
            .where(Season.series_name.in_(names))
            .order_by(Season.season_number, Season.id)
        )
        return await self._scalars(query)

    async def find_one_season(self, series_name: str, season_number: int) -> Season | None:
        return await self._first(
            select(Season).where(
                Season.series_name == series_name,
                Season.season_number == season_number,
            )
        )

    async def insert_season(self, series_name: str, doc: SeasonCreate | Mapping[str, Any]) -> Season:
        data = validate_payload(SeasonCreate, doc, "season")
        season = Season(series_name=series_name, **data.model_dump())
        self.db.add(season)
        await self._flush(f"Season {data.season_number} of '{series_name}'")
        return season

    async def update_season(
        self, series_name: str, season_number: int, changes: SeasonUpdate | Mapping[str, Any],
    ) -> Season | None:
        data = validate_payload(SeasonUpdate, changes, "season update")
        season = await self.find_one_season(series_name, season_number)
        if season is None:
            return None
        self._apply(season, data)
        await self._flush(f"Season {season.season_number} of '{series_name}'")
        return season

    async def delete_season(self, series_name: str, season_number: int) -> Season | None:
        season = await self.find_one_season(series_name, season_number)
        if season is None:
            return None
        await self.db.delete(season)
        await self._flush(f"Season {season_number} of '{series_name}'")
        return season

    async def delete_seasons_of(self, series_name: str) -> int:
        return await self._bulk(delete(Season).where(Season.series_name == series_name))

    # ── episodes ─────────────────────────────────────────────────────────────

    async def find_episodes(
        self,
        series_name: str | None = None,
        season_number: int | None = None,
        search: str | None = None,
    ) -> list[Episode]:
        query = episode_filters(select(Episode), series_name, season_number, search)
        return await self._scalars(
            query.order_by(Episode.season_number, Episode.episode_number, Episode.id)
        )

    async def find_episodes_for(self, series_names: Iterable[str]) -> list[Episode]:
        names = list(series_names)
        if not names:
            return []
        query = (
            select(Episode)
            .where(Episode.series_name.in_(names))
            .order_by(Episode.season_number, Episode.episode_number, Episode.id)
        )
        return await self._scalars(query)

    async def find_one_episode(
        self, series_name: str, season_number: int, episode_number: int,
    ) -> Episode | None:
        return await self._first(
            select(Episode).where(
                Episode.series_name == series_name,
                Episode.season_number == season_number,
                Episode.episode_number == episode_number,
            )
        )

    async def insert_episode(
        self, series_name: str, season_number: int, doc: EpisodeCreate | Mapping[str, Any],
    ) -> Episode:
        data = validate_payload(EpisodeCreate, doc, "episode")
        episodes = await self._add_episodes(series_name, season_number, [data])
        return episodes[0]

    async def insert_episodes_bulk(
        self,
        series_name: str,
        season_number: int,
        docs: Sequence[EpisodeCreate | Mapping[str, Any]],
    ) -> list[Episode]:
        """Validate every document, then insert them in one flush.

        Any invalid document rejects the whole batch before anything is written.
        """
        if isinstance(docs, (str, bytes, Mapping)) or not isinstance(docs, Sequence):
            raise CatalogValidationError(
                "Episodes must be an array.",
                [{"field": "episodes", "message": "must be an array"}],
            )

        validated: list[EpisodeCreate] = []
        problems: list[dict[str, str]] = []
        for i, doc in enumerate(docs):
            try:
                validated.append(validate_payload(EpisodeCreate, doc, "episode", prefix=("episodes", i)))
            except CatalogValidationError as e:
                problems.extend(e.fields)
        if problems:
            raise CatalogValidationError("Invalid episodes; nothing was inserted.", problems)
        return await self._add_episodes(series_name, season_number, validated)

    async def _add_episodes(
        self, series_name: str, season_number: int, validated: list[EpisodeCreate],
    ) -> list[Episode]:
        episodes = [
            Episode(series_name=series_name, season_number=season_number, **data.model_dump())
            for data in validated
        ]
        self.db.add_all(episodes)
        await self._flush(f"Episode of '{series_name}' season {season_number}")
        return episodes

    async def update_episode(
        self,
        series_name: str,
        season_number: int,
        episode_number: int,
        changes: EpisodeUpdate | Mapping[str, Any],
    ) -> Episode | None:
        data = validate_payload(EpisodeUpdate, changes, "episode update")
        episode = await self.find_one_episode(series_name, season_number, episode_number)
        if episode is None:
            return None
        self._apply(episode, data)
        await self._flush(
            f"Episode {episode.episode_number} of '{series_name}' season {episode.season_number}"
        )
        return episode

    async def delete_episode(
        self, series_name: str, season_number: int, episode_number: int,
    ) -> Episode | None:
        episode = await self.find_one_episode(series_name, season_number, episode_number)
        if episode is None:
            return None
        await self.db.delete(episode)
        await self._flush(f"Episode {episode_number} of '{series_name}' season {season_number}")
        return episode

    async def delete_episodes_of(self, series_name: str, season_number: int | None = None) -> int:
        stmt = delete(Episode).where(Episode.series_name == series_name)
        if season_number is not None:
            stmt = stmt.where(Episode.season_number == season_number)
        return await self._bulk(stmt)

    # ── natural-key moves ────────────────────────────────────────────────────

    async def rename_series_children(self, old_name: str, new_name: str) -> tuple[int, int]:
        seasons = await self._bulk(
            update(Season).where(Season.series_name == old_name).values(series_name=new_name)
        )
        episodes = await self._bulk(
            update(Episode).where(Episode.series_name == old_name).values(series_name=new_name)
        )
        return seasons, episodes

    async def renumber_season_episodes(self, series_name: str, old_number: int, new_number: int) -> int:
        return await self._bulk(
            update(Episode)
            .where(Episode.series_name == series_name, Episode.season_number == old_number)
            .values(season_number=new_number)
        )

    # ── orphans ──────────────────────────────────────────────────────────────

    async def delete_orphan_seasons(self) -> int:
        parent = select(Series.id).where(Series.name == Season.series_name)
        return await self._bulk(
            delete(Season).where(~exists(parent)).execution_options(synchronize_session=False)
        )

    async def delete_orphan_episodes(self) -> int:
        parent = select(Season.id).where(
            Season.series_name == Episode.series_name,
            Season.season_number == Episode.season_number,
        )
        return await self._bulk(
            delete(Episode).where(~exists(parent)).execution_options(synchronize_session=False)
        )

    # ── movies ───────────────────────────────────────────────────────────────

    async def find_movies(self, search: str | None = None) -> list[Movie]:
        query = name_contains(select(Movie), Movie.name, search)
        return await self._scalars(query.order_by(Movie.id))

    async def find_one_movie(self, movie_id: int) -> Movie | None:
        return await self._first(select(Movie).where(Movie.id == movie_id))

    async def insert_movie(self, doc: MovieCreate | Mapping[str, Any]) -> Movie:
        data = validate_payload(MovieCreate, doc, "movie")
        movie = Movie(**data.model_dump(exclude_none=True))
        self.db.add(movie)
        await self._flush(f"Movie '{data.name}'")
        return movie

    async def update_movie(self, movie_id: int, changes: MovieUpdate | Mapping[str, Any]) -> Movie | None:
        data = validate_payload(MovieUpdate, changes, "movie update")
        movie = await self.find_one_movie(movie_id)
        if movie is None:
            return None
        self._apply(movie, data)
        await self._flush(f"Movie {movie_id}")
        return movie

    async def delete_movie(self, movie_id: int) -> Movie | None:
        movie = await self.find_one_movie(movie_id)
        if movie is None:
            return None
        await self.db.delete(movie)
        await self._flush(f"Movie {movie_id}")
        return movie

    # ── counts ───────────────────────────────────────────────────────────────

    async def count_movies(self) -> int:
        return await self._scalar(select(func.count(Movie.id)))

    async def count_series(self) -> int:
        return await self._scalar(select(func.count(Series.id)))

    async def count_seasons(self, series_name: str) -> int:
        return await self._scalar(
            select(func.count(Season.id)).where(Season.series_name == series_name)
        )

    async def count_episodes(self, series_name: str | None = None) -> int:
        query = select(func.count(Episode.id))
        if series_name is not None:
            query = query.where(Episode.series_name == series_name)
        return await self._scalar(query)

    async def episodes_per_season(self, series_name: str) -> list[tuple[int, int]]:
        query = (
            select(Episode.season_number, func.count(Episode.id))
            .where(Episode.series_name == series_name)
            .group_by(Episode.season_number)
            .order_by(Episode.season_number)
        )
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            raise StoreError(f"Query failed: {e}") from e
        return [(season, count) for season, count in result.all()]
