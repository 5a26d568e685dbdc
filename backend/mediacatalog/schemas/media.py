from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import Field

from mediacatalog.schemas.base import CamelModel
from mediacatalog.schemas.movie import MovieResponse
from mediacatalog.schemas.series import SeriesResponse


class MovieMediaItem(MovieResponse):
    type: Literal["movie"] = "movie"


MediaItem = Annotated[Union[MovieMediaItem, SeriesResponse], Field(discriminator="type")]


class SeasonEpisodeCount(CamelModel):
    season: int
    episodes: int


class SeriesStatsResponse(CamelModel):
    series_name: str
    total_seasons: int
    total_episodes: int
    episodes_per_season: list[SeasonEpisodeCount]


class GlobalStatsResponse(CamelModel):
    movies: int
    series: int
    episodes: int
    total: int


class HealthResponse(CamelModel):
    status: str
    timestamp: datetime
    store_connected: bool
