from datetime import datetime
from typing import Literal

from pydantic import Field, field_validator

from mediacatalog.schemas.base import CamelModel, reject_null


class SeriesCreate(CamelModel):
    name: str = Field(min_length=1)
    thumbnail: str = Field(min_length=1)
    description: str = ""
    added_at: datetime | None = None


class SeriesUpdate(CamelModel):
    name: str | None = Field(None, min_length=1)
    thumbnail: str | None = Field(None, min_length=1)
    description: str | None = None

    @field_validator("name", "thumbnail", "description")
    @classmethod
    def check_not_null(cls, value):
        return reject_null(value)


class SeriesResponse(CamelModel):
    id: int
    name: str
    thumbnail: str
    description: str
    type: Literal["series"] = "series"
    added_at: datetime


class SeasonCreate(CamelModel):
    season_number: int
    title: str = Field(min_length=1)
    description: str = ""
    thumbnail: str = ""


class SeasonUpdate(CamelModel):
    season_number: int | None = None
    title: str | None = Field(None, min_length=1)
    description: str | None = None
    thumbnail: str | None = None

    @field_validator("season_number", "title", "description", "thumbnail")
    @classmethod
    def check_not_null(cls, value):
        return reject_null(value)


class SeasonResponse(CamelModel):
    id: int
    series_name: str
    season_number: int
    title: str
    description: str
    thumbnail: str
    added_at: datetime


class EpisodeCreate(CamelModel):
    episode_number: int
    title: str = Field(min_length=1)
    description: str = ""
    streaming_url: str = Field(min_length=1)
    thumbnail: str = ""
    duration: str = ""
    air_date: datetime | None = None


class EpisodeUpdate(CamelModel):
    season_number: int | None = None
    episode_number: int | None = None
    title: str | None = Field(None, min_length=1)
    description: str | None = None
    streaming_url: str | None = Field(None, min_length=1)
    thumbnail: str | None = None
    duration: str | None = None
    air_date: datetime | None = None

    @field_validator(
        "season_number", "episode_number", "title", "description",
        "streaming_url", "thumbnail", "duration",
    )
    @classmethod
    def check_not_null(cls, value):
        return reject_null(value)


class EpisodeBulkCreate(CamelModel):
    episodes: list[EpisodeCreate]


class EpisodeResponse(CamelModel):
    id: int
    series_name: str
    season_number: int
    episode_number: int
    title: str
    description: str
    streaming_url: str
    thumbnail: str
    duration: str
    air_date: datetime | None
    added_at: datetime


class SeasonCompleteResponse(SeasonResponse):
    episodes: list[EpisodeResponse] = []


class SeriesCompleteResponse(SeriesResponse):
    seasons: list[SeasonCompleteResponse] = []


class DeleteResponse(CamelModel):
    message: str
    deleted_seasons: int | None = None
    deleted_episodes: int | None = None
