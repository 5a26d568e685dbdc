from datetime import datetime

from pydantic import Field, field_validator

from mediacatalog.schemas.base import CamelModel, reject_null


class MovieCreate(CamelModel):
    name: str = Field(min_length=1)
    thumbnail: str = Field(min_length=1)
    streaming_url: str = Field(min_length=1)
    added_by: int | None = None
    added_at: datetime | None = None


class MovieUpdate(CamelModel):
    name: str | None = Field(None, min_length=1)
    thumbnail: str | None = Field(None, min_length=1)
    streaming_url: str | None = Field(None, min_length=1)
    added_by: int | None = None

    @field_validator("name", "thumbnail", "streaming_url")
    @classmethod
    def check_not_null(cls, value):
        return reject_null(value)


class MovieResponse(CamelModel):
    id: int
    name: str
    thumbnail: str
    streaming_url: str
    added_by: int | None
    added_at: datetime
