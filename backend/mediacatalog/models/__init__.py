from mediacatalog.models.series import Series, Season, Episode
from mediacatalog.models.movie import Movie

__all__ = [
    "Series",
    "Season",
    "Episode",
    "Movie",
]
