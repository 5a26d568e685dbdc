"""Search filters shared by the list, media and complete endpoints.

Search text from clients is always a literal substring: ``%``, ``_`` and the
escape character itself are escaped before the LIKE pattern is built.
"""
from __future__ import annotations

from sqlalchemy import Select
from sqlalchemy.orm import InstrumentedAttribute

from mediacatalog.models import Episode


def clean_term(term: str | None) -> str | None:
    # Whitespace inside a real term is part of the match; only an empty or
    # all-blank term means "no filter".
    if term is None or not term.strip():
        return None
    return term


def name_contains(query: Select, column: InstrumentedAttribute, term: str | None) -> Select:
    """Case-insensitive literal substring match on ``column``. Blank terms add no filter."""
    term = clean_term(term)
    if term is None:
        return query
    return query.where(column.icontains(term, autoescape=True))


def episode_filters(
    query: Select,
    series_name: str | None = None,
    season_number: int | None = None,
    search: str | None = None,
) -> Select:
    if series_name:
        query = query.where(Episode.series_name == series_name)
    if season_number is not None:
        query = query.where(Episode.season_number == season_number)
    return name_contains(query, Episode.title, search)
