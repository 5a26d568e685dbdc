import logging
from fastapi import APIRouter, Depends, Query

from mediacatalog.api.deps import get_store
from mediacatalog.errors import NotFoundError
from mediacatalog.schemas.movie import MovieCreate, MovieResponse, MovieUpdate
from mediacatalog.schemas.series import DeleteResponse
from mediacatalog.services.store import CatalogStore, transaction

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/movies", tags=["movies"])


@router.get("", response_model=list[MovieResponse])
async def list_movies(
    search: str | None = Query(None),
    store: CatalogStore = Depends(get_store),
):
    return await store.find_movies(search)


@router.post("", response_model=MovieResponse, status_code=201)
async def create_movie(data: MovieCreate, store: CatalogStore = Depends(get_store)):
    async with transaction(store.db):
        movie = await store.insert_movie(data)
    logger.info(f"Created movie #{movie.id} '{movie.name}'")
    return movie


@router.get("/{movie_id}", response_model=MovieResponse)
async def get_movie(movie_id: int, store: CatalogStore = Depends(get_store)):
    movie = await store.find_one_movie(movie_id)
    if not movie:
        raise NotFoundError("Movie not found.")
    return movie


@router.put("/{movie_id}", response_model=MovieResponse)
async def update_movie(
    movie_id: int,
    data: MovieUpdate,
    store: CatalogStore = Depends(get_store),
):
    async with transaction(store.db):
        movie = await store.update_movie(movie_id, data)
        if not movie:
            raise NotFoundError("Movie not found.")
    return movie


@router.delete("/{movie_id}", response_model=DeleteResponse, response_model_exclude_none=True)
async def delete_movie(movie_id: int, store: CatalogStore = Depends(get_store)):
    async with transaction(store.db):
        movie = await store.delete_movie(movie_id)
        if not movie:
            raise NotFoundError("Movie not found.")
    logger.info(f"Deleted movie #{movie_id}")
    return DeleteResponse(message="Movie deleted successfully.")
