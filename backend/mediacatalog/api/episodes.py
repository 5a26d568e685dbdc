from fastapi import APIRouter, Depends, Query

from mediacatalog.api.deps import get_hierarchy, get_store
from mediacatalog.errors import NotFoundError
from mediacatalog.schemas.series import (
    DeleteResponse, EpisodeBulkCreate, EpisodeCreate, EpisodeResponse, EpisodeUpdate,
)
from mediacatalog.services.hierarchy import HierarchyService
from mediacatalog.services.store import CatalogStore

router = APIRouter(prefix="/api", tags=["episodes"])

SEASON_EPISODES = "/series/{series_name}/seasons/{season_number}/episodes"


@router.get("/episodes", response_model=list[EpisodeResponse])
async def search_episodes(
    series: str | None = Query(None),
    season: int | None = Query(None),
    search: str | None = Query(None),
    store: CatalogStore = Depends(get_store),
):
    return await store.find_episodes(series_name=series, season_number=season, search=search)


@router.get("/series/{series_name}/episodes", response_model=list[EpisodeResponse])
async def list_series_episodes(series_name: str, store: CatalogStore = Depends(get_store)):
    return await store.find_episodes(series_name=series_name)


@router.get(SEASON_EPISODES, response_model=list[EpisodeResponse])
async def list_season_episodes(
    series_name: str,
    season_number: int,
    store: CatalogStore = Depends(get_store),
):
    return await store.find_episodes(series_name=series_name, season_number=season_number)


@router.get(SEASON_EPISODES + "/{episode_number}", response_model=EpisodeResponse)
async def get_episode(
    series_name: str,
    season_number: int,
    episode_number: int,
    store: CatalogStore = Depends(get_store),
):
    episode = await store.find_one_episode(series_name, season_number, episode_number)
    if not episode:
        raise NotFoundError("Episode not found.")
    return episode


@router.post(SEASON_EPISODES, response_model=EpisodeResponse, status_code=201)
async def create_episode(
    series_name: str,
    season_number: int,
    data: EpisodeCreate,
    hierarchy: HierarchyService = Depends(get_hierarchy),
):
    return await hierarchy.create_episode(series_name, season_number, data)


@router.post(SEASON_EPISODES + "/bulk", response_model=list[EpisodeResponse], status_code=201)
async def create_episodes_bulk(
    series_name: str,
    season_number: int,
    body: EpisodeBulkCreate,
    hierarchy: HierarchyService = Depends(get_hierarchy),
):
    return await hierarchy.create_episodes_bulk(series_name, season_number, body.episodes)


@router.put(SEASON_EPISODES + "/{episode_number}", response_model=EpisodeResponse)
async def update_episode(
    series_name: str,
    season_number: int,
    episode_number: int,
    data: EpisodeUpdate,
    hierarchy: HierarchyService = Depends(get_hierarchy),
):
    return await hierarchy.update_episode(series_name, season_number, episode_number, data)


@router.delete(
    SEASON_EPISODES + "/{episode_number}",
    response_model=DeleteResponse,
    response_model_exclude_none=True,
)
async def delete_episode(
    series_name: str,
    season_number: int,
    episode_number: int,
    hierarchy: HierarchyService = Depends(get_hierarchy),
):
    await hierarchy.delete_episode(series_name, season_number, episode_number)
    return DeleteResponse(message="Episode deleted successfully.")
