from fastapi import APIRouter, Depends, Query

from mediacatalog.api.deps import get_hierarchy, get_stats, get_store, get_views
from mediacatalog.errors import NotFoundError
from mediacatalog.schemas.media import SeriesStatsResponse
from mediacatalog.schemas.series import (
    DeleteResponse, SeriesCompleteResponse, SeriesCreate, SeriesResponse, SeriesUpdate,
)
from mediacatalog.services.hierarchy import HierarchyService
from mediacatalog.services.stats import StatsAggregator
from mediacatalog.services.store import CatalogStore
from mediacatalog.services.views import ViewComposer

router = APIRouter(prefix="/api/series", tags=["series"])


@router.get("", response_model=list[SeriesResponse])
async def list_series(
    search: str | None = Query(None),
    store: CatalogStore = Depends(get_store),
):
    return await store.find_series(search)


@router.post("", response_model=SeriesResponse, status_code=201)
async def create_series(data: SeriesCreate, hierarchy: HierarchyService = Depends(get_hierarchy)):
    return await hierarchy.create_series(data)


@router.get("/{series_name}", response_model=SeriesResponse)
async def get_series(series_name: str, store: CatalogStore = Depends(get_store)):
    series = await store.find_one_series(series_name)
    if not series:
        raise NotFoundError("Series not found.")
    return series


@router.put("/{series_name}", response_model=SeriesResponse)
async def update_series(
    series_name: str,
    data: SeriesUpdate,
    hierarchy: HierarchyService = Depends(get_hierarchy),
):
    return await hierarchy.update_series(series_name, data)


@router.delete("/{series_name}", response_model=DeleteResponse, response_model_exclude_none=True)
async def delete_series(series_name: str, hierarchy: HierarchyService = Depends(get_hierarchy)):
    result = await hierarchy.delete_series(series_name)
    return DeleteResponse(
        message="Series and all related content deleted successfully.",
        deleted_seasons=result.deleted_seasons,
        deleted_episodes=result.deleted_episodes,
    )


@router.get("/{series_name}/complete", response_model=SeriesCompleteResponse)
async def get_complete_series(series_name: str, views: ViewComposer = Depends(get_views)):
    complete = await views.complete_series(series_name)
    if complete is None:
        raise NotFoundError("Series not found.")
    return complete


@router.get("/{series_name}/stats", response_model=SeriesStatsResponse)
async def get_series_stats(series_name: str, stats: StatsAggregator = Depends(get_stats)):
    return await stats.series_stats(series_name)
