from fastapi import APIRouter, Depends

from mediacatalog.api.deps import get_hierarchy, get_store
from mediacatalog.errors import NotFoundError
from mediacatalog.schemas.series import DeleteResponse, SeasonCreate, SeasonResponse, SeasonUpdate
from mediacatalog.services.hierarchy import HierarchyService
from mediacatalog.services.store import CatalogStore

router = APIRouter(prefix="/api/series/{series_name}/seasons", tags=["seasons"])


@router.get("", response_model=list[SeasonResponse])
async def list_seasons(series_name: str, store: CatalogStore = Depends(get_store)):
    return await store.find_seasons(series_name)


@router.get("/{season_number}", response_model=SeasonResponse)
async def get_season(series_name: str, season_number: int, store: CatalogStore = Depends(get_store)):
    season = await store.find_one_season(series_name, season_number)
    if not season:
        raise NotFoundError("Season not found.")
    return season


@router.post("", response_model=SeasonResponse, status_code=201)
async def create_season(
    series_name: str,
    data: SeasonCreate,
    hierarchy: HierarchyService = Depends(get_hierarchy),
):
    return await hierarchy.create_season(series_name, data)


@router.put("/{season_number}", response_model=SeasonResponse)
async def update_season(
    series_name: str,
    season_number: int,
    data: SeasonUpdate,
    hierarchy: HierarchyService = Depends(get_hierarchy),
):
    return await hierarchy.update_season(series_name, season_number, data)


@router.delete("/{season_number}", response_model=DeleteResponse, response_model_exclude_none=True)
async def delete_season(
    series_name: str,
    season_number: int,
    hierarchy: HierarchyService = Depends(get_hierarchy),
):
    result = await hierarchy.delete_season(series_name, season_number)
    return DeleteResponse(
        message="Season and all its episodes deleted successfully.",
        deleted_episodes=result.deleted_episodes,
    )
