from fastapi import APIRouter, Depends, Query

from mediacatalog.api.deps import get_stats, get_views
from mediacatalog.schemas.media import GlobalStatsResponse, MediaItem
from mediacatalog.schemas.series import SeriesCompleteResponse
from mediacatalog.services.stats import StatsAggregator
from mediacatalog.services.views import ViewComposer

router = APIRouter(prefix="/api", tags=["media"])


@router.get("/complete", response_model=list[SeriesCompleteResponse])
async def get_complete_catalog(
    search: str | None = Query(None),
    views: ViewComposer = Depends(get_views),
):
    return await views.complete_catalog(search)


@router.get("/media", response_model=list[MediaItem])
async def get_combined_media(
    search: str | None = Query(None),
    views: ViewComposer = Depends(get_views),
):
    return await views.combined_media(search)


@router.get("/stats", response_model=GlobalStatsResponse)
async def get_global_stats(stats: StatsAggregator = Depends(get_stats)):
    return await stats.global_stats()
