"""Per-request wiring of the catalog components.

FastAPI caches dependencies within a request, so every component built here
shares the one session yielded by ``get_db``.
"""
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from mediacatalog.config import Settings
from mediacatalog.database import get_db
from mediacatalog.services.hierarchy import HierarchyService
from mediacatalog.services.stats import StatsAggregator
from mediacatalog.services.store import CatalogStore
from mediacatalog.services.views import ViewComposer


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(db: AsyncSession = Depends(get_db)) -> CatalogStore:
    return CatalogStore(db)


def get_hierarchy(
    store: CatalogStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> HierarchyService:
    return HierarchyService(store.db, store, strict=settings.strict_references)


def get_views(
    store: CatalogStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> ViewComposer:
    return ViewComposer(store.db, store, isolation_level=settings.snapshot_isolation_level or None)


def get_stats(store: CatalogStore = Depends(get_store)) -> StatsAggregator:
    return StatsAggregator(store.db, store)
