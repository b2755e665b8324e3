from functools import lru_cache
from typing import List

from fastapi import Depends

from .config import Settings
from .llm_client import make_transport
from .models import Product, StoreContext
from .orchestrator import DiscoveryOrchestrator
from .product_loader import get_active_products, get_all_products
from .store_context import load_store_context


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


@lru_cache(maxsize=1)
def get_orchestrator() -> DiscoveryOrchestrator:
    settings = get_settings()
    return DiscoveryOrchestrator(
        make_transport(settings),
        result_limit=settings.result_limit,
        history_window=settings.history_window,
    )


def get_catalog(settings: Settings = Depends(get_settings)) -> List[Product]:
    return get_all_products(settings.catalog_path)


def get_active_catalog(settings: Settings = Depends(get_settings)) -> List[Product]:
    return get_active_products(settings.catalog_path)


def get_store_context(settings: Settings = Depends(get_settings)) -> StoreContext:
    return load_store_context(settings.store_context_path)
