import json
import os
from functools import lru_cache

from pydantic import ValidationError

from .errors import CatalogError
from .log import get_logger
from .models import StoreContext

logger = get_logger("store_context")


def build_store_context(data: dict) -> StoreContext:
    """Validate store metadata and keep only active policy snippets, highest priority first."""
    try:
        store = StoreContext(**data)
    except (TypeError, ValidationError) as e:
        raise CatalogError(f"Invalid store context: {e}") from e
    policies = sorted((s for s in store.policies if s.is_active), key=lambda s: -s.priority)
    return store.model_copy(update={"policies": policies})


@lru_cache(maxsize=4)
def load_store_context(path: str) -> StoreContext:
    """Load and cache the store context JSON.
    A missing file yields a default context so the assistant still answers.
    """
    if not os.path.exists(path):
        logger.warning(f"[store_context] {path} not found; using defaults")
        return StoreContext()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except ValueError as e:
        raise CatalogError(f"Store context {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise CatalogError(f"Store context {path} must contain a JSON object")
    return build_store_context(data)
