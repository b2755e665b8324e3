import json
import os
from functools import lru_cache
from typing import List, Tuple

from pydantic import ValidationError

from .errors import CatalogError
from .log import get_logger
from .models import Product

logger = get_logger("product_loader")


def parse_products(items: List[dict]) -> List[Product]:
    """Validate raw catalog rows, keeping the first row for any repeated id."""
    seen = set()
    out: List[Product] = []
    for i, item in enumerate(items):
        try:
            product = Product(**item)
        except (TypeError, ValidationError) as e:
            raise CatalogError(f"Invalid product at index {i}: {e}") from e
        key = str(product.id)
        if key in seen:
            logger.warning(f"[product_loader] duplicate product id {key!r} ignored")
            continue
        seen.add(key)
        out.append(product)
    return out


@lru_cache(maxsize=4)
def _load_products(path: str) -> Tuple[Product, ...]:
    if not os.path.exists(path):
        logger.warning(f"[product_loader] catalog not found at {path}; using an empty catalog")
        return ()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except ValueError as e:
        raise CatalogError(f"Catalog {path} is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise CatalogError(f"Catalog {path} must contain a JSON list of products")
    return tuple(parse_products(data))


def get_all_products(path: str) -> List[Product]:
    return list(_load_products(path))


def get_active_products(path: str) -> List[Product]:
    return [p for p in _load_products(path) if p.is_active]
