import os
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]

# Settings are read once when the app module is imported; pin them before any test imports it.
os.environ["GEMINI_API_KEY"] = ""
os.environ["OPENAI_API_KEY"] = ""
os.environ["MODEL_PROVIDER"] = "gemini"
os.environ["ANALYTICS_PATH"] = ""
os.environ["RATE_LIMIT_MAX"] = "100000"
os.environ["CATALOG_PATH"] = str(ROOT / "data" / "demo_products.json")
os.environ["STORE_CONTEXT_PATH"] = str(ROOT / "data" / "store_context.json")

from storefront_assistant.models import PolicySnippet, Product, StoreContext  # noqa: E402


@pytest.fixture
def catalog():
    titles = [
        ("Blue Hoodie", "Cotton pullover hoodie", ["hoodie", "casual"]),
        ("Grey Zip Hoodie", "Fleece zip hoodie", ["hoodie"]),
        ("Red Running Shoe", "Lightweight running shoe", ["shoes", "running"]),
        ("White Canvas Sneaker", "Low-top sneaker", ["shoes"]),
        ("Leather Weekender Bag", "Travel bag", ["bags", "travel"]),
        ("Canvas Tote", None, ["bags"]),
        ("Red Suede Shoe", "Suede dress shoe", ["shoes", "formal"]),
        ("Insulated Parka", "Winter parka", ["jackets", "winter"]),
        ("Denim Jacket", "Trucker jacket", None),
        ("Trail Water Bottle", "Steel bottle", ["outdoor"]),
    ]
    return [
        Product(
            id=i,
            external_id=9000 + i,
            title=title,
            description=desc,
            tags=tags,
            price_min=10.0 * i,
            price_max=10.0 * i,
        )
        for i, (title, desc, tags) in enumerate(titles, start=1)
    ]


@pytest.fixture
def store():
    return StoreContext(
        store_name="Northwind Outfitters",
        currency="USD",
        store_email="help@northwind.example",
        policies=[
            PolicySnippet(title="Shipping", content="Free shipping over USD 75.", priority=10),
            PolicySnippet(title="Returns", content="30-day returns.", priority=5),
        ],
    )
