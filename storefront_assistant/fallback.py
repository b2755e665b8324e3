"""Deterministic replies used whenever the model is unavailable or its output is unusable.

Nothing here touches the network and every function accepts empty input, so the
fallbacks are safe to call from any failure path.
"""
from typing import List, Optional, Sequence

from .models import DiscoveryResult, Product

POPULAR_COUNT = 3

SHIPPING_REPLY = (
    "I'd be happy to help with shipping information! Please check our shipping policy for detailed "
    "information, or feel free to ask specific questions about delivery times and costs."
)
RETURNS_REPLY = (
    "For returns and refunds, please refer to our return policy. If you have specific questions about "
    "returning an item, I'm here to help!"
)
SIZING_REPLY = (
    "For sizing information, please check the product details page where you'll find our size chart "
    "and fitting guide."
)
GENERIC_REPLY = (
    "I'm here to help you find what you're looking for! Could you tell me more about what you need, "
    "or would you like me to show you some of our popular products?"
)

IMAGE_TRANSPORT_REPLY = "I received your image. Here are some popular products you might like."
IMAGE_CONTRACT_REPLY = "I can see your image. Here are some products that might interest you."
RECOMMENDATION_REPLY = "Here are some of our popular products that customers love!"

# Checked in order; the first rule with a matching keyword wins.
POLICY_RULES = (
    (("shipping",), SHIPPING_REPLY),
    (("return", "refund"), RETURNS_REPLY),
    (("size", "sizing"), SIZING_REPLY),
)


def _matches_query(product: Product, needle: str) -> bool:
    if needle in product.title.lower():
        return True
    if product.description and needle in product.description.lower():
        return True
    return any(needle in tag.lower() for tag in (product.tags or []))


def text_search_fallback(query: Optional[str], products: Sequence[Product], limit: int) -> DiscoveryResult:
    q = (query or "").strip()
    needle = q.lower()
    matched: List[Product] = []
    if needle:
        for p in products:
            if len(matched) >= limit:
                break
            if _matches_query(p, needle):
                matched.append(p)
    if matched:
        noun = "product" if len(matched) == 1 else "products"
        reply = f'Found {len(matched)} {noun} matching "{q}". Here are the products I found:'
    else:
        reply = (
            f'No matches found for "{q}". Try describing it another way, '
            "or ask me to show you some of our popular products."
        )
    return DiscoveryResult(reply=reply, products=matched)


def image_fallback(
    products: Sequence[Product], transport_failed: bool = True, count: int = POPULAR_COUNT
) -> DiscoveryResult:
    reply = IMAGE_TRANSPORT_REPLY if transport_failed else IMAGE_CONTRACT_REPLY
    return DiscoveryResult(reply=reply, products=list(products[:count]))


def policy_reply(message: Optional[str]) -> str:
    t = (message or "").lower()
    for keywords, reply in POLICY_RULES:
        if any(k in t for k in keywords):
            return reply
    return GENERIC_REPLY


def conversational_fallback(message: Optional[str]) -> DiscoveryResult:
    return DiscoveryResult(reply=policy_reply(message))


def recommendation_fallback(products: Sequence[Product]) -> DiscoveryResult:
    return DiscoveryResult(reply=RECOMMENDATION_REPLY, products=list(products[:POPULAR_COUNT]))
