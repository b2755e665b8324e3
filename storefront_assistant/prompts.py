"""Prompt rendering for the four model tasks.

Every structured task asks for one fixed JSON object so a single parser can read the
reply, and the catalog block lists exactly the products the caller passed in, so the
model can only cite ids that exist.
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from .models import ConversationTurn, ImageAttachment, Product, StoreContext


class TaskKind(str, Enum):
    CONVERSATIONAL = "conversational"
    TEXT_SEARCH = "text_search"
    IMAGE_SEARCH = "image_search"
    RECOMMENDATION = "recommendation"


@dataclass(frozen=True)
class Prompt:
    kind: TaskKind
    text: str
    image: Optional[ImageAttachment] = None

    @property
    def expects_json(self) -> bool:
        return self.kind is not TaskKind.CONVERSATIONAL


SEARCH_SHAPE = '{\n  "productIds": [<product ids>],\n  "explanation": "<short explanation>"\n}'
IMAGE_SHAPE = (
    '{\n  "description": "<what you see in the image>",\n'
    '  "productIds": [<product ids>],\n'
    '  "explanation": "<why these products match>"\n}'
)
JSON_ONLY = "Reply with ONLY this JSON object and nothing else: no markdown, no code fences, no extra keys."


def format_price(product: Product, currency: str = "USD") -> Optional[str]:
    lo, hi = product.price_min, product.price_max
    if lo is None and hi is None:
        return None
    if lo is None or hi is None or lo == hi:
        return f"{currency} {(lo if lo is not None else hi):.2f}"
    return f"{currency} {lo:.2f}-{hi:.2f}"


def render_catalog(products: Sequence[Product], currency: str = "USD") -> str:
    lines: List[str] = []
    for p in products:
        ident = f"ID: {p.id}"
        if p.external_id is not None:
            ident += f" (also {p.external_id})"
        lines.append(
            f"- {ident}, Title: {p.title}, "
            f"Description: {p.description or 'No description'}, "
            f"Price: {format_price(p, currency) or 'N/A'}"
        )
    return "\n".join(lines) if lines else "(no products available)"


def render_history(history: Sequence[ConversationTurn]) -> str:
    return "\n".join(f"{t.role}: {t.content}" for t in history)


def build_system_prompt(store: Optional[StoreContext] = None) -> str:
    store = store or StoreContext()
    name = store.store_name or "our store"
    text = (
        f"You are a helpful AI shopping assistant for {name}.\n\n"
        "Your role is to:\n"
        "- Help customers find products they're looking for\n"
        "- Answer questions about products, shipping, returns, and store policies\n"
        "- Provide personalized recommendations\n"
        "- Assist with adding items to cart\n"
        "- Be friendly, helpful, and knowledgeable\n\n"
        "Store Information:\n"
        f"- Store Name: {store.store_name or 'Our Store'}\n"
        f"- Currency: {store.currency or 'USD'}\n"
        f"- Email: {store.store_email or 'Not provided'}\n"
    )
    policies = [s for s in store.policies if s.is_active]
    if policies:
        text += "\nBusiness Information:\n"
        for snippet in policies:
            text += f"- {snippet.title}: {snippet.content}\n"
    text += (
        "\nGuidelines:\n"
        "- Always be helpful and friendly\n"
        "- If you don't know something, say so honestly\n"
        "- When recommending products, explain why they're a good fit\n"
        "- Keep responses concise but informative\n"
        "- If a customer wants to add something to cart, confirm the product and guide them through the process\n"
        "- For shipping, returns, or policy questions, refer to the business information provided above\n"
    )
    return text


def build_conversational_prompt(
    message: str,
    store: Optional[StoreContext] = None,
    history: Sequence[ConversationTurn] = (),
) -> Prompt:
    text = build_system_prompt(store)
    if history:
        text += f"\nRecent conversation:\n{render_history(history)}\n"
    text += f"\nCustomer: {message}"
    return Prompt(kind=TaskKind.CONVERSATIONAL, text=text)


def build_text_search_prompt(query: str, products: Sequence[Product], limit: int, currency: str = "USD") -> Prompt:
    text = (
        "You are a product search assistant for an e-commerce store.\n\n"
        f"Available products:\n{render_catalog(products, currency)}\n\n"
        f'Customer search query: "{query}"\n\n'
        "Please:\n"
        "1. Find the most relevant products that match the customer's query\n"
        f"2. Return the IDs of the best matches (maximum {limit} products), using only IDs listed above\n"
        "3. Provide a brief explanation of why these products match\n\n"
        f"Respond strictly in this JSON format:\n{SEARCH_SHAPE}\n{JSON_ONLY}\n"
    )
    return Prompt(kind=TaskKind.TEXT_SEARCH, text=text)


def build_image_search_prompt(
    image: ImageAttachment,
    products: Sequence[Product],
    limit: int,
    note: Optional[str] = None,
    currency: str = "USD",
) -> Prompt:
    text = (
        "Analyze this image and find similar products from our catalog.\n\n"
        f"Available products:\n{render_catalog(products, currency)}\n\n"
    )
    if note and note.strip():
        text += f'The customer added: "{note.strip()}"\n\n'
    text += (
        "Please:\n"
        "1. Describe what you see in the image\n"
        f"2. Find products that match or are similar to items in the image (maximum {limit} products), "
        "using only IDs listed above\n"
        "3. Explain why these products are relevant\n\n"
        f"Respond strictly in this JSON format:\n{IMAGE_SHAPE}\n{JSON_ONLY}\n"
    )
    return Prompt(kind=TaskKind.IMAGE_SEARCH, text=text, image=image)


def build_recommendation_prompt(
    preferences: str,
    products: Sequence[Product],
    history: Sequence[ConversationTurn],
    limit: int,
    currency: str = "USD",
) -> Prompt:
    text = (
        "You are a personal shopping assistant. Based on the customer's preferences and "
        "conversation history, recommend the best products.\n\n"
        f'Customer preferences: "{preferences}"\n\n'
        f"Conversation history:\n{render_history(history) or '(none)'}\n\n"
        f"Available products:\n{render_catalog(products, currency)}\n\n"
        f"Please recommend up to {limit} products that best match the customer's needs and explain why, "
        "using only IDs listed above.\n\n"
        f"Respond strictly in this JSON format:\n{SEARCH_SHAPE}\n{JSON_ONLY}\n"
    )
    return Prompt(kind=TaskKind.RECOMMENDATION, text=text)
