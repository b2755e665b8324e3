"""Per-turn decision pipeline for product discovery.

A turn is answered from the first path that applies:

    image attached     -> AI image search            (image fallback on failure)
    exact title match  -> direct cart offer          (no model call)
    otherwise          -> AI text search             (substring fallback on failure)
                          zero products -> AI reply  (canned policy reply on failure)

Model calls go through ``attempt_ai`` / ``attempt_reply``, which turn every transport
error or contract violation into an ``AIFailure`` value. The ``resolve_*`` functions
map those outcomes to a DiscoveryResult and never raise, so the public methods of
``DiscoveryOrchestrator`` always return a result.
"""
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from . import fallback
from .catalog_matcher import find_exact_product
from .errors import ContractViolation, TransportError
from .llm_client import ModelTransport
from .log import get_logger
from .models import ConversationTurn, DiscoveryResult, ImageAttachment, ParsedModelOutput, Product, StoreContext
from .prompts import (
    Prompt,
    build_conversational_prompt,
    build_image_search_prompt,
    build_recommendation_prompt,
    build_text_search_prompt,
    format_price,
)
from .response_parser import match_products, parse_model_output

logger = get_logger("orchestrator")

TRANSPORT = "transport"
CONTRACT = "contract"


@dataclass(frozen=True)
class AIFailure:
    kind: str
    reason: str

    @property
    def transport_failed(self) -> bool:
        return self.kind == TRANSPORT


StructuredOutcome = Union[ParsedModelOutput, AIFailure]
ReplyOutcome = Union[str, AIFailure]


def direct_offer_reply(product: Product, currency: str = "USD") -> str:
    price = format_price(product, currency)
    availability = f"is available for {price}" if price else "is available"
    return (
        f'I found exactly what you\'re looking for! "{product.title}" {availability}. '
        "Would you like me to add it to your cart?"
    )


def resolve_search(outcome: StructuredOutcome, query: str, catalog: Sequence[Product], limit: int) -> DiscoveryResult:
    if isinstance(outcome, AIFailure):
        return fallback.text_search_fallback(query, catalog, limit)
    products = match_products(outcome, catalog, limit)
    if not products:
        return DiscoveryResult(reply=outcome.explanation)
    return DiscoveryResult(reply=f"{outcome.explanation} Here are the products I found:", products=products)


def resolve_image(
    outcome: StructuredOutcome,
    catalog: Sequence[Product],
    limit: int,
    fallback_count: int = fallback.POPULAR_COUNT,
) -> DiscoveryResult:
    if isinstance(outcome, AIFailure):
        return fallback.image_fallback(catalog, transport_failed=outcome.transport_failed, count=fallback_count)
    return DiscoveryResult(
        reply=outcome.description or outcome.explanation,
        products=match_products(outcome, catalog, limit),
    )


def resolve_recommendation(outcome: StructuredOutcome, catalog: Sequence[Product], limit: int) -> DiscoveryResult:
    if isinstance(outcome, AIFailure):
        return fallback.recommendation_fallback(catalog)
    return DiscoveryResult(reply=outcome.explanation, products=match_products(outcome, catalog, limit))


def resolve_reply(outcome: ReplyOutcome, message: str) -> DiscoveryResult:
    if isinstance(outcome, AIFailure):
        return fallback.conversational_fallback(message)
    return DiscoveryResult(reply=outcome)


class DiscoveryOrchestrator:
    def __init__(
        self,
        transport: ModelTransport,
        *,
        result_limit: int = 5,
        history_window: int = 5,
        image_fallback_count: int = fallback.POPULAR_COUNT,
    ):
        self.transport = transport
        self.result_limit = max(1, int(result_limit))
        self.history_window = max(0, int(history_window))
        self.image_fallback_count = max(0, int(image_fallback_count))

    # -- model calls ---------------------------------------------------------

    async def _call(self, prompt: Prompt) -> str:
        try:
            return await self.transport.complete(prompt.text, image=prompt.image, expect_json=prompt.expects_json)
        except TransportError:
            raise
        except Exception as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e

    async def attempt_ai(self, prompt: Prompt) -> StructuredOutcome:
        """Run a structured task and parse its reply, capturing any failure as a value."""
        try:
            text = await self._call(prompt)
        except TransportError as e:
            logger.warning(f"[orchestrator] {prompt.kind.value} degraded: transport error: {e}")
            return AIFailure(TRANSPORT, str(e))
        try:
            return parse_model_output(text, prompt.kind)
        except ContractViolation as e:
            logger.warning(f"[orchestrator] {prompt.kind.value} degraded: contract violation: {e}")
            return AIFailure(CONTRACT, str(e))

    async def attempt_reply(self, prompt: Prompt) -> ReplyOutcome:
        try:
            text = await self._call(prompt)
        except TransportError as e:
            logger.warning(f"[orchestrator] {prompt.kind.value} degraded: transport error: {e}")
            return AIFailure(TRANSPORT, str(e))
        if not isinstance(text, str) or not text.strip():
            logger.warning(f"[orchestrator] {prompt.kind.value} degraded: empty completion")
            return AIFailure(CONTRACT, "empty completion")
        return text.strip()

    # -- helpers -------------------------------------------------------------

    def _window(self, history: Sequence[ConversationTurn]) -> List[ConversationTurn]:
        if self.history_window == 0:
            return []
        return list(history)[-self.history_window:]

    @staticmethod
    def _eligible(catalog: Sequence[Product]) -> List[Product]:
        return [p for p in catalog if p.is_active]

    @staticmethod
    def _currency(store: Optional[StoreContext]) -> str:
        return (store.currency if store else None) or "USD"

    # -- operations ----------------------------------------------------------

    async def search(
        self,
        query: str,
        catalog: Sequence[Product],
        limit: Optional[int] = None,
        store: Optional[StoreContext] = None,
    ) -> DiscoveryResult:
        products = self._eligible(catalog)
        k = limit if limit is not None else self.result_limit
        prompt = build_text_search_prompt(query, products, k, currency=self._currency(store))
        return resolve_search(await self.attempt_ai(prompt), query, products, k)

    async def analyze_image(
        self,
        image: ImageAttachment,
        catalog: Sequence[Product],
        note: Optional[str] = None,
        store: Optional[StoreContext] = None,
    ) -> DiscoveryResult:
        products = self._eligible(catalog)
        prompt = build_image_search_prompt(image, products, self.result_limit, note=note, currency=self._currency(store))
        return resolve_image(await self.attempt_ai(prompt), products, self.result_limit, self.image_fallback_count)

    async def recommend(
        self,
        preferences: str,
        catalog: Sequence[Product],
        history: Sequence[ConversationTurn] = (),
        store: Optional[StoreContext] = None,
    ) -> DiscoveryResult:
        products = self._eligible(catalog)
        prompt = build_recommendation_prompt(
            preferences, products, self._window(history), self.result_limit, currency=self._currency(store)
        )
        return resolve_recommendation(await self.attempt_ai(prompt), products, self.result_limit)

    async def converse(
        self,
        message: str,
        store: Optional[StoreContext] = None,
        history: Sequence[ConversationTurn] = (),
    ) -> DiscoveryResult:
        prompt = build_conversational_prompt(message, store, self._window(history))
        return resolve_reply(await self.attempt_reply(prompt), message)

    async def handle_turn(
        self,
        message: Optional[str],
        catalog: Sequence[Product],
        store: Optional[StoreContext] = None,
        history: Sequence[ConversationTurn] = (),
        image: Optional[ImageAttachment] = None,
    ) -> DiscoveryResult:
        """Answer one shopper turn. Always returns a DiscoveryResult."""
        text = (message or "").strip()
        try:
            return await self._route(text, self._eligible(catalog), store, history, image)
        except Exception:
            logger.exception("[orchestrator] unexpected error while handling turn; answering from fallback")
            return fallback.conversational_fallback(text)

    async def _route(
        self,
        text: str,
        products: List[Product],
        store: Optional[StoreContext],
        history: Sequence[ConversationTurn],
        image: Optional[ImageAttachment],
    ) -> DiscoveryResult:
        if image is not None:
            logger.info(f"[orchestrator] image search over {len(products)} products")
            return await self.analyze_image(image, products, note=text or None, store=store)

        if not text:
            return fallback.conversational_fallback(text)

        exact = find_exact_product(text, products)
        if exact is not None:
            logger.info(f"[orchestrator] direct offer for product {exact.id}")
            return DiscoveryResult.direct_offer(exact, direct_offer_reply(exact, self._currency(store)))

        prompt = build_text_search_prompt(text, products, self.result_limit, currency=self._currency(store))
        outcome = await self.attempt_ai(prompt)
        if isinstance(outcome, ParsedModelOutput) and not match_products(outcome, products, self.result_limit):
            logger.info("[orchestrator] text search found no products; switching to conversation")
            return await self.converse(text, store, history)
        result = resolve_search(outcome, text, products, self.result_limit)
        logger.info(f"[orchestrator] text search returned {len(result.products)} products")
        return result
