from typing import List, Optional, Tuple

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from .analytics import log_event, turn_event
from .config import Settings
from .dependencies import get_active_catalog, get_catalog, get_orchestrator, get_settings, get_store_context
from .errors import CatalogError
from .log import get_logger
from .middleware import RateLimitMiddleware, RequestLoggingMiddleware
from .models import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ConversationTurn,
    ImageAttachment,
    Product,
    RecommendRequest,
    StoreContext,
)
from .orchestrator import DiscoveryOrchestrator
from .routes.vision import router as vision_router

settings = get_settings()
logger = get_logger(level=settings.log_level)

app = FastAPI(title="storefront-assistant")

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(RateLimitMiddleware, max_requests=settings.rate_limit_max, window_seconds=settings.rate_limit_window)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    logger.error(f"[main] catalog unavailable: {exc}")
    return JSONResponse({"error": "catalog_unavailable"}, status_code=503)


def split_conversation(messages: List[ChatMessage]) -> Tuple[str, List[ConversationTurn]]:
    """Return the latest user message and the user/assistant turns that precede it."""
    last_user_idx = -1
    for i, m in enumerate(messages):
        if m.role == "user":
            last_user_idx = i
    if last_user_idx == -1:
        return "", [ConversationTurn(role=m.role, content=m.content) for m in messages if m.role != "system"]
    history = [
        ConversationTurn(role=m.role, content=m.content)
        for m in messages[:last_user_idx]
        if m.role in {"user", "assistant"}
    ]
    return messages[last_user_idx].content, history


@app.get("/api/health")
def health():
    return {"status": "ok", "service": "storefront-assistant"}


@app.get("/api/products", response_model=List[Product])
def list_products(
    q: Optional[str] = None,
    limit: Optional[int] = None,
    items: List[Product] = Depends(get_active_catalog),
):
    if q:
        needle = q.lower()
        items = [p for p in items if needle in p.title.lower()]
    if limit is not None and limit >= 0:
        items = items[:limit]
    return items


@app.post("/api/chat", response_model=ChatResponse)
async def chat(
    req: ChatRequest,
    request: Request,
    orchestrator: DiscoveryOrchestrator = Depends(get_orchestrator),
    catalog: List[Product] = Depends(get_catalog),
    store: StoreContext = Depends(get_store_context),
    settings: Settings = Depends(get_settings),
):
    message, history = split_conversation(req.messages)
    image = None
    if req.image_data_url:
        try:
            image = ImageAttachment.from_data_url(req.image_data_url)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    result = await orchestrator.handle_turn(message, catalog, store=store, history=history, image=image)
    event = turn_event("chat", request.url.path, result, has_image=image is not None)
    await run_in_threadpool(log_event, settings.analytics_path, event)
    return ChatResponse.from_result(result)


@app.post("/api/recommendations", response_model=ChatResponse)
async def recommendations(
    req: RecommendRequest,
    request: Request,
    orchestrator: DiscoveryOrchestrator = Depends(get_orchestrator),
    catalog: List[Product] = Depends(get_catalog),
    store: StoreContext = Depends(get_store_context),
    settings: Settings = Depends(get_settings),
):
    history = [ConversationTurn(role=m.role, content=m.content) for m in req.messages if m.role in {"user", "assistant"}]
    result = await orchestrator.recommend(req.preferences, catalog, history=history, store=store)
    await run_in_threadpool(log_event, settings.analytics_path, turn_event("recommendations", request.url.path, result))
    return ChatResponse.from_result(result)


app.include_router(vision_router, prefix="/api")
