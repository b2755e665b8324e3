from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from starlette.concurrency import run_in_threadpool

from ..analytics import log_event, turn_event
from ..config import Settings
from ..dependencies import get_catalog, get_orchestrator, get_settings, get_store_context
from ..log import get_logger
from ..models import ChatResponse, ImageAttachment, Product, StoreContext
from ..orchestrator import DiscoveryOrchestrator

router = APIRouter()
logger = get_logger("vision")


@router.post("/vision-chat", response_model=ChatResponse)
async def vision_chat(
    request: Request,
    image: UploadFile = File(...),
    message: Optional[str] = Form(""),
    orchestrator: DiscoveryOrchestrator = Depends(get_orchestrator),
    catalog: List[Product] = Depends(get_catalog),
    store: StoreContext = Depends(get_store_context),
    settings: Settings = Depends(get_settings),
):
    """Photo search: find catalog products that look like the uploaded image."""
    if not image.content_type or not image.content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Invalid file type: please upload an image.")
    img_bytes = await image.read()
    if not img_bytes:
        raise HTTPException(status_code=400, detail="Uploaded image is empty.")
    logger.info(f"[vision] uploaded image bytes: {len(img_bytes)} ({image.content_type})")

    attachment = ImageAttachment(data=img_bytes, mime_type=image.content_type)
    result = await orchestrator.handle_turn(message or "", catalog, store=store, image=attachment)
    event = turn_event("vision_chat", request.url.path, result, has_image=True)
    await run_in_threadpool(log_event, settings.analytics_path, event)
    return ChatResponse.from_result(result)
