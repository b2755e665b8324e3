import json
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .log import get_logger
from .models import DiscoveryResult

logger = get_logger("analytics")


def log_event(path: Optional[str], event: Dict[str, Any]) -> None:
    """Append one analytics event as a JSON line. Write failures are logged only."""
    if not path:
        return
    record = {"ts": datetime.now(timezone.utc).isoformat(), **event}
    try:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")
    except OSError as e:
        logger.warning(f"[analytics] could not write event to {path}: {e}")


def turn_event(event: str, path: str, result: DiscoveryResult, has_image: bool = False) -> Dict[str, Any]:
    return {
        "event": event,
        "path": path,
        "has_image": has_image,
        "items_count": len(result.products),
        "cart_offer": result.cart_offer,
        "reply_len": len(result.reply),
    }
