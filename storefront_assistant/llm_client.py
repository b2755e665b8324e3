import base64
from typing import Any, Dict, List, Optional, Protocol

import google.generativeai as genai
from openai import AsyncOpenAI

from .config import Settings
from .errors import TransportError
from .log import get_logger
from .models import ImageAttachment

logger = get_logger("llm_client")


class ModelTransport(Protocol):
    """Send a prompt (optionally with one image) and return the model's text.
    Implementations raise TransportError for every failure they can observe.
    """

    async def complete(self, prompt: str, image: Optional[ImageAttachment] = None, expect_json: bool = False) -> str:
        ...


class GeminiTransport:
    def __init__(self, api_key: str, model_name: str = "gemini-1.5-flash", temperature: float = 0.4):
        if not api_key:
            raise TransportError("GEMINI_API_KEY missing. Set it in .env or environment.")
        genai.configure(api_key=api_key)
        self.model_name = model_name
        self.temperature = temperature
        self._model = genai.GenerativeModel(model_name)

    async def complete(self, prompt: str, image: Optional[ImageAttachment] = None, expect_json: bool = False) -> str:
        parts: List[Any] = [prompt]
        if image is not None:
            parts.append({"mime_type": image.mime_type, "data": image.data})
        config: Dict[str, Any] = {"temperature": self.temperature}
        if expect_json:
            config["response_mime_type"] = "application/json"
        try:
            resp = await self._model.generate_content_async(parts, generation_config=config)
            # .text raises ValueError when the candidate was blocked or empty
            return (resp.text or "").strip()
        except Exception as e:
            raise TransportError(f"Gemini request failed: {type(e).__name__}: {e}") from e


class OpenAITransport:
    def __init__(
        self,
        api_key: str,
        model_name: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        temperature: float = 0.4,
    ):
        if not api_key:
            raise TransportError("OPENAI_API_KEY missing. Set it in .env or environment.")
        self.model_name = model_name
        self.temperature = temperature
        self._client = AsyncOpenAI(api_key=api_key, base_url=base_url) if base_url else AsyncOpenAI(api_key=api_key)

    async def complete(self, prompt: str, image: Optional[ImageAttachment] = None, expect_json: bool = False) -> str:
        if image is not None:
            b64 = base64.b64encode(image.data).decode("utf-8")
            content: Any = [
                {"type": "text", "text": prompt},
                {"type": "image_url", "image_url": {"url": f"data:{image.mime_type};base64,{b64}"}},
            ]
        else:
            content = prompt
        kwargs: Dict[str, Any] = {
            "model": self.model_name,
            "messages": [{"role": "user", "content": content}],
            "temperature": self.temperature,
        }
        if expect_json:
            kwargs["response_format"] = {"type": "json_object"}
        try:
            resp = await self._client.chat.completions.create(**kwargs)
        except Exception as e:
            raise TransportError(f"OpenAI request failed: {type(e).__name__}: {e}") from e
        if not resp.choices:
            raise TransportError("OpenAI returned no choices")
        return (resp.choices[0].message.content or "").strip()


class UnconfiguredTransport:
    """Stand-in used when no API key is configured; every call fails so the
    engine answers from its fallbacks.
    """

    def __init__(self, reason: str = "No model API key configured"):
        self.reason = reason

    async def complete(self, prompt: str, image: Optional[ImageAttachment] = None, expect_json: bool = False) -> str:
        raise TransportError(self.reason)


def make_transport(settings: Settings) -> ModelTransport:
    if not settings.has_model_credentials:
        logger.warning(f"[llm_client] {settings.model_provider} API key not found. AI features will be limited.")
        return UnconfiguredTransport(f"{settings.model_provider} API key not configured")
    if settings.model_provider == "openai":
        return OpenAITransport(
            api_key=settings.openai_api_key or "",
            model_name=settings.openai_model,
            base_url=settings.openai_base_url,
        )
    if settings.model_provider != "gemini":
        logger.warning(f"[llm_client] unknown MODEL_PROVIDER={settings.model_provider!r}; using gemini")
    return GeminiTransport(api_key=settings.gemini_api_key or "", model_name=settings.gemini_model)
