import base64
import binascii
import re
from datetime import datetime
from typing import List, Literal, Optional, Set, Union

from pydantic import BaseModel, ConfigDict, Field


ProductId = Union[int, str]


class Product(BaseModel):
    # Catalog-local id and the commerce platform id; either one can be claimed by the model.
    id: ProductId
    external_id: Optional[ProductId] = None
    title: str
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    status: Literal["active", "inactive"] = "active"

    # Display-only fields carried through to the widget
    vendor: Optional[str] = None
    product_type: Optional[str] = None
    handle: Optional[str] = None
    image_url: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @property
    def match_keys(self) -> Set[str]:
        keys = {str(self.id)}
        if self.external_id is not None:
            keys.add(str(self.external_id))
        return keys


_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[\w-]+=[^;,]*)*;base64,(?P<data>.*)$", re.DOTALL)


class ImageAttachment(BaseModel):
    model_config = ConfigDict(frozen=True)

    data: bytes
    mime_type: str = "image/jpeg"

    @classmethod
    def from_data_url(cls, data_url: str) -> "ImageAttachment":
        """Decode a browser data URL (``data:image/png;base64,...``).
        A bare base64 string is accepted and treated as JPEG.
        """
        raw = (data_url or "").strip()
        mime = "image/jpeg"
        m = _DATA_URL_RE.match(raw)
        if m:
            mime = m.group("mime") or mime
            raw = m.group("data")
        elif raw.startswith("data:"):
            raise ValueError("Unsupported data URL: expected base64 encoding")
        if not mime.startswith("image/"):
            raise ValueError(f"Unsupported attachment type: {mime}")
        try:
            data = base64.b64decode(raw, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Invalid base64 image payload: {e}") from e
        if not data:
            raise ValueError("Empty image payload")
        return cls(data=data, mime_type=mime)


class ConversationTurn(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str
    image: Optional[ImageAttachment] = None
    timestamp: Optional[datetime] = None


class PolicySnippet(BaseModel):
    title: str
    content: str
    priority: int = 0
    is_active: bool = True


class StoreContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    store_name: Optional[str] = None
    currency: str = "USD"
    store_email: Optional[str] = None
    policies: List[PolicySnippet] = Field(default_factory=list)


class DiscoveryResult(BaseModel):
    reply: str
    products: List[Product] = Field(default_factory=list)
    # Set only when a single product was identified without the model and can be
    # offered for the cart directly.
    cart_offer: bool = False

    @classmethod
    def direct_offer(cls, product: Product, reply: str) -> "DiscoveryResult":
        return cls(reply=reply, products=[product], cart_offer=True)


class ParsedModelOutput(BaseModel):
    product_ids: List[ProductId]
    explanation: str
    description: Optional[str] = None


# HTTP payloads

class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class ChatRequest(BaseModel):
    conversation_id: Optional[str] = None
    messages: List[ChatMessage]
    image_data_url: Optional[str] = None


class RecommendRequest(BaseModel):
    preferences: str
    messages: List[ChatMessage] = Field(default_factory=list)


class ChatResponse(BaseModel):
    reply: str
    suggested_products: List[Product]
    cart_offer: bool = False

    @classmethod
    def from_result(cls, result: DiscoveryResult) -> "ChatResponse":
        return cls(reply=result.reply, suggested_products=result.products, cart_offer=result.cart_offer)
