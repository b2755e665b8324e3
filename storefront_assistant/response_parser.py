import json
from typing import Dict, FrozenSet, List, Sequence, Union

from pydantic import BaseModel, ConfigDict, StrictInt, StrictStr, ValidationError

from .errors import ContractViolation
from .models import ParsedModelOutput, Product
from .prompts import TaskKind

REQUIRED_KEYS: Dict[TaskKind, FrozenSet[str]] = {
    TaskKind.TEXT_SEARCH: frozenset({"productIds", "explanation"}),
    TaskKind.RECOMMENDATION: frozenset({"productIds", "explanation"}),
    TaskKind.IMAGE_SEARCH: frozenset({"description", "productIds", "explanation"}),
}

DEFAULT_EXPLANATION = {
    TaskKind.TEXT_SEARCH: "Found relevant products for your search.",
    TaskKind.RECOMMENDATION: "Here are some products I think you'll love!",
    TaskKind.IMAGE_SEARCH: "These products look similar to your image.",
}
DEFAULT_IMAGE_DESCRIPTION = "I can see items in this image that might match our products."


class _SearchPayload(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    productIds: List[Union[StrictInt, StrictStr]]
    explanation: StrictStr


class _ImagePayload(_SearchPayload):
    description: StrictStr


def parse_model_output(text: str, kind: TaskKind) -> ParsedModelOutput:
    """Read the model's reply as exactly one JSON object with the key set required
    for ``kind``. No repair is attempted: fenced, truncated or chatty output is a
    ContractViolation, as is any missing or extra key.
    """
    required = REQUIRED_KEYS.get(kind)
    if required is None:
        raise ContractViolation(f"{kind.value} replies are free text and have no JSON contract")
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise ContractViolation(f"reply is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ContractViolation(f"expected a JSON object, got {type(data).__name__}")
    keys = set(data)
    if keys != required:
        missing = sorted(required - keys)
        extra = sorted(keys - required)
        raise ContractViolation(f"unexpected key set (missing={missing}, extra={extra})")

    payload_cls = _ImagePayload if kind is TaskKind.IMAGE_SEARCH else _SearchPayload
    try:
        payload = payload_cls.model_validate(data)
    except ValidationError as e:
        raise ContractViolation(f"reply does not match the {kind.value} contract: {e.error_count()} error(s)") from e

    explanation = payload.explanation if payload.explanation.strip() else DEFAULT_EXPLANATION[kind]
    description = None
    if isinstance(payload, _ImagePayload):
        description = payload.description if payload.description.strip() else DEFAULT_IMAGE_DESCRIPTION
    return ParsedModelOutput(product_ids=payload.productIds, explanation=explanation, description=description)


def match_products(parsed: ParsedModelOutput, products: Sequence[Product], limit: int) -> List[Product]:
    """Catalog products whose local or external id was claimed, in catalog order."""
    if limit <= 0:
        return []
    claimed = {str(pid) for pid in parsed.product_ids}
    matched: List[Product] = []
    for p in products:
        if p.match_keys & claimed:
            matched.append(p)
            if len(matched) >= limit:
                break
    return matched
