import json

import pytest

from storefront_assistant.errors import ContractViolation
from storefront_assistant.models import ParsedModelOutput, Product
from storefront_assistant.prompts import TaskKind
from storefront_assistant.response_parser import DEFAULT_EXPLANATION, match_products, parse_model_output


def test_parses_search_reply():
    parsed = parse_model_output('{"productIds": [3, "p-7"], "explanation": "Both are shoes"}', TaskKind.TEXT_SEARCH)
    assert parsed.product_ids == [3, "p-7"]
    assert parsed.explanation == "Both are shoes"
    assert parsed.description is None


def test_parses_image_reply_verbatim():
    text = '{"description":"a red shoe","productIds":[3,7],"explanation":"These match the shoe style"}'
    parsed = parse_model_output(text, TaskKind.IMAGE_SEARCH)
    assert parsed.description == "a red shoe"
    assert parsed.product_ids == [3, 7]


@pytest.mark.parametrize(
    "text",
    [
        "Sure! Here are some products you might like.",
        '```json\n{"productIds": [1], "explanation": "x"}\n```',
        '{"productIds": [1], "explanation": "x"',
        '[{"productIds": [1], "explanation": "x"}]',
        '"just a string"',
        "",
        '{"productIds": [1]}',
        '{"explanation": "x"}',
        '{"productIds": [1], "explanation": "x", "confidence": 0.9}',
        '{"productIds": "1,2", "explanation": "x"}',
        '{"productIds": {"a": 1}, "explanation": "x"}',
        '{"productIds": [true], "explanation": "x"}',
        '{"productIds": [1.5], "explanation": "x"}',
        '{"productIds": [[1]], "explanation": "x"}',
        '{"productIds": [1], "explanation": null}',
    ],
)
def test_rejects_anything_but_the_exact_search_contract(text):
    with pytest.raises(ContractViolation):
        parse_model_output(text, TaskKind.TEXT_SEARCH)


def test_image_reply_requires_description():
    with pytest.raises(ContractViolation):
        parse_model_output('{"productIds": [3], "explanation": "x"}', TaskKind.IMAGE_SEARCH)


def test_search_reply_rejects_description_key():
    text = '{"description": "d", "productIds": [3], "explanation": "x"}'
    with pytest.raises(ContractViolation):
        parse_model_output(text, TaskKind.RECOMMENDATION)


def test_conversational_kind_has_no_contract():
    with pytest.raises(ContractViolation):
        parse_model_output('{"productIds": [], "explanation": ""}', TaskKind.CONVERSATIONAL)


def test_blank_explanation_gets_default():
    parsed = parse_model_output('{"productIds": [], "explanation": "  "}', TaskKind.TEXT_SEARCH)
    assert parsed.explanation == DEFAULT_EXPLANATION[TaskKind.TEXT_SEARCH]


def test_match_by_local_or_external_id_in_catalog_order(catalog):
    parsed = ParsedModelOutput(product_ids=[9007, "3"], explanation="x")
    matched = match_products(parsed, catalog, limit=5)
    assert [p.id for p in matched] == [3, 7]


def test_match_ignores_unknown_ids(catalog):
    parsed = ParsedModelOutput(product_ids=[42, "nope", 2], explanation="x")
    assert [p.id for p in match_products(parsed, catalog, limit=5)] == [2]


def test_match_respects_limit(catalog):
    parsed = ParsedModelOutput(product_ids=list(range(1, 11)), explanation="x")
    assert [p.id for p in match_products(parsed, catalog, limit=3)] == [1, 2, 3]
    assert match_products(parsed, catalog, limit=0) == []


def test_match_string_ids():
    products = [Product(id="p-1", title="a"), Product(id="p-2", external_id="shop-2", title="b")]
    parsed = parse_model_output(json.dumps({"productIds": ["shop-2"], "explanation": "b"}), TaskKind.TEXT_SEARCH)
    assert [p.id for p in match_products(parsed, products, limit=5)] == ["p-2"]
