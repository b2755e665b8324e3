import pytest

from storefront_assistant import fallback
from storefront_assistant.models import DiscoveryResult


def test_text_search_matches_title_description_and_tags(catalog):
    result = fallback.text_search_fallback("SHOE", catalog, limit=5)
    # product 4 only carries a "shoes" tag
    assert [p.id for p in result.products] == [3, 4, 7]
    assert result.reply.startswith('Found 3 products matching "SHOE"')
    assert result.cart_offer is False

    by_tag = fallback.text_search_fallback("winter", catalog, limit=5)
    assert [p.id for p in by_tag.products] == [8]
    assert by_tag.reply.startswith('Found 1 product matching "winter"')


def test_text_search_respects_limit(catalog):
    result = fallback.text_search_fallback("e", catalog, limit=2)
    assert len(result.products) == 2


def test_text_search_no_match(catalog):
    result = fallback.text_search_fallback("xyz-nonexistent", catalog, limit=5)
    assert result.products == []
    assert result.reply.startswith('No matches found for "xyz-nonexistent"')


@pytest.mark.parametrize("query", ["", None, "anything"])
def test_text_search_total_on_empty_catalog(query):
    result = fallback.text_search_fallback(query, [], limit=5)
    assert isinstance(result, DiscoveryResult)
    assert result.products == []
    assert result.reply


def test_image_fallback_returns_first_three(catalog):
    result = fallback.image_fallback(catalog, transport_failed=True)
    assert [p.id for p in result.products] == [1, 2, 3]
    assert result.reply == fallback.IMAGE_TRANSPORT_REPLY
    assert fallback.image_fallback(catalog, transport_failed=False).reply == fallback.IMAGE_CONTRACT_REPLY
    assert fallback.image_fallback([]).products == []


@pytest.mark.parametrize(
    "message,expected",
    [
        ("How much is shipping to Oslo?", fallback.SHIPPING_REPLY),
        ("What is your return policy?", fallback.RETURNS_REPLY),
        ("Can I get a REFUND", fallback.RETURNS_REPLY),
        ("which size should I get", fallback.SIZING_REPLY),
        ("Sizing help please", fallback.SIZING_REPLY),
        ("hello there", fallback.GENERIC_REPLY),
        ("", fallback.GENERIC_REPLY),
        (None, fallback.GENERIC_REPLY),
        ("shipping and returns", fallback.SHIPPING_REPLY),
    ],
)
def test_conversational_keyword_rules(message, expected):
    result = fallback.conversational_fallback(message)
    assert result.reply == expected
    assert result.products == []


def test_recommendation_fallback(catalog):
    result = fallback.recommendation_fallback(catalog)
    assert [p.id for p in result.products] == [1, 2, 3]
    assert result.reply == fallback.RECOMMENDATION_REPLY
    assert fallback.recommendation_fallback([]).products == []
