from __future__ import annotations

import pytest

from conftest import product_payload
from productai.catalog.errors import ValidationError
from productai.catalog.parser import (
    parse_analysis_payload,
    parse_language,
    parse_marketing_payload,
    parse_order_input,
    parse_order_update,
    parse_product_input,
    parse_product_update,
    strip_code_fences,
)


def test_strip_code_fences_variants() -> None:
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'
    assert strip_code_fences("") == ""


def test_strip_code_fences_handles_unbalanced_fences() -> None:
    assert strip_code_fences('```json\n{"a": 1}') == '{"a": 1}'
    assert strip_code_fences('{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences("```json {\"a\": 1}```") == '{"a": 1}'


def test_parse_product_input_normalizes_optional_fields() -> None:
    fields = parse_product_input(product_payload(price="  ", category=12, benefits={"en": ["x"]}))
    assert fields["price"] is None
    assert fields["category"] == "12"
    assert fields["benefits"] == {"ar": [], "en": ["x"], "fr": []}
    assert fields["image_url"] == "/uploads/chair.png"


@pytest.mark.parametrize(
    "overrides",
    [
        {"name": ""},
        {"imageUrl": None},
        {"descriptions": {"ar": "a", "en": "b", "fr": "c", "de": "d"}},
        {"descriptions": {"ar": "a", "en": 1, "fr": "c"}},
        {"benefits": {"en": "not a list"}},
        {"features": {"es": []}},
    ],
)
def test_parse_product_input_rejects(overrides) -> None:
    with pytest.raises(ValidationError):
        parse_product_input(product_payload(**overrides))


def test_parse_product_update_only_patchable_fields() -> None:
    assert parse_product_update({"name": " Stool "}) == {"name": "Stool"}
    with pytest.raises(ValidationError):
        parse_product_update({"id": "x"})
    with pytest.raises(ValidationError):
        parse_product_update({"createdAt": "2024-01-01T00:00:00Z"})
    with pytest.raises(ValidationError):
        parse_product_update(["name"])


def test_parse_order_input_reports_missing_fields() -> None:
    with pytest.raises(ValidationError) as info:
        parse_order_input({"productId": "p1"})
    assert info.value.code == "missing_fields"
    assert info.value.params == {"fields": "customerName, customerPhone"}


def test_parse_order_input_quantity_forms() -> None:
    base = {"productId": "p", "customerName": "n", "customerPhone": "1"}
    assert parse_order_input({**base, "quantity": "3"})["quantity"] == 3
    assert parse_order_input({**base, "quantity": 4.0})["quantity"] == 4
    assert parse_order_input(base)["quantity"] == 1
    for bad in (0, 2.5, "two", False):
        with pytest.raises(ValidationError):
            parse_order_input({**base, "quantity": bad})


def test_parse_order_input_ignores_status() -> None:
    base = {"productId": "p", "customerName": "n", "customerPhone": "1"}
    for status in ("shipped", None, 42):
        assert "status" not in parse_order_input({**base, "status": status})


def test_parse_order_update_validates_values() -> None:
    assert parse_order_update({"status": "delivered"}) == {"status": "delivered"}
    assert parse_order_update({"customerCity": ""}) == {"customer_city": None}
    for bad in ({"status": None}, {"quantity": None}, {"customerName": ""}, {"createdAt": "x"}):
        with pytest.raises(ValidationError):
            parse_order_update(bad)


@pytest.mark.parametrize("value", [None, ""])
def test_parse_order_update_rejects_blank_language(value) -> None:
    with pytest.raises(ValidationError) as info:
        parse_order_update({"language": value})
    assert info.value.code == "invalid_language"
    assert parse_order_update({"language": "EN"}) == {"language": "en"}


def test_parse_language() -> None:
    assert parse_language(None) == "ar"
    assert parse_language("FR") == "fr"
    assert parse_language("", default="en") == "en"
    with pytest.raises(ValidationError) as info:
        parse_language("de")
    assert info.value.code == "invalid_language"


def test_parse_analysis_payload_is_lenient() -> None:
    fields = parse_analysis_payload(
        {
            "name": "  ",
            "descriptions": {"en": "Only English"},
            "benefits": {"en": ["Good", 3, " "], "fr": "nope"},
            "price": 20,
        }
    )
    assert fields["name"] == "Unnamed Product"
    assert fields["descriptions"] == {"ar": "", "en": "Only English", "fr": ""}
    assert fields["benefits"] == {"ar": [], "en": ["Good"], "fr": []}
    assert fields["features"] == {"ar": [], "en": [], "fr": []}
    assert fields["price"] == "20"
    assert fields["category"] is None
    assert "imageUrl" not in fields


def test_parse_marketing_payload() -> None:
    post = parse_marketing_payload({"post": "Great chair", "hashtags": ["#a", 1]})
    assert post == {"post": "Great chair", "hashtags": ["#a"], "callToAction": "", "salesTips": []}
    with pytest.raises(ValidationError):
        parse_marketing_payload({"hashtags": []})
