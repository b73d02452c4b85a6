import pytest

from offerwatch.errors import InvalidDocument, MissingRequiredField, SchemaError
from offerwatch.services.field_mapper import (
    MISSING,
    Number,
    Text,
    map_document,
    map_offer,
    parse_mapping_schema,
    resolve,
    validate_mapping_schema,
)


def test_map_offer_parses_numeric_text():
    offer = map_offer({"title": "iPhone", "price": "4000.50"}, {"ProductName": "title", "Price": "price"})
    assert offer.product_name == "iPhone"
    assert offer.price == 4000.50
    assert offer.original_price == 0
    assert offer.source == "s3-import"
    assert offer.discount_percentage == 0


def test_map_offer_without_product_name_fails():
    with pytest.raises(MissingRequiredField):
        map_offer({"price": "4000"}, {"ProductName": "title", "Price": "price"})


def test_map_offer_blank_product_name_fails():
    with pytest.raises(MissingRequiredField):
        map_offer({"title": "   "}, {"ProductName": "title"})


def test_map_offer_full_schema_with_nested_paths():
    document = {
        "product": {"name": "Galaxy Watch 6", "desc": "44mm"},
        "pricing": {"current": 1299.9, "list": "1999"},
        "cashback": 5,
        "store": "magalu",
    }
    schema = {
        "ProductName": "product.name",
        "Price": "pricing.current",
        "OriginalPrice": "pricing.list",
        "Details": "product.desc",
        "CashbackPercentage": "cashback",
        "Source": "store",
    }
    offer = map_offer(document, schema)
    assert offer.product_name == "Galaxy Watch 6"
    assert offer.price == 1299.9
    assert offer.original_price == 1999.0
    assert offer.details == "44mm"
    assert offer.cashback_percentage == 5
    assert offer.source == "magalu"


def test_map_offer_unparseable_values_degrade_to_zero():
    document = {"title": "TV", "price": "R$ 10,00", "old": True, "cb": "abc"}
    schema = {"ProductName": "title", "Price": "price", "OriginalPrice": "old", "CashbackPercentage": "cb"}
    offer = map_offer(document, schema)
    assert offer.price == 0
    assert offer.original_price == 0
    assert offer.cashback_percentage == 0


def test_map_offer_cashback_rules():
    schema = {"ProductName": "t", "CashbackPercentage": "cb"}
    assert map_offer({"t": "x", "cb": "15"}, schema).cashback_percentage == 15
    assert map_offer({"t": "x", "cb": 15.9}, schema).cashback_percentage == 15
    assert map_offer({"t": "x", "cb": "15.5"}, schema).cashback_percentage == 0
    assert map_offer({"t": "x", "cb": 150}, schema).cashback_percentage == 0


def test_map_offer_negative_price_is_absent():
    offer = map_offer({"t": "x", "p": -10}, {"ProductName": "t", "Price": "p"})
    assert offer.price == 0


def test_map_offer_mapped_source_missing_is_empty():
    offer = map_offer({"t": "x"}, {"ProductName": "t", "Source": "store"})
    assert offer.source == ""


def test_map_offer_custom_default_source():
    offer = map_offer({"t": "x"}, {"ProductName": "t"}, default_source="feed-x")
    assert offer.source == "feed-x"


def test_map_offer_numeric_product_name_is_text():
    offer = map_offer({"sku": 12345}, {"ProductName": "sku"})
    assert offer.product_name == "12345"


def test_resolve_paths():
    document = {"data": {"items": [{"name": "A"}, {"name": "B"}]}, "a.b": "dotted", "n": None}
    assert resolve(document, "data.items.1.name") == Text("B")
    assert resolve(document, "data.items.#") == Number(2)
    assert resolve(document, "data.items.5.name") is MISSING
    assert resolve(document, "a\\.b") == Text("dotted")
    assert resolve(document, "n") is MISSING
    assert resolve(document, "data.missing") is MISSING
    assert resolve(document, "") is MISSING
    assert resolve(document, "data.items.0") == Text('{"name":"A"}')


def test_map_document_array_skips_failing_element():
    document = [
        {"title": "One", "price": 1},
        {"price": 2},
        {"title": "Three", "price": "3"},
    ]
    outcomes = list(map_document(document, {"ProductName": "title", "Price": "price"}))
    assert [o.ok for o in outcomes] == [True, False, True]
    assert isinstance(outcomes[1].error, MissingRequiredField)
    assert [o.offer.product_name for o in outcomes if o.ok] == ["One", "Three"]
    assert outcomes[2].offer.price == 3.0


def test_map_document_single_object():
    outcomes = list(map_document({"title": "Solo"}, {"ProductName": "title"}))
    assert len(outcomes) == 1
    assert outcomes[0].offer.product_name == "Solo"


def test_map_document_rejects_scalar():
    with pytest.raises(InvalidDocument):
        list(map_document("just text", {"ProductName": "title"}))


def test_parse_mapping_schema_rejects_invalid():
    with pytest.raises(SchemaError):
        parse_mapping_schema("{not json")
    with pytest.raises(SchemaError):
        parse_mapping_schema('["ProductName"]')
    with pytest.raises(SchemaError):
        parse_mapping_schema('{"ProductName": {"path": "title"}}')


def test_validate_mapping_schema_rejects_unknown_fields():
    assert validate_mapping_schema('{"ProductName": "title"}') == {"ProductName": "title"}
    with pytest.raises(SchemaError):
        validate_mapping_schema('{"ProductName": "title", "Color": "color"}')


def test_parse_mapping_schema_ignores_unknown_fields_at_run_time():
    schema = parse_mapping_schema('{"ProductName": "title", "Color": "color"}')
    offer = map_offer({"title": "Mug", "color": "red"}, schema)
    assert offer.product_name == "Mug"


def test_resolve_projection_and_length_only_on_arrays():
    document = {"items": [{"name": "A"}, {"name": "B"}], "meta": {"count": 2}, "empty": []}
    assert resolve(document, "items.#.name") == Text('["A","B"]')
    assert resolve(document, "empty.#") == Number(0)
    assert resolve(document, "meta.#") is MISSING
    assert resolve([{"t": "x"}], "0.t") == Text("x")


def test_resolve_non_ascii_digit_segment_is_missing():
    assert resolve({"items": ["a", "b"]}, "items.²") is MISSING
    assert resolve({"items": {"²": "sq"}}, "items.²") == Text("sq")


def test_map_document_survives_non_ascii_digit_path():
    outcomes = list(
        map_document([{"t": "A", "items": [1, 2]}], {"ProductName": "t", "Details": "items.²"})
    )
    assert outcomes[0].ok
    assert outcomes[0].offer.details == ""


def test_numeric_text_is_strict():
    schema = {"ProductName": "t", "Price": "p", "CashbackPercentage": "cb"}
    offer = map_offer({"t": "x", "p": " 4000 ", "cb": " 15"}, schema)
    assert offer.price == 0
    assert offer.cashback_percentage == 0
    offer = map_offer({"t": "x", "p": "1_000", "cb": "1_0"}, schema)
    assert offer.price == 0
    assert offer.cashback_percentage == 0
    offer = map_offer({"t": "x", "p": "1e3", "cb": "+15"}, schema)
    assert offer.price == 1000.0
    assert offer.cashback_percentage == 15
