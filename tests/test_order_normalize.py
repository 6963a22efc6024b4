from __future__ import annotations

import json
import logging
import math

import pandas as pd
import pytest

from ingestion.order import FailureKind, OrderPayloadNormalizer, normalize, normalize_with_outcome
from order_engine.data.order import EMPTY_ORDER, NormalizedOrder, ValidatedItem
from order_engine.runtime import PanelConfig
from order_engine.utils.num import round2


BURGER_AND_FRIES = [
    {"name": "Burger", "quantity": 2, "price": 5.995},
    {"name": "Fries", "quantity": 1, "price": 2.50},
]


@pytest.mark.parametrize("raw", ["not json", "{", "[1, 2", "[{'name': 'A'}]", "[NaN]", "Infinity", b"\xff\xfe["])
def test_malformed_strings_give_empty_order(raw):
    outcome = normalize_with_outcome(raw)
    assert outcome.order == EMPTY_ORDER
    assert outcome.order.to_dict() == {"items": [], "totalAmount": 0}
    assert outcome.failure is FailureKind.DECODE_FAILURE


@pytest.mark.parametrize("raw", [None, "", b"", 0, False])
def test_absent_input_gives_empty_order(raw):
    outcome = normalize_with_outcome(raw)
    assert outcome.order == EMPTY_ORDER
    assert outcome.failure is FailureKind.EMPTY_INPUT


@pytest.mark.parametrize(
    "raw",
    [
        {"name": "A", "quantity": 1, "price": 1},
        42,
        True,
        "42",
        '"just a string"',
        '{"items": [{"name": "A", "quantity": 1, "price": 1}]}',
        "null",
    ],
)
def test_non_sequence_values_give_empty_order(raw):
    outcome = normalize_with_outcome(raw)
    assert outcome.order == EMPTY_ORDER
    assert outcome.failure is FailureKind.SHAPE_FAILURE


def test_items_missing_required_keys_are_all_dropped():
    raw = json.dumps([
        {"quantity": 1, "price": 1},
        {"name": "A", "price": 1},
        {"name": "A", "quantity": 1},
        {},
    ])
    outcome = normalize_with_outcome(raw)
    assert outcome.ok
    assert outcome.dropped == 4
    assert outcome.order.items == ()
    assert outcome.order.total_amount == 0


def test_non_mapping_elements_are_dropped():
    outcome = normalize_with_outcome([None, 1, "name", ["name", "quantity", "price"], True])
    assert outcome.ok
    assert outcome.dropped == 5
    assert outcome.order.is_empty


def test_empty_sequence_is_a_valid_empty_order():
    for raw in ("[]", [], ()):
        outcome = normalize_with_outcome(raw)
        assert outcome.ok
        assert outcome.order == EMPTY_ORDER


def test_total_is_rounded_sum_of_price_times_quantity():
    for raw in (json.dumps(BURGER_AND_FRIES), BURGER_AND_FRIES):
        order = normalize(raw)
        assert [item.name for item in order.items] == ["Burger", "Fries"]
        assert order.total_amount == 14.49


def test_mixed_valid_and_invalid_items():
    raw = json.dumps([
        {"name": "A", "quantity": 1, "price": 1},
        {"foo": "bar"},
        {"name": "B", "quantity": 2, "price": 3},
    ])
    outcome = normalize_with_outcome(raw)
    assert [item.name for item in outcome.order.items] == ["A", "B"]
    assert outcome.order.total_amount == 7
    assert outcome.dropped == 1


def test_normalize_is_idempotent():
    raw = json.dumps(BURGER_AND_FRIES + [{"foo": "bar"}])
    first = normalize(raw)
    second = normalize(raw)
    assert first == second
    assert first.to_dict() == second.to_dict()
    assert first is not second


def test_input_is_not_mutated():
    raw = [dict(item) for item in BURGER_AND_FRIES]
    snapshot = json.dumps(raw)
    normalize(raw)
    assert json.dumps(raw) == snapshot


def test_total_from_payload_is_ignored():
    raw = json.dumps([{"name": "A", "quantity": 1, "price": 1, "totalAmount": 99}])
    order = normalize(raw)
    assert order.total_amount == 1
    assert order.items[0].extra == {"totalAmount": 99}


def test_item_fields_are_kept_verbatim():
    raw = json.dumps([
        {"name": "Burger", "quantity": 2, "price": 5.995, "specialInstructions": "no onions", "sku": "B-1"},
        {"name": "Fries", "quantity": 1, "price": 2.5},
    ])
    order = normalize(raw)
    burger, fries = order.items
    assert burger.special_instructions == "no onions"
    assert burger.note == "no onions"
    assert burger.to_dict() == {
        "name": "Burger",
        "quantity": 2,
        "price": 5.995,
        "specialInstructions": "no onions",
        "sku": "B-1",
    }
    assert not fries.has_special_instructions
    assert fries.note is None
    assert "specialInstructions" not in fries.to_dict()


def test_presence_only_no_range_validation():
    order = normalize([{"name": "Refund", "quantity": -1, "price": 4}, {"name": None, "quantity": 0, "price": 0}])
    assert len(order.items) == 2
    assert order.total_amount == -4


def test_non_numeric_amount_is_kept_and_total_is_nan():
    order = normalize(json.dumps([
        {"name": "A", "quantity": "two", "price": 1},
        {"name": "B", "quantity": 1, "price": 1},
    ]))
    assert len(order.items) == 2
    assert math.isnan(order.total_amount)
    assert math.isnan(order.items[0].line_total)
    assert order.items[1].line_total == 1


@pytest.mark.parametrize("bad", [True, None, [1], {"v": 1}, "abc"])
def test_non_numeric_values_make_the_line_nan(bad):
    order = normalize([{"name": "A", "quantity": 1, "price": bad}])
    assert len(order.items) == 1
    assert math.isnan(order.total_amount)


def test_numeric_strings_are_read_as_numbers():
    order = normalize([{"name": "A", "quantity": "2", "price": " 1.5 "}])
    assert order.total_amount == 3.0


def test_strict_numeric_drops_non_numeric_items():
    normalizer = OrderPayloadNormalizer(config=PanelConfig(strict_numeric=True))
    outcome = normalizer.normalize_with_outcome(raw=[
        {"name": "A", "quantity": "2", "price": 1},
        {"name": "B", "quantity": True, "price": 1},
        {"name": "C", "quantity": 3, "price": 1.25},
    ])
    assert [item.name for item in outcome.order.items] == ["C"]
    assert outcome.order.total_amount == 3.75
    assert outcome.dropped == 2


def test_round2_matches_fixed_point_rounding():
    assert round2(0.125) == 0.13
    assert round2(-0.125) == -0.13
    assert round2(1.005) == 1.0
    assert round2(0.1 + 0.2) == 0.3
    assert math.isnan(round2(float("nan")))
    assert round2(float("inf")) == float("inf")


def test_total_rounding_half_up():
    order = normalize([{"name": "A", "quantity": 1, "price": 0.125}])
    assert order.total_amount == 0.13


def test_tuple_input_is_a_sequence():
    order = normalize(tuple(BURGER_AND_FRIES))
    assert order.total_amount == 14.49


def test_bytes_payload_is_decoded():
    order = normalize(json.dumps(BURGER_AND_FRIES).encode("utf-8"))
    assert order.total_amount == 14.49


def test_dataframe_payload_uses_row_records():
    df = pd.DataFrame([
        {"name": "A", "quantity": 1, "price": 2.0},
        {"name": "B", "quantity": 2},
    ])
    outcome = normalize_with_outcome(df)
    assert [item.name for item in outcome.order.items] == ["A"]
    assert outcome.order.total_amount == 2.0
    assert isinstance(outcome.order.items[0].quantity, int)
    assert outcome.dropped == 1


def test_deeply_nested_payload_does_not_raise():
    raw = "[" * 100_000 + "]" * 100_000
    outcome = normalize_with_outcome(raw)
    assert outcome.order == EMPTY_ORDER
    assert outcome.failure is FailureKind.DECODE_FAILURE


def test_rejections_are_logged_with_failure_kind(caplog):
    with caplog.at_level(logging.WARNING):
        normalize("definitely not json")
    records = [r for r in caplog.records if r.getMessage() == "order payload rejected"]
    assert records
    ctx = records[-1].context
    assert ctx["category"] == "payload_integrity"
    assert ctx["failure"] == "decode_failure"


def test_result_types():
    order = normalize(BURGER_AND_FRIES)
    assert isinstance(order, NormalizedOrder)
    assert all(isinstance(item, ValidatedItem) for item in order.items)
    assert isinstance(order.items, tuple)


def test_large_total_keeps_items():
    outcome = normalize_with_outcome([{"name": "Yacht", "quantity": 1, "price": 1e27}])
    assert outcome.ok
    assert [item.name for item in outcome.order.items] == ["Yacht"]
    assert outcome.order.total_amount == 1e27


def test_round2_handles_large_magnitudes():
    assert round2(1e27) == 1e27
    assert round2(-1e300) == -1e300
    assert round2(1.7976931348623157e308) == 1.7976931348623157e308
    assert round2(5e-324) == 0.0


class _ExplodingList(list):
    def __iter__(self):
        raise RuntimeError("boom")


def test_unexpected_error_is_reported_as_internal(caplog):
    with caplog.at_level(logging.ERROR):
        outcome = normalize_with_outcome(_ExplodingList([{"name": "A", "quantity": 1, "price": 1}]))
    assert outcome.order == EMPTY_ORDER
    assert outcome.failure is FailureKind.INTERNAL_ERROR
    records = [r for r in caplog.records if r.getMessage() == "order payload normalization failed"]
    assert records
    assert records[-1].context["failure"] == "internal_error"
    assert records[-1].exc_info is not None


def test_items_are_hashable_with_unhashable_payload_values():
    order = normalize([
        {"name": "Combo", "quantity": [1], "price": {"base": 2}, "sides": ["fries"]},
        {"name": ["odd"], "quantity": 1, "price": 1},
    ])
    first, second = order.items
    assert isinstance(hash(first), int)
    assert isinstance(hash(second), int)
    same = ValidatedItem.from_mapping({"name": "Combo", "quantity": [1], "price": {"base": 2}, "sides": ["fries"]})
    assert same == first
    assert hash(same) == hash(first)
    assert len({first, second, same}) == 2
