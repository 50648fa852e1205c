from __future__ import annotations

import pytest

from lessonroom.utils.ids import HexId, IntegerId, OpaqueId, coerce_identifier, identifier_key, new_hex_id, normalize_identifier, parse_stored_id

HEX = "507f1f77bcf86cd799439011"


def test_numeric_string_yields_string_and_integer_forms() -> None:
  assert normalize_identifier("123") == [OpaqueId("123"), IntegerId(123)]


def test_integer_literal_is_queried_first() -> None:
  assert normalize_identifier(123) == [IntegerId(123), OpaqueId("123")]


def test_hex_string_yields_native_identifier_in_lowercase() -> None:
  candidates = normalize_identifier(HEX.upper())
  assert candidates[0] == OpaqueId(HEX.upper())
  assert HexId(HEX) in candidates
  assert all(not isinstance(candidate, IntegerId) for candidate in candidates)


def test_other_strings_only_yield_the_string_form() -> None:
  assert normalize_identifier("intro-to-budgets") == [OpaqueId("intro-to-budgets")]


@pytest.mark.parametrize("raw", [None, True, False, 1.5, float("nan"), "", "   ", {"_id": 1}, [1, 2]])
def test_malformed_values_produce_no_candidates(raw) -> None:
  assert normalize_identifier(raw) == []


def test_integral_float_is_treated_as_integer() -> None:
  assert normalize_identifier(7.0) == [IntegerId(7), OpaqueId("7")]


def test_identifier_key_agrees_across_representations() -> None:
  assert identifier_key("123") == identifier_key(123) == identifier_key(IntegerId(123)) == identifier_key(OpaqueId("0123"))
  assert identifier_key(HEX.upper()) == identifier_key(HexId(HEX)) == HEX
  assert identifier_key(None) is None


def test_coerce_prefers_hex_then_integer() -> None:
  assert coerce_identifier(HEX) == HexId(HEX)
  assert coerce_identifier("42") == IntegerId(42)
  assert coerce_identifier("abc") == OpaqueId("abc")
  assert coerce_identifier("") is None


def test_hex_id_rejects_uppercase_and_wrong_length() -> None:
  with pytest.raises(ValueError):
    HexId(HEX.upper())
  with pytest.raises(ValueError):
    HexId("abc")


def test_new_hex_ids_are_unique_and_round_trip_through_storage_columns() -> None:
  first, second = new_hex_id(), new_hex_id()
  assert first != second
  assert parse_stored_id(first.kind, str(first)) == first
  assert parse_stored_id("int", "9") == IntegerId(9)
  with pytest.raises(ValueError):
    parse_stored_id("uuid", "x")


def test_digit_string_past_conversion_limit_keeps_only_the_string_form() -> None:
  oversized = "9" * 5000

  assert normalize_identifier(oversized) == [OpaqueId(oversized)]
  assert coerce_identifier(oversized) == OpaqueId(oversized)
  assert identifier_key(oversized) == oversized


def test_integer_past_conversion_limit_is_not_an_identifier() -> None:
  oversized = 10**5000

  assert normalize_identifier(oversized) == []
  assert coerce_identifier(oversized) is None
  assert identifier_key(oversized) is None
