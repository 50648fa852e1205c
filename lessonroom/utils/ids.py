"""Identifier utilities.

Lesson documents have been keyed three different ways over the life of the store: plain integers,
12-byte object ids written as 24 hex characters, and raw strings. A literal value coming from a
client can have been stored under any representation it is consistent with, so lookups go through
`normalize_identifier` instead of guessing per call site.
"""

from __future__ import annotations

import itertools
import math
import re
import secrets
import time
from dataclasses import dataclass
from typing import Any, ClassVar

_HEX_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")
_INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")

_PROCESS_UNIQUE = secrets.token_bytes(5)
_COUNTER = itertools.count(secrets.randbelow(0xFFFFFF))


@dataclass(frozen=True)
class IntegerId:
  """Identifier minted as an integer."""

  value: int
  kind: ClassVar[str] = "int"

  def __str__(self) -> str:
    return str(self.value)


@dataclass(frozen=True)
class HexId:
  """Store-native 12-byte identifier rendered as 24 lowercase hex characters."""

  value: str
  kind: ClassVar[str] = "hex"

  def __post_init__(self) -> None:
    if not _HEX_ID_PATTERN.fullmatch(self.value) or self.value != self.value.lower():
      raise ValueError(f"HexId requires 24 lowercase hex characters, got {self.value!r}.")

  def __str__(self) -> str:
    return self.value


@dataclass(frozen=True)
class OpaqueId:
  """Identifier stored as an arbitrary string."""

  value: str
  kind: ClassVar[str] = "str"

  def __str__(self) -> str:
    return self.value


DocumentId = IntegerId | HexId | OpaqueId
ID_KINDS: tuple[str, ...] = (IntegerId.kind, HexId.kind, OpaqueId.kind)


def _parse_integer(text: str) -> int | None:
  """Return the integer a numeric-looking string spells, or None when it is out of conversion range."""
  try:
    return int(text)
  except ValueError:
    return None


def _literal_and_text(raw: Any) -> tuple[DocumentId, str] | None:
  """Return the literal representation of a raw value together with its string form."""
  if isinstance(raw, IntegerId | HexId | OpaqueId):
    return raw, str(raw)
  # bool is an int subclass but never an identifier.
  if isinstance(raw, bool):
    return None
  if isinstance(raw, int):
    try:
      return IntegerId(raw), str(raw)
    except ValueError:
      # str() refuses integers past the interpreter's digit limit.
      return None
  if isinstance(raw, float):
    if not math.isfinite(raw) or not raw.is_integer():
      return None
    return IntegerId(int(raw)), str(int(raw))
  if isinstance(raw, str):
    if not raw.strip():
      return None
    return OpaqueId(raw), raw.strip()
  return None


def normalize_identifier(raw: Any) -> list[DocumentId]:
  """Return every representation worth querying for a raw identifier value.

  The result holds the literal value, its string form, its integer form when the value is
  numeric-looking and its hex form when the value is 24 hex characters. Values that cannot be an
  identifier at all produce an empty list instead of an error.
  """
  parsed = _literal_and_text(raw)
  if parsed is None:
    return []

  literal, text = parsed
  candidates: list[DocumentId] = [literal, OpaqueId(text)]
  number = _parse_integer(text) if _INTEGER_PATTERN.fullmatch(text) else None
  if number is not None:
    candidates.append(IntegerId(number))
  if _HEX_ID_PATTERN.fullmatch(text):
    candidates.append(HexId(text.lower()))

  # Keep first-seen order so the literal is always queried first.
  return list(dict.fromkeys(candidates))


def coerce_identifier(raw: Any) -> DocumentId | None:
  """Return the single canonical representation of a raw identifier."""
  if isinstance(raw, IntegerId | HexId | OpaqueId):
    return raw

  parsed = _literal_and_text(raw)
  if parsed is None:
    return None

  literal, text = parsed
  if isinstance(literal, IntegerId):
    return literal
  if _HEX_ID_PATTERN.fullmatch(text):
    return HexId(text.lower())
  number = _parse_integer(text) if _INTEGER_PATTERN.fullmatch(text) else None
  if number is not None:
    return IntegerId(number)
  return OpaqueId(text)


def identifier_key(raw: Any) -> str | None:
  """Return the normalized string form used to de-duplicate identifiers."""
  identifier = coerce_identifier(raw)
  if identifier is None:
    return None
  if isinstance(identifier, IntegerId | OpaqueId):
    # Re-coerce through the string form so OpaqueId("0123") and IntegerId(123) agree.
    return str(coerce_identifier(str(identifier)))
  return str(identifier)


def parse_stored_id(kind: str, value: str) -> DocumentId:
  """Rebuild an identifier from its persisted kind/value columns."""
  if kind == IntegerId.kind:
    return IntegerId(int(value))
  if kind == HexId.kind:
    return HexId(value)
  if kind == OpaqueId.kind:
    return OpaqueId(value)
  raise ValueError(f"Unknown identifier kind {kind!r}.")


def new_hex_id() -> HexId:
  """Return a new store-native identifier: 4 bytes of time, 5 process bytes, 3 counter bytes."""
  timestamp = int(time.time()).to_bytes(4, "big")
  counter = (next(_COUNTER) & 0xFFFFFF).to_bytes(3, "big")
  return HexId((timestamp + _PROCESS_UNIQUE + counter).hex())
