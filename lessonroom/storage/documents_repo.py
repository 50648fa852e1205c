"""Storage interfaces and helpers for document persistence."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from lessonroom.utils.ids import DocumentId

LESSONS = "lessons"
TEACHERS = "teachers"
STUDENTS = "students"

Document = dict[str, Any]
Filter = Mapping[str, Any]
Mutator = Callable[[Document], bool]

_MISSING = object()


class DuplicateDocumentError(Exception):
  """Raised when inserting a document whose identifier already exists in the collection."""


@dataclass(frozen=True)
class UpdateResult:
  """Outcome of an update call."""

  matched_count: int
  modified_count: int


class DocumentStore(Protocol):
  """Repository contract for document persistence.

  Every update applies its mutator to one document at a time and persists the result atomically for
  that document. There are no multi-document transactions.
  """

  async def get(self, collection: str, doc_id: DocumentId) -> Document | None:
    """Fetch one document by its exact identifier."""

  async def find_one(self, collection: str, filter: Filter) -> Document | None:
    """Fetch the first document matching a filter."""

  async def find(self, collection: str, filter: Filter | None = None) -> list[Document]:
    """Fetch every document matching a filter in insertion order."""

  async def find_by_ids(self, collection: str, ids: Iterable[DocumentId]) -> list[Document]:
    """Fetch every document whose identifier is in the given set."""

  async def insert_one(self, collection: str, document: Document) -> DocumentId:
    """Insert a document, minting a hex identifier when `_id` is absent."""

  async def update_one(self, collection: str, filter: Filter, mutator: Mutator) -> UpdateResult:
    """Apply a mutator to the first matching document."""

  async def update_many(self, collection: str, filter: Filter, mutator: Mutator) -> UpdateResult:
    """Apply a mutator to every matching document, one document at a time."""

  async def delete_many(self, collection: str, filter: Filter) -> int:
    """Delete every matching document and return the number removed."""


def _resolve_path(value: Any, parts: list[str]) -> list[Any]:
  """Return every value reachable through a dotted path, fanning out over arrays."""
  if not parts:
    return [value]

  head, rest = parts[0], parts[1:]
  if isinstance(value, dict):
    if head not in value:
      return []
    return _resolve_path(value[head], rest)

  if isinstance(value, list):
    # Numeric segments index into the array; anything else matches against each element.
    if head.isdigit():
      index = int(head)
      return _resolve_path(value[index], rest) if index < len(value) else []
    resolved: list[Any] = []
    for item in value:
      resolved.extend(_resolve_path(item, parts))
    return resolved

  return []


def _value_matches(candidate: Any, expected: Any) -> bool:
  if candidate == expected:
    return True
  # Equality against an array matches when any element is equal.
  if isinstance(candidate, list):
    return any(item == expected for item in candidate)
  return False


def _condition_matches(values: list[Any], condition: Any) -> bool:
  if isinstance(condition, Mapping) and condition and all(str(key).startswith("$") for key in condition):
    for operator, operand in condition.items():
      if operator == "$in":
        if not any(_value_matches(value, option) for value in values for option in operand):
          return False
      elif operator == "$exists":
        if bool(values) != bool(operand):
          return False
      elif operator == "$ne":
        if any(_value_matches(value, operand) for value in values):
          return False
      else:
        raise ValueError(f"Unsupported filter operator {operator!r}.")
    return True

  return any(_value_matches(value, condition) for value in values)


def match_document(document: Document, filter: Filter | None) -> bool:
  """Return whether a document satisfies every clause of a filter."""
  if not filter:
    return True
  return all(_condition_matches(_resolve_path(document, key.split(".")), condition) for key, condition in filter.items())


def get_path(document: Document, path: str, default: Any = None) -> Any:
  """Read a dotted path from nested dictionaries."""
  current: Any = document
  for part in path.split("."):
    if not isinstance(current, dict) or part not in current:
      return default
    current = current[part]
  return current


def set_path(document: Document, path: str, value: Any) -> bool:
  """Set a dotted path, creating intermediate objects, and report whether anything changed."""
  parts = path.split(".")
  current = document
  for part in parts[:-1]:
    nested = current.get(part)
    if not isinstance(nested, dict):
      nested = {}
      current[part] = nested
    current = nested
  previous = current.get(parts[-1], _MISSING)
  current[parts[-1]] = value
  return previous is _MISSING or previous != value


def add_to_set(items: list[Any], value: Any, *, key: Callable[[Any], Any] | None = None) -> bool:
  """Append a value unless an equal one (or one with the same key) is already present."""
  if key is None:
    if value in items:
      return False
  else:
    wanted = key(value)
    if any(key(item) == wanted for item in items):
      return False
  items.append(value)
  return True


def remove_where(items: list[Any], predicate: Callable[[Any], bool]) -> int:
  """Remove matching items in place and return how many were removed."""
  kept = [item for item in items if not predicate(item)]
  removed = len(items) - len(kept)
  items[:] = kept
  return removed
