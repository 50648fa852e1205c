"""Resolve lightweight lesson references into full lesson documents."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from lessonroom.schema.lessons import LESSON_FIELDS, NESTED_KEY, lesson_view, reference_id
from lessonroom.storage.documents_repo import LESSONS, Document, DocumentStore
from lessonroom.utils.ids import ID_KINDS, DocumentId, identifier_key, normalize_identifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LessonResolution:
  """Resolved lessons plus the counts callers use to detect partial resolution."""

  lessons: list[Any]
  requested_count: int
  found_count: int


def is_resolved_lesson(entry: Any) -> bool:
  """Tell a resolved lesson apart from a reference that passed through unresolved."""
  return isinstance(entry, dict) and isinstance(entry.get(NESTED_KEY), dict) and all(field in entry for field in LESSON_FIELDS)


def pick_preferred(candidates: Sequence[DocumentId], documents: Mapping[DocumentId, Document]) -> Document | None:
  """Return the document stored under the earliest candidate, so the literal representation wins."""
  for candidate in candidates:
    document = documents.get(candidate)
    if document is not None:
      return document
  return None


async def _fetch_candidates(store: DocumentStore, candidate_lists: list[list[DocumentId]]) -> dict[DocumentId, Document]:
  """Query the store once per identifier kind and index the results by stored identifier."""
  buckets: dict[str, set[DocumentId]] = {kind: set() for kind in ID_KINDS}
  for candidates in candidate_lists:
    for candidate in candidates:
      buckets[candidate.kind].add(candidate)

  documents: dict[DocumentId, Document] = {}
  for kind in ID_KINDS:
    if buckets[kind]:
      for document in await store.find_by_ids(LESSONS, buckets[kind]):
        documents[document["_id"]] = document
  return documents


async def resolve_lesson_references(store: DocumentStore, references: Iterable[Any]) -> LessonResolution:
  """Substitute each reference with its full lesson, keeping input order.

  A reference without an identifier, or whose identifier matches nothing, passes through
  unchanged. When one lesson is stored under several representations, the one matching the
  reference most literally is used, as for single-lesson reads. A lesson already emitted for an
  earlier reference is not emitted again.
  """
  references = list(references)
  candidate_lists = [normalize_identifier(reference_id(reference)) for reference in references]
  documents = await _fetch_candidates(store, candidate_lists)

  lessons: list[Any] = []
  emitted: set[str] = set()
  for reference, candidates in zip(references, candidate_lists, strict=True):
    document = pick_preferred(candidates, documents)
    if document is None:
      lessons.append(reference)
      continue

    key = identifier_key(document["_id"])
    if key in emitted:
      logger.debug("Dropping duplicate lesson reference key=%s", key)
      continue

    emitted.add(key)
    view = lesson_view(document)
    lessons.append({**reference, **view} if isinstance(reference, dict) else view)

  if len(emitted) < len(references):
    logger.info("Resolved %d distinct lesson(s) from %d reference(s)", len(emitted), len(references))
  return LessonResolution(lessons=lessons, requested_count=len(references), found_count=len(emitted))
