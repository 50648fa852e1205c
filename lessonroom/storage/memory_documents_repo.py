"""In-process document store used for tests and local development."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from lessonroom.storage.codec import decode_value, encode_value
from lessonroom.storage.documents_repo import Document, DocumentStore, DuplicateDocumentError, Filter, Mutator, UpdateResult, match_document
from lessonroom.utils.ids import DocumentId, new_hex_id

logger = logging.getLogger(__name__)


class MemoryDocumentStore(DocumentStore):
  """Keep encoded document bodies in dictionaries keyed by collection and identifier.

  Bodies are stored in their JSON-encoded form so callers never share mutable state with the store.
  No method awaits while it holds a document, so each update is atomic on the event loop.
  """

  def __init__(self) -> None:
    self._collections: dict[str, dict[DocumentId, Any]] = {}

  def _bucket(self, collection: str) -> dict[DocumentId, Any]:
    return self._collections.setdefault(collection, {})

  @staticmethod
  def _materialize(doc_id: DocumentId, body: Any) -> Document:
    return {"_id": doc_id, **decode_value(body)}

  def _iter_matching(self, collection: str, filter: Filter | None) -> list[Document]:
    documents = (self._materialize(doc_id, body) for doc_id, body in self._bucket(collection).items())
    return [document for document in documents if match_document(document, filter)]

  async def get(self, collection: str, doc_id: DocumentId) -> Document | None:
    body = self._bucket(collection).get(doc_id)
    if body is None:
      return None
    return self._materialize(doc_id, body)

  async def find_one(self, collection: str, filter: Filter) -> Document | None:
    matches = self._iter_matching(collection, filter)
    return matches[0] if matches else None

  async def find(self, collection: str, filter: Filter | None = None) -> list[Document]:
    return self._iter_matching(collection, filter)

  async def find_by_ids(self, collection: str, ids: Iterable[DocumentId]) -> list[Document]:
    wanted = set(ids)
    bucket = self._bucket(collection)
    return [self._materialize(doc_id, body) for doc_id, body in bucket.items() if doc_id in wanted]

  async def insert_one(self, collection: str, document: Document) -> DocumentId:
    body = dict(document)
    doc_id = body.pop("_id", None) or new_hex_id()
    bucket = self._bucket(collection)
    if doc_id in bucket:
      raise DuplicateDocumentError(f"Document {doc_id} already exists in {collection}.")
    bucket[doc_id] = encode_value(body)
    return doc_id

  def _apply(self, collection: str, document: Document, mutator: Mutator) -> bool:
    doc_id = document["_id"]
    if not mutator(document):
      return False
    body = dict(document)
    body.pop("_id", None)
    self._bucket(collection)[doc_id] = encode_value(body)
    return True

  async def update_one(self, collection: str, filter: Filter, mutator: Mutator) -> UpdateResult:
    matches = self._iter_matching(collection, filter)
    if not matches:
      return UpdateResult(matched_count=0, modified_count=0)
    modified = self._apply(collection, matches[0], mutator)
    return UpdateResult(matched_count=1, modified_count=int(modified))

  async def update_many(self, collection: str, filter: Filter, mutator: Mutator) -> UpdateResult:
    matches = self._iter_matching(collection, filter)
    modified = sum(1 for document in matches if self._apply(collection, document, mutator))
    return UpdateResult(matched_count=len(matches), modified_count=modified)

  async def delete_many(self, collection: str, filter: Filter) -> int:
    matches = self._iter_matching(collection, filter)
    bucket = self._bucket(collection)
    for document in matches:
      bucket.pop(document["_id"], None)
    logger.debug("Deleted %d document(s) from %s", len(matches), collection)
    return len(matches)
