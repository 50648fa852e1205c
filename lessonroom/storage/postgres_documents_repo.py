"""Postgres-backed document store using SQLAlchemy and JSONB bodies."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from typing import Any

from sqlalchemy import and_, delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lessonroom.core.database import get_session_factory
from lessonroom.schema.documents import StoredDocument
from lessonroom.storage.codec import decode_value, encode_value
from lessonroom.storage.documents_repo import Document, DocumentStore, DuplicateDocumentError, Filter, Mutator, UpdateResult, match_document
from lessonroom.utils.ids import DocumentId, HexId, IntegerId, OpaqueId, new_hex_id, parse_stored_id

logger = logging.getLogger(__name__)

_SCALAR_TYPES = (str, int, float, bool)


def _id_clause(doc_id: DocumentId) -> Any:
  return and_(StoredDocument.id_kind == doc_id.kind, StoredDocument.id_value == str(doc_id))


def _candidate_query(collection: str, filter: Filter | None) -> Any:
  """Build a query that narrows rows in SQL before the exact match runs in Python."""
  stmt = select(StoredDocument).where(StoredDocument.collection == collection)
  if filter:
    # JSONB containment only mirrors equality for scalar top-level fields.
    containment = {key: value for key, value in filter.items() if "." not in key and key != "_id" and isinstance(value, _SCALAR_TYPES)}
    if containment:
      stmt = stmt.where(StoredDocument.body.contains(containment))
    id_condition = filter.get("_id")
    if isinstance(id_condition, IntegerId | HexId | OpaqueId):
      stmt = stmt.where(_id_clause(id_condition))
  return stmt.order_by(StoredDocument.pk)


def _to_document(row: StoredDocument) -> Document:
  return {"_id": parse_stored_id(row.id_kind, row.id_value), **decode_value(row.body)}


def _to_body(document: Document) -> dict[str, Any]:
  body = dict(document)
  body.pop("_id", None)
  return encode_value(body)


class PostgresDocumentStore(DocumentStore):
  """Persist documents to a single Postgres table keyed by collection and identifier."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def _matching_rows(self, session: AsyncSession, collection: str, filter: Filter | None) -> list[StoredDocument]:
    result = await session.execute(_candidate_query(collection, filter))
    return [row for row in result.scalars().all() if match_document(_to_document(row), filter)]

  async def get(self, collection: str, doc_id: DocumentId) -> Document | None:
    async with self._session_factory() as session:
      result = await session.execute(select(StoredDocument).where(StoredDocument.collection == collection, _id_clause(doc_id)))
      row = result.scalar_one_or_none()
      return _to_document(row) if row is not None else None

  async def find_one(self, collection: str, filter: Filter) -> Document | None:
    async with self._session_factory() as session:
      rows = await self._matching_rows(session, collection, filter)
      return _to_document(rows[0]) if rows else None

  async def find(self, collection: str, filter: Filter | None = None) -> list[Document]:
    async with self._session_factory() as session:
      rows = await self._matching_rows(session, collection, filter)
      return [_to_document(row) for row in rows]

  async def find_by_ids(self, collection: str, ids: Iterable[DocumentId]) -> list[Document]:
    values_by_kind: dict[str, set[str]] = defaultdict(set)
    for doc_id in ids:
      values_by_kind[doc_id.kind].add(str(doc_id))
    if not values_by_kind:
      return []

    clauses = [and_(StoredDocument.id_kind == kind, StoredDocument.id_value.in_(sorted(values))) for kind, values in values_by_kind.items()]
    async with self._session_factory() as session:
      result = await session.execute(select(StoredDocument).where(StoredDocument.collection == collection, or_(*clauses)).order_by(StoredDocument.pk))
      return [_to_document(row) for row in result.scalars().all()]

  async def insert_one(self, collection: str, document: Document) -> DocumentId:
    doc_id = document.get("_id") or new_hex_id()
    async with self._session_factory() as session:
      session.add(StoredDocument(collection=collection, id_kind=doc_id.kind, id_value=str(doc_id), body=_to_body(document)))
      try:
        await session.commit()
      except IntegrityError as exc:
        await session.rollback()
        raise DuplicateDocumentError(f"Document {doc_id} already exists in {collection}.") from exc
    return doc_id

  async def _apply_locked(self, session: AsyncSession, row_pk: int, filter: Filter, mutator: Mutator) -> tuple[bool, bool]:
    """Re-read one row under a row lock, re-check the filter and apply the mutator."""
    result = await session.execute(select(StoredDocument).where(StoredDocument.pk == row_pk).with_for_update().execution_options(populate_existing=True))
    row = result.scalar_one_or_none()
    if row is None:
      return False, False
    document = _to_document(row)
    # Another writer may have changed the row since the unlocked read.
    if not match_document(document, filter):
      return False, False
    if not mutator(document):
      return True, False
    row.body = _to_body(document)
    return True, True

  async def update_one(self, collection: str, filter: Filter, mutator: Mutator) -> UpdateResult:
    async with self._session_factory() as session:
      candidates = [row.pk for row in await self._matching_rows(session, collection, filter)]
      await session.commit()
      for row_pk in candidates:
        async with session.begin():
          matched, modified = await self._apply_locked(session, row_pk, filter, mutator)
        if matched:
          return UpdateResult(matched_count=1, modified_count=int(modified))
      return UpdateResult(matched_count=0, modified_count=0)

  async def update_many(self, collection: str, filter: Filter, mutator: Mutator) -> UpdateResult:
    matched_count = 0
    modified_count = 0
    async with self._session_factory() as session:
      candidates = [row.pk for row in await self._matching_rows(session, collection, filter)]
      await session.commit()
      for row_pk in candidates:
        # One short transaction per document keeps the per-document atomicity contract.
        async with session.begin():
          matched, modified = await self._apply_locked(session, row_pk, filter, mutator)
        matched_count += int(matched)
        modified_count += int(modified)
    return UpdateResult(matched_count=matched_count, modified_count=modified_count)

  async def delete_many(self, collection: str, filter: Filter) -> int:
    async with self._session_factory() as session:
      pks = [row.pk for row in await self._matching_rows(session, collection, filter)]
      if pks:
        await session.execute(delete(StoredDocument).where(StoredDocument.pk.in_(pks)))
      await session.commit()
    logger.debug("Deleted %d document(s) from %s", len(pks), collection)
    return len(pks)
