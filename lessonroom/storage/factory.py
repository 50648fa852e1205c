from __future__ import annotations

import logging

from lessonroom.config import Settings
from lessonroom.storage.documents_repo import DocumentStore
from lessonroom.storage.memory_documents_repo import MemoryDocumentStore
from lessonroom.storage.postgres_documents_repo import PostgresDocumentStore

logger = logging.getLogger(__name__)


def build_document_store(settings: Settings) -> DocumentStore:
  """Return the document store selected by configuration."""
  if settings.store_backend == "memory":
    logger.warning("Using the in-memory document store; data will not survive a restart.")
    return MemoryDocumentStore()

  if not settings.pg_dsn:
    raise ValueError("LESSONROOM_PG_DSN must be set to enable Postgres persistence.")

  return PostgresDocumentStore()
