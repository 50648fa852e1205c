"""SQLAlchemy model for stored documents."""

from __future__ import annotations

import datetime

from sqlalchemy import BigInteger, DateTime, Identity, Index, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from lessonroom.core.database import Base


class StoredDocument(Base):
  """Persist one JSON document of a named collection.

  The identifier is split into its kind (`int`, `hex`, `str`) and its string value so the same
  literal can exist under different representations without colliding.
  """

  __tablename__ = "documents"
  __table_args__ = (UniqueConstraint("collection", "id_kind", "id_value", name="ux_documents_collection_id"), Index("ix_documents_body", "body", postgresql_using="gin"))

  pk: Mapped[int] = mapped_column(BigInteger, Identity(), primary_key=True)
  collection: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
  id_kind: Mapped[str] = mapped_column(String(8), nullable=False)
  id_value: Mapped[str] = mapped_column(String(128), nullable=False)
  body: Mapped[dict] = mapped_column(JSONB, nullable=False)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
  updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
