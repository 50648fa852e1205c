"""Create the documents table.

Revision ID: 5f0c1d2e3a4b
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "5f0c1d2e3a4b"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
  """Upgrade schema."""
  op.create_table(
    "documents",
    sa.Column("pk", sa.BigInteger(), sa.Identity(), nullable=False),
    sa.Column("collection", sa.String(length=64), nullable=False),
    sa.Column("id_kind", sa.String(length=8), nullable=False),
    sa.Column("id_value", sa.String(length=128), nullable=False),
    sa.Column("body", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.PrimaryKeyConstraint("pk"),
    sa.UniqueConstraint("collection", "id_kind", "id_value", name="ux_documents_collection_id"),
  )
  op.create_index(op.f("ix_documents_collection"), "documents", ["collection"], unique=False)
  op.create_index("ix_documents_body", "documents", ["body"], unique=False, postgresql_using="gin")


def downgrade() -> None:
  """Downgrade schema."""
  op.drop_index("ix_documents_body", table_name="documents")
  op.drop_index(op.f("ix_documents_collection"), table_name="documents")
  op.drop_table("documents")
