"""create pages table for page tree storage

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from typing import Sequence, Union

from alembic import op


revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # One row per storefront page; tree holds the serialized root node
    op.execute("""
        CREATE TABLE pages (
            page_id TEXT PRIMARY KEY,
            tree JSONB NOT NULL,
            created_at TIMESTAMPTZ DEFAULT now(),
            updated_at TIMESTAMPTZ DEFAULT now()
        );
    """)

    op.execute("""
        CREATE INDEX idx_pages_updated ON pages(updated_at);
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS pages CASCADE;")
