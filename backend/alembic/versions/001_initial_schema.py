"""Initial schema: users, stores, reviews

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ll_to_earth() for the location index
    op.execute("CREATE EXTENSION IF NOT EXISTS cube")
    op.execute("CREATE EXTENSION IF NOT EXISTS earthdistance")

    # Users
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("name", sa.String(100)),
    )

    # Stores
    op.create_table(
        "stores",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("name", sa.String(200)),
        sa.Column("slug", sa.String(220)),
        sa.Column("description", sa.Text()),
        sa.Column("tags", postgresql.JSONB(), server_default=sa.text("'[]'::jsonb")),
        sa.Column("created", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("location_type", sa.String(20), server_default="Point"),
        sa.Column("longitude", sa.Float()),
        sa.Column("latitude", sa.Float()),
        sa.Column("address", sa.Text()),
        sa.Column("photo", sa.Text()),
        sa.Column("author_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id")),
    )
    op.create_index("ix_stores_slug", "stores", ["slug"], unique=True)
    op.execute(
        "CREATE INDEX idx_stores_search ON stores USING gin "
        "(to_tsvector('english', coalesce(name, '') || ' ' || coalesce(description, '')))"
    )
    op.execute(
        "CREATE INDEX idx_stores_location ON stores USING gist "
        "(ll_to_earth(latitude, longitude))"
    )

    # Reviews
    op.create_table(
        "reviews",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("created", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("author_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id")),
        sa.Column("store_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("stores.id"), nullable=False),
        sa.Column("text", sa.Text()),
        sa.Column("rating", sa.Integer()),
    )
    op.create_index("ix_reviews_store_id", "reviews", ["store_id"])


def downgrade() -> None:
    op.drop_index("ix_reviews_store_id", table_name="reviews")
    op.drop_table("reviews")
    op.drop_index("idx_stores_location", table_name="stores")
    op.drop_index("idx_stores_search", table_name="stores")
    op.drop_index("ix_stores_slug", table_name="stores")
    op.drop_table("stores")
    op.drop_table("users")
