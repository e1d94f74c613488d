"""
Initial schema: authors, books, book genres and users.

Revision ID: 20250601_000000_initial_schema
Revises:
Create Date: 2025-06-01 00:00:00
"""

import sqlalchemy as sa

from alembic import op  # type: ignore[reportMissingImports]

# revision identifiers, used by Alembic.
revision = "20250601_000000_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # authors
    op.create_table(
        "authors",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("born", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="authors_pkey"),
        sa.UniqueConstraint("name", name="authors_name_key"),
    )

    # books
    op.create_table(
        "books",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("author_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("published", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["author_id"],
            ["authors.id"],
            ondelete="RESTRICT",
            name="books_author_id_fkey",
        ),
        sa.PrimaryKeyConstraint("id", name="books_pkey"),
    )
    op.create_index("idx_books_author", "books", ["author_id"])

    # book_genres
    op.create_table(
        "book_genres",
        sa.Column("book_id", sa.Uuid(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("genre", sa.String(length=255), nullable=False),
        sa.ForeignKeyConstraint(
            ["book_id"],
            ["books.id"],
            ondelete="CASCADE",
            name="book_genres_book_id_fkey",
        ),
        sa.PrimaryKeyConstraint("book_id", "position", name="book_genres_pkey"),
    )
    op.create_index("idx_book_genres_genre", "book_genres", ["genre"])

    # users
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("username", sa.String(length=255), nullable=False),
        sa.Column("favorite_genre", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="users_pkey"),
        sa.UniqueConstraint("username", name="users_username_key"),
    )


def downgrade() -> None:
    op.drop_table("users")
    op.drop_index("idx_book_genres_genre", table_name="book_genres")
    op.drop_table("book_genres")
    op.drop_index("idx_books_author", table_name="books")
    op.drop_table("books")
    op.drop_table("authors")
