"""create_translation_tables

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates users, locales, tags, translations and the translation_tag pivot.
A live (key, locale) pair is unique through a partial index on
``deleted_at IS NULL`` so soft-deleted rows can be re-created.
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "locales",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("code", sa.String(10), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
    )
    op.create_index("ix_locales_code", "locales", ["code"], unique=True)

    op.create_table(
        "tags",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("name", sa.String(100), nullable=False),
    )
    op.create_index("ix_tags_name", "tags", ["name"], unique=True)

    op.create_table(
        "translations",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("key", sa.String(255), nullable=False),
        sa.Column(
            "locale_id",
            sa.Integer,
            sa.ForeignKey("locales.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_translations_key", "translations", ["key"])
    op.create_index("ix_translations_locale_id", "translations", ["locale_id"])
    op.create_index("idx_translations_key_locale", "translations", ["key", "locale_id"])
    op.create_index(
        "uq_translations_key_locale_live",
        "translations",
        ["key", "locale_id"],
        unique=True,
        sqlite_where=sa.text("deleted_at IS NULL"),
        postgresql_where=sa.text("deleted_at IS NULL"),
    )

    op.create_table(
        "translation_tag",
        sa.Column(
            "translation_id",
            sa.Integer,
            sa.ForeignKey("translations.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "tag_id",
            sa.Integer,
            sa.ForeignKey("tags.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    op.create_index("ix_translation_tag_tag_id", "translation_tag", ["tag_id"])


def downgrade() -> None:
    op.drop_index("ix_translation_tag_tag_id", table_name="translation_tag")
    op.drop_table("translation_tag")
    op.drop_index("uq_translations_key_locale_live", table_name="translations")
    op.drop_index("idx_translations_key_locale", table_name="translations")
    op.drop_index("ix_translations_locale_id", table_name="translations")
    op.drop_index("ix_translations_key", table_name="translations")
    op.drop_table("translations")
    op.drop_index("ix_tags_name", table_name="tags")
    op.drop_table("tags")
    op.drop_index("ix_locales_code", table_name="locales")
    op.drop_table("locales")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
