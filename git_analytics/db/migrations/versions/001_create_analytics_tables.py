"""create repositories, commits and categories tables

Revision ID: 001
Revises:
Create Date: 2025-11-16 00:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "repositories",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("url", sa.Text, nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("name", name="uq_repositories_name"),
    )
    op.create_index("ix_repositories_name", "repositories", ["name"])

    op.create_table(
        "commits",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column(
            "repository_id",
            sa.Integer,
            sa.ForeignKey("repositories.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("hash", sa.String(length=40), nullable=False),
        sa.Column("subject", sa.Text, nullable=False),
        sa.Column("category", sa.String(length=100), nullable=True),
        sa.Column("weight", sa.Integer, nullable=False, server_default="100"),
        sa.Column("ai_confidence", sa.Integer, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("repository_id", "hash", name="unique_commit_per_repo"),
        sa.CheckConstraint("weight >= 0 AND weight <= 100", name="check_weight_range"),
    )
    op.create_index("ix_commits_repository_id", "commits", ["repository_id"])
    op.create_index("ix_commits_hash", "commits", ["hash"])
    op.create_index("ix_commits_category", "commits", ["category"])
    op.create_index("ix_commits_category_weight", "commits", ["category", "weight"])

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("weight", sa.Integer, nullable=False, server_default="100"),
        sa.Column("usage_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("name", name="uq_categories_name"),
        sa.CheckConstraint(
            "weight >= 0 AND weight <= 100", name="check_category_weight_range"
        ),
    )
    op.create_index("ix_categories_name", "categories", ["name"])


def downgrade() -> None:
    op.drop_index("ix_categories_name", table_name="categories")
    op.drop_table("categories")
    op.drop_index("ix_commits_category_weight", table_name="commits")
    op.drop_index("ix_commits_category", table_name="commits")
    op.drop_index("ix_commits_hash", table_name="commits")
    op.drop_index("ix_commits_repository_id", table_name="commits")
    op.drop_table("commits")
    op.drop_index("ix_repositories_name", table_name="repositories")
    op.drop_table("repositories")
