"""
SQLAlchemy models for Git Analytics.

Commit rows are created by the ingestion pipeline. The categorization and
weighting passes only ever mutate ``commits.category``, ``commits.weight``
and ``commits.ai_confidence``, plus rows in ``categories``.
"""

from typing import Any, Dict

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base

DEFAULT_WEIGHT = 100


class RepositoryModel(Base):
    """SQLAlchemy model for tracked git repositories."""

    __tablename__ = "repositories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True, index=True)
    url = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    commits = relationship(
        "CommitModel", back_populates="repository", cascade="all, delete-orphan"
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "description": self.description,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class CommitModel(Base):
    """SQLAlchemy model for commits (one row per commit)."""

    __tablename__ = "commits"

    id = Column(Integer, primary_key=True, autoincrement=True)
    repository_id = Column(
        Integer,
        ForeignKey("repositories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    hash = Column(String(40), nullable=False, index=True)
    subject = Column(Text, nullable=False)

    # Enrichment
    category = Column(String(100), nullable=True)
    weight = Column(Integer, nullable=False, default=DEFAULT_WEIGHT)
    ai_confidence = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    repository = relationship("RepositoryModel", back_populates="commits")

    __table_args__ = (
        UniqueConstraint("repository_id", "hash", name="unique_commit_per_repo"),
        CheckConstraint("weight >= 0 AND weight <= 100", name="check_weight_range"),
        Index("ix_commits_category", "category"),
        Index("ix_commits_category_weight", "category", "weight"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "repository_id": self.repository_id,
            "hash": self.hash,
            "subject": self.subject,
            "category": self.category,
            "weight": self.weight,
            "ai_confidence": self.ai_confidence,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class CategoryModel(Base):
    """SQLAlchemy model for business-domain categories.

    ``weight`` is set by an administrator and is the single source of truth
    for the category weight synchronizer. ``usage_count`` is informational.
    """

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    weight = Column(Integer, nullable=False, default=DEFAULT_WEIGHT)
    usage_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    __table_args__ = (
        CheckConstraint(
            "weight >= 0 AND weight <= 100", name="check_category_weight_range"
        ),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "weight": self.weight,
            "usage_count": self.usage_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
