"""Test configuration and fixtures."""

import hashlib
import itertools
from typing import Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from git_analytics.db.base import Base, enable_sqlite_savepoints
from git_analytics.db.models import CategoryModel, CommitModel, RepositoryModel

_hashes = itertools.count(1)


@pytest.fixture
def engine():
    """Create a fresh in-memory database for each test.

    StaticPool keeps a single connection so every session (including the
    ones the CLI opens) sees the same database.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_repo(db_session):
    """Create a repository row."""

    def _make(name: str = "acme/app") -> RepositoryModel:
        repo = RepositoryModel(name=name, url=f"https://example.com/{name}")
        db_session.add(repo)
        db_session.commit()
        return repo

    return _make


@pytest.fixture
def make_commit(db_session):
    """Create a commit row with a unique hash."""

    def _make(
        repo: RepositoryModel,
        subject: str,
        category: Optional[str] = None,
        weight: int = 100,
        commit_hash: Optional[str] = None,
    ) -> CommitModel:
        commit = CommitModel(
            repository_id=repo.id,
            hash=commit_hash or hashlib.sha1(str(next(_hashes)).encode()).hexdigest(),
            subject=subject,
            category=category,
            weight=weight,
        )
        db_session.add(commit)
        db_session.commit()
        return commit

    return _make


@pytest.fixture
def make_category(db_session):
    """Create a category row."""

    def _make(name: str, weight: int = 100, usage_count: int = 0) -> CategoryModel:
        category = CategoryModel(name=name, weight=weight, usage_count=usage_count)
        db_session.add(category)
        db_session.commit()
        return category

    return _make


@pytest.fixture
def reload(db_session):
    """Fetch a row again, bypassing the identity map's cached state."""

    def _reload(model, row_id):
        db_session.expire_all()
        return db_session.get(model, row_id)

    return _reload
