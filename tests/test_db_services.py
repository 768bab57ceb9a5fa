"""
Tests for the analytics models and services.

Verifies:
- Model structure, constraints and to_dict()
- CommitService counting and bulk weight updates
- CategoryService upserts and administrator weight changes
"""

import pytest
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from git_analytics.db.models import CategoryModel, CommitModel
from git_analytics.db.services import (
    CategoryService,
    CategoryWeightError,
    CommitService,
    RepositoryService,
    UnsupportedDialectError,
)


class TestModels:
    """Tests for model structure."""

    def test_commit_has_required_columns(self):
        columns = {c.name for c in CommitModel.__table__.columns}
        required = {"id", "repository_id", "hash", "subject", "category", "weight"}
        assert required.issubset(columns)

    def test_commit_defaults(self, make_repo, make_commit):
        commit = make_commit(make_repo(), "Initial commit")

        data = commit.to_dict()

        assert data["weight"] == 100
        assert data["category"] is None
        assert data["ai_confidence"] is None
        assert data["subject"] == "Initial commit"

    def test_hash_unique_per_repository(self, db_session, make_repo, make_commit):
        repo = make_repo()
        make_commit(repo, "First", commit_hash="a" * 40)

        with pytest.raises(IntegrityError):
            make_commit(repo, "Duplicate", commit_hash="a" * 40)
        db_session.rollback()

        make_commit(make_repo("acme/fork"), "Same hash, other repo", commit_hash="a" * 40)

    def test_weight_range_enforced(self, db_session, make_repo):
        repo = make_repo()
        db_session.add(
            CommitModel(repository_id=repo.id, hash="b" * 40, subject="x", weight=101)
        )

        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_category_to_dict(self, make_category):
        data = make_category("BILLING", weight=60).to_dict()

        assert data["name"] == "BILLING"
        assert data["weight"] == 60
        assert data["usage_count"] == 0

    def test_repository_to_dict(self, make_repo):
        data = make_repo("acme/app").to_dict()

        assert data["name"] == "acme/app"
        assert data["url"] == "https://example.com/acme/app"


class TestRepositoryService:
    """Tests for RepositoryService."""

    def test_get_by_name(self, db_session, make_repo):
        repo = make_repo("acme/app")
        service = RepositoryService(db_session)

        assert service.get_by_name("acme/app").id == repo.id
        assert service.get_by_name("missing") is None

    def test_list_repositories_by_name(self, db_session, make_repo):
        make_repo("zeta")
        make_repo("alpha")

        names = [r.name for r in RepositoryService(db_session).list_repositories()]

        assert names == ["alpha", "zeta"]


class TestCommitService:
    """Tests for CommitService."""

    def test_list_commits_with_filter(self, db_session, make_repo, make_commit):
        app = make_repo("acme/app")
        other = make_repo("acme/other")
        first = make_commit(app, "One")
        make_commit(other, "Two")
        third = make_commit(app, "Three")

        commits = CommitService(db_session).list_commits("acme/app")

        assert [c.id for c in commits] == [first.id, third.id]
        assert len(CommitService(db_session).list_commits()) == 3

    def test_list_uncategorized(self, db_session, make_repo, make_commit):
        repo = make_repo()
        make_commit(repo, "One", category="CS")
        second = make_commit(repo, "Two")
        make_commit(repo, "Three")
        service = CommitService(db_session)

        assert [c.id for c in service.list_uncategorized(limit=1)] == [second.id]
        assert len(service.list_uncategorized()) == 2
        assert len(service.list_uncategorized(force=True)) == 3

    def test_count_by_category(self, db_session, make_repo, make_commit):
        repo = make_repo()
        make_commit(repo, "a", category="BILLING", weight=100)
        make_commit(repo, "b", category="BILLING", weight=60)
        make_commit(repo, "c", category="BILLING", weight=0)
        make_commit(repo, "d", category="CS")

        counts = CommitService(db_session).count_by_category("BILLING", target_weight=60)

        assert counts == {"total": 3, "non_reverted": 2, "reverted": 1, "out_of_sync": 1}

    def test_count_unknown_category(self, db_session):
        counts = CommitService(db_session).count_by_category("NOPE")

        assert counts == {"total": 0, "non_reverted": 0, "reverted": 0, "out_of_sync": 0}

    def test_bulk_set_category_weight(self, db_session, make_repo, make_commit, reload):
        app = make_repo("acme/app")
        other = make_repo("acme/other")
        live = make_commit(app, "a", category="BILLING")
        reverted = make_commit(app, "b", category="BILLING", weight=0)
        foreign = make_commit(other, "c", category="BILLING")
        service = CommitService(db_session)

        updated = service.bulk_set_category_weight("BILLING", 60, "acme/app")
        db_session.commit()

        assert updated == 1
        assert reload(CommitModel, live.id).weight == 60
        assert reload(CommitModel, reverted.id).weight == 0
        assert reload(CommitModel, foreign.id).weight == 100
        assert service.bulk_set_category_weight("BILLING", 60, "acme/app") == 0


class TestCategoryService:
    """Tests for CategoryService."""

    def test_record_usage_inserts_then_increments(self, db_session):
        service = CategoryService(db_session)

        service.record_usage("BILLING", "from tests")
        service.record_usage("BILLING", "ignored on conflict")
        db_session.commit()

        category = service.get_by_name("BILLING")
        assert category.usage_count == 2
        assert category.weight == 100
        assert category.description == "from tests"

    def test_create_if_missing(self, db_session, make_category):
        make_category("BILLING", weight=60)
        service = CategoryService(db_session)

        assert service.create_if_missing("BILLING") is False
        assert service.create_if_missing("API", "new") is True
        db_session.commit()

        assert service.get_by_name("BILLING").weight == 60
        assert service.get_by_name("API").usage_count == 0

    def test_names_by_usage(self, db_session, make_category):
        make_category("API", usage_count=1)
        make_category("BILLING", usage_count=5)
        make_category("AUTH", usage_count=1)

        assert CategoryService(db_session).names_by_usage() == ["BILLING", "API", "AUTH"]

    def test_set_weight(self, db_session, make_category):
        make_category("BILLING")

        category = CategoryService(db_session).set_weight("BILLING", 60)

        assert category.weight == 60

    def test_set_weight_unknown_category(self, db_session):
        assert CategoryService(db_session).set_weight("NOPE", 60) is None

    @pytest.mark.parametrize("weight", [-1, 101])
    def test_set_weight_out_of_range(self, db_session, make_category, weight):
        make_category("BILLING")

        with pytest.raises(CategoryWeightError):
            CategoryService(db_session).set_weight("BILLING", weight)

    def test_upsert_on_unsupported_dialect(self, db_session, engine, monkeypatch):
        monkeypatch.setattr(engine.dialect, "name", "mssql")
        service = CategoryService(db_session)

        with pytest.raises(UnsupportedDialectError, match="mssql"):
            service.record_usage("BILLING")
        with pytest.raises(SQLAlchemyError):
            service.create_if_missing("BILLING")
