"""
Tests for category-weight synchronization.

Verifies:
- Category weights propagate to non-reverted commits
- Commits at weight 0 are never raised again
- Idempotence, repository filtering and the per-category breakdown
- An interrupted pass writes nothing
"""

import pytest
from sqlalchemy.exc import SQLAlchemyError

from git_analytics.db.models import CommitModel
from git_analytics.weights.synchronizer import CategoryWeightSynchronizer


class TestPropagation:
    """Category weight overwrites commit weight."""

    def test_weight_propagates(
        self, db_session, make_repo, make_commit, make_category, reload
    ):
        make_category("BILLING", weight=60)
        commit = make_commit(make_repo(), "BILLING | Charge", category="BILLING")

        summary = CategoryWeightSynchronizer(db_session).run()

        assert reload(CommitModel, commit.id).weight == 60
        assert summary.mutated == 1
        assert summary.categories_processed == 1
        stat = summary.breakdown[0]
        assert (stat.name, stat.weight, stat.commits, stat.updated) == ("BILLING", 60, 1, 1)

    def test_reverted_commit_stays_zero(
        self, db_session, make_repo, make_commit, make_category, reload
    ):
        make_category("BILLING", weight=60)
        repo = make_repo()
        reverted = make_commit(repo, "BILLING | Charge", category="BILLING", weight=0)
        live = make_commit(repo, "BILLING | Refund", category="BILLING")

        summary = CategoryWeightSynchronizer(db_session).run()

        assert reload(CommitModel, reverted.id).weight == 0
        assert reload(CommitModel, live.id).weight == 60
        assert summary.skipped_reverted == 1
        assert summary.breakdown[0].reverted_skipped == 1

    def test_category_with_only_reverted_commits_has_no_stat(
        self, db_session, make_repo, make_commit, make_category, reload
    ):
        make_category("BILLING", weight=60)
        reverted = make_commit(make_repo(), "BILLING | Charge", category="BILLING", weight=0)

        summary = CategoryWeightSynchronizer(db_session).run()

        assert reload(CommitModel, reverted.id).weight == 0
        assert summary.breakdown == []
        assert summary.mutated == 0

    def test_zero_weight_category(
        self, db_session, make_repo, make_commit, make_category, reload
    ):
        make_category("CHORE", weight=0)
        commit = make_commit(make_repo(), "CHORE bump deps", category="CHORE")

        CategoryWeightSynchronizer(db_session).run()

        assert reload(CommitModel, commit.id).weight == 0

    def test_uncategorized_commits_untouched(
        self, db_session, make_repo, make_commit, make_category, reload
    ):
        make_category("BILLING", weight=60)
        commit = make_commit(make_repo(), "Fix typo")

        CategoryWeightSynchronizer(db_session).run()

        assert reload(CommitModel, commit.id).weight == 100

    def test_breakdown_sorted_by_commit_count(
        self, db_session, make_repo, make_commit, make_category
    ):
        make_category("API", weight=80)
        make_category("BILLING", weight=60)
        make_category("DOCS", weight=20)
        repo = make_repo()
        make_commit(repo, "API one", category="API")
        for i in range(3):
            make_commit(repo, f"BILLING {i}", category="BILLING")
        for i in range(2):
            make_commit(repo, f"DOCS {i}", category="DOCS")

        summary = CategoryWeightSynchronizer(db_session).run()

        assert [stat.name for stat in summary.breakdown] == ["BILLING", "DOCS", "API"]
        assert summary.mutated == 6


class TestIdempotence:
    """A second run makes no writes."""

    def test_dry_run_after_live_run_plans_nothing(
        self, db_session, make_repo, make_commit, make_category
    ):
        make_category("BILLING", weight=60)
        repo = make_repo()
        make_commit(repo, "BILLING | Charge", category="BILLING")
        make_commit(repo, "BILLING | Refund", category="BILLING")

        live = CategoryWeightSynchronizer(db_session).run()
        dry = CategoryWeightSynchronizer(db_session).run(dry_run=True)

        assert live.mutated == 2
        assert dry.mutated == 0
        assert dry.planned_writes == []
        assert dry.skipped == 2

    def test_dry_run_writes_nothing(
        self, db_session, make_repo, make_commit, make_category, reload
    ):
        make_category("BILLING", weight=60)
        commit = make_commit(make_repo(), "BILLING | Charge", category="BILLING")

        summary = CategoryWeightSynchronizer(db_session).run(dry_run=True)

        assert summary.mutated == 1
        assert summary.planned_writes[0].describe() == (
            "category=BILLING: weight None -> 60 (1 commits)"
        )
        assert reload(CommitModel, commit.id).weight == 100


class TestScope:
    """Repository filter and empty tables."""

    def test_repo_filter(self, db_session, make_repo, make_commit, make_category, reload):
        make_category("BILLING", weight=60)
        inside = make_commit(make_repo("acme/app"), "BILLING | Charge", category="BILLING")
        outside = make_commit(make_repo("acme/other"), "BILLING | Charge", category="BILLING")

        summary = CategoryWeightSynchronizer(db_session).run(repo_filter="acme/app")

        assert summary.total == 1
        assert reload(CommitModel, inside.id).weight == 60
        assert reload(CommitModel, outside.id).weight == 100

    def test_no_categories(self, db_session, make_repo, make_commit):
        make_commit(make_repo(), "BILLING | Charge", category="BILLING")

        summary = CategoryWeightSynchronizer(db_session).run()

        assert summary.total == 0
        assert summary.warnings == [
            "No categories found in database. Run categorization first."
        ]

    def test_failed_category_does_not_stop_others(
        self, db_session, make_repo, make_commit, make_category, reload, monkeypatch
    ):
        make_category("BILLING", weight=60)
        make_category("CS", weight=50)
        repo = make_repo()
        billing = make_commit(repo, "BILLING | Charge", category="BILLING")
        cs = make_commit(repo, "CS | Widget", category="CS")

        synchronizer = CategoryWeightSynchronizer(db_session)
        bulk_update = synchronizer.commit_service.bulk_set_category_weight

        def failing_bulk_update(category, weight, repo_filter=None):
            if category == "BILLING":
                raise SQLAlchemyError("deadlock detected")
            return bulk_update(category, weight, repo_filter)

        monkeypatch.setattr(
            synchronizer.commit_service, "bulk_set_category_weight", failing_bulk_update
        )

        summary = synchronizer.run()

        assert summary.failed == 1
        assert summary.mutated == 1
        assert reload(CommitModel, billing.id).weight == 100
        assert reload(CommitModel, cs.id).weight == 50


class TestAtomicity:
    """An interrupted pass leaves no partial writes behind."""

    def test_error_after_first_category_rolls_back_everything(
        self, db_session, make_repo, make_commit, make_category, reload, monkeypatch
    ):
        make_category("API", weight=60)
        make_category("BILLING", weight=50)
        repo = make_repo()
        api = make_commit(repo, "API | Paginate", category="API")
        billing = make_commit(repo, "BILLING | Charge", category="BILLING")

        synchronizer = CategoryWeightSynchronizer(db_session)
        count_by_category = synchronizer.commit_service.count_by_category

        def interrupted_count(category, repo_filter=None, target_weight=None):
            if category == "BILLING":
                raise RuntimeError("interrupted")
            return count_by_category(category, repo_filter, target_weight=target_weight)

        monkeypatch.setattr(
            synchronizer.commit_service, "count_by_category", interrupted_count
        )

        with pytest.raises(RuntimeError):
            synchronizer.run()

        assert reload(CommitModel, api.id).weight == 100
        assert reload(CommitModel, billing.id).weight == 100
