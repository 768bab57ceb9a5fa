"""
Database services for Git Analytics.

Services never commit on behalf of a pass: the categorization and weighting
passes own their transaction boundaries. The one exception is
``CategoryService.set_weight``, which is a standalone administrator action.
"""

from typing import Dict, List, Optional

from sqlalchemy import and_, case, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .models import DEFAULT_WEIGHT, CategoryModel, CommitModel, RepositoryModel

MIN_WEIGHT = 0
MAX_WEIGHT = 100


class UnsupportedDialectError(SQLAlchemyError):
    """Raised when the store's dialect has no upsert construct."""


class CategoryWeightError(ValueError):
    """Raised when an administrator sets a category weight outside 0..100."""


def _repository_ids(repo_filter: str):
    """Sub-select of repository ids matching a repository name."""
    return select(RepositoryModel.id).where(RepositoryModel.name == repo_filter)


class RepositoryService:
    """Service for reading repositories."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_name(self, name: str) -> Optional[RepositoryModel]:
        """Get a repository by its unique name."""
        return self.db.scalars(
            select(RepositoryModel).where(RepositoryModel.name == name)
        ).first()

    def list_repositories(self) -> List[RepositoryModel]:
        """Get all repositories ordered by name."""
        return list(
            self.db.scalars(select(RepositoryModel).order_by(RepositoryModel.name))
        )


class CommitService:
    """Service for reading and enriching commits."""

    def __init__(self, db: Session):
        self.db = db

    def list_commits(self, repo_filter: Optional[str] = None) -> List[CommitModel]:
        """Get all commits in scope, optionally restricted to one repository."""
        query = select(CommitModel).join(RepositoryModel)
        if repo_filter:
            query = query.where(RepositoryModel.name == repo_filter)
        return list(self.db.scalars(query.order_by(CommitModel.id)))

    def list_uncategorized(
        self,
        repo_filter: Optional[str] = None,
        force: bool = False,
        limit: Optional[int] = None,
    ) -> List[CommitModel]:
        """Get commits without a category (all commits when ``force`` is set)."""
        query = select(CommitModel).join(RepositoryModel)
        if repo_filter:
            query = query.where(RepositoryModel.name == repo_filter)
        if not force:
            query = query.where(CommitModel.category.is_(None))
        query = query.order_by(CommitModel.id)
        if limit:
            query = query.limit(limit)
        return list(self.db.scalars(query))

    def set_category(
        self, commit_id: int, category: str, ai_confidence: Optional[int] = None
    ) -> int:
        """Set a commit's category. Returns the number of rows written."""
        values = {"category": category}
        if ai_confidence is not None:
            values["ai_confidence"] = ai_confidence
        result = self.db.execute(
            update(CommitModel).where(CommitModel.id == commit_id).values(**values)
        )
        return result.rowcount

    def set_weight(self, commit_id: int, weight: int) -> int:
        """Set a single commit's weight. Returns the number of rows written."""
        result = self.db.execute(
            update(CommitModel).where(CommitModel.id == commit_id).values(weight=weight)
        )
        return result.rowcount

    def count_by_category(
        self,
        category: str,
        repo_filter: Optional[str] = None,
        target_weight: Optional[int] = None,
    ) -> Dict[str, int]:
        """Count commits carrying a category, split by reverted state.

        ``out_of_sync`` counts non-reverted commits whose weight differs from
        ``target_weight`` (all non-reverted commits when it is None).
        """
        non_reverted = CommitModel.weight > 0
        out_of_sync = non_reverted
        if target_weight is not None:
            out_of_sync = and_(non_reverted, CommitModel.weight != target_weight)

        query = select(
            func.count(CommitModel.id),
            func.coalesce(func.sum(case((non_reverted, 1), else_=0)), 0),
            func.coalesce(func.sum(case((CommitModel.weight == 0, 1), else_=0)), 0),
            func.coalesce(func.sum(case((out_of_sync, 1), else_=0)), 0),
        ).where(CommitModel.category == category)
        if repo_filter:
            query = query.where(CommitModel.repository_id.in_(_repository_ids(repo_filter)))

        total, non_reverted_count, reverted, out_of_sync_count = self.db.execute(query).one()
        return {
            "total": int(total),
            "non_reverted": int(non_reverted_count),
            "reverted": int(reverted),
            "out_of_sync": int(out_of_sync_count),
        }

    def bulk_set_category_weight(
        self, category: str, weight: int, repo_filter: Optional[str] = None
    ) -> int:
        """Set ``weight`` on every non-reverted commit of a category.

        Commits already at weight 0 are never touched, and commits already at
        ``weight`` are left alone so that a repeated run writes nothing.
        """
        statement = (
            update(CommitModel)
            .where(CommitModel.category == category)
            .where(CommitModel.weight > 0)
            .where(CommitModel.weight != weight)
            .values(weight=weight)
            .execution_options(synchronize_session="fetch")
        )
        if repo_filter:
            statement = statement.where(
                CommitModel.repository_id.in_(_repository_ids(repo_filter))
            )
        return self.db.execute(statement).rowcount


class CategoryService:
    """Service for managing categories in the database."""

    def __init__(self, db: Session):
        self.db = db

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return pg_insert(CategoryModel.__table__)
        if dialect == "sqlite":
            return sqlite_insert(CategoryModel.__table__)
        raise UnsupportedDialectError(
            f"Upsert is not supported for dialect {dialect!r}"
        )

    def get_by_name(self, name: str) -> Optional[CategoryModel]:
        """Get a category by name."""
        return self.db.scalars(
            select(CategoryModel).where(CategoryModel.name == name)
        ).first()

    def list_categories(self) -> List[CategoryModel]:
        """Get all categories in name order."""
        return list(self.db.scalars(select(CategoryModel).order_by(CategoryModel.name)))

    def names_by_usage(self) -> List[str]:
        """Get category names, most used first."""
        return list(
            self.db.scalars(
                select(CategoryModel.name).order_by(
                    CategoryModel.usage_count.desc(), CategoryModel.name
                )
            )
        )

    def record_usage(self, name: str, description: Optional[str] = None) -> None:
        """Insert a category with usage_count=1, or increment its usage_count.

        Uses the store's atomic upsert so concurrent writers do not lose
        increments.
        """
        statement = self._insert().values(
            name=name,
            description=description,
            weight=DEFAULT_WEIGHT,
            usage_count=1,
        )
        statement = statement.on_conflict_do_update(
            index_elements=["name"],
            set_={"usage_count": CategoryModel.__table__.c.usage_count + 1},
        )
        self.db.execute(statement)

    def increment_usage(self, name: str) -> int:
        """Increment usage_count of an existing category."""
        result = self.db.execute(
            update(CategoryModel)
            .where(CategoryModel.name == name)
            .values(usage_count=CategoryModel.usage_count + 1)
        )
        return result.rowcount

    def create_if_missing(self, name: str, description: Optional[str] = None) -> bool:
        """Create a category unless it exists. Returns True if a row was inserted."""
        statement = (
            self._insert()
            .values(
                name=name,
                description=description,
                weight=DEFAULT_WEIGHT,
                usage_count=0,
            )
            .on_conflict_do_nothing(index_elements=["name"])
        )
        return self.db.execute(statement).rowcount == 1

    def set_weight(self, name: str, weight: int) -> Optional[CategoryModel]:
        """Set a category's administrator weight and commit.

        Returns None when the category does not exist.

        Raises:
            CategoryWeightError: if ``weight`` is outside 0..100.
        """
        if not MIN_WEIGHT <= weight <= MAX_WEIGHT:
            raise CategoryWeightError(
                f"Category weight must be between {MIN_WEIGHT} and {MAX_WEIGHT}, got {weight}"
            )

        category = self.get_by_name(name)
        if not category:
            return None

        category.weight = weight
        self.db.commit()
        self.db.refresh(category)
        return category
