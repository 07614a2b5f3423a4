"""
Content Repository backed by Flask-SQLAlchemy.

Configuration methods (``with_relations``, ``filter_live``, ``ordered_by_recent``,
``filter_region``, ``filter_category``, ``with_states``) return a new
repository and never touch the database. Reads run only in ``all``,
``paginate``, ``count``, ``find_by_slug`` and ``find_by_id``.

Every read states which lifecycle states it includes; the default is
``{ACTIVE}``.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.orm import selectinload

from errors import NotFound
from models import (
    db, Category, ContentItem, ContentRegion, LifecycleState
)
from publication import PublicationPolicy

logger = logging.getLogger(__name__)

RELATIONS = {
    'author': ContentItem.author,
    'categories': ContentItem.categories,
    'tags': ContentItem.tags,
    'regions': ContentItem.region_links,
    'performance_metrics': ContentItem.performance_metrics,
}

ACTIVE_ONLY = frozenset({LifecycleState.ACTIVE})


@dataclass
class Page:
    """One page of a filtered result set."""
    items: List[Any]
    page: int
    per_page: int
    total: int


@dataclass(frozen=True, eq=False)
class RepositoryQuery:
    relations: Tuple[str, ...] = ()
    clauses: Tuple[Any, ...] = ()
    states: FrozenSet[LifecycleState] = ACTIVE_ONLY
    recent_first: bool = False


def assign_regions(item: ContentItem, codes: Iterable[str]):
    """Replace the item's regions, keeping rows for codes that stay."""
    wanted = []
    for code in codes:
        if code not in wanted:
            wanted.append(code)
    for link in list(item.region_links):
        if link.code not in wanted:
            item.region_links.remove(link)
    existing = {link.code for link in item.region_links}
    for code in wanted:
        if code not in existing:
            item.region_links.append(ContentRegion(code=code))


class ContentRepository:

    def __init__(self, policy: Optional[PublicationPolicy] = None,
                 query: Optional[RepositoryQuery] = None):
        self.policy = policy or PublicationPolicy()
        self.criteria = query or RepositoryQuery()

    def _derive(self, **changes) -> 'ContentRepository':
        return ContentRepository(self.policy, replace(self.criteria, **changes))

    # --- configuration -------------------------------------------------

    def with_relations(self, names: Iterable[str]) -> 'ContentRepository':
        relations = []
        for name in names or ():
            if name not in RELATIONS:
                logger.warning(f"Ignoring unknown relation '{name}'")
                continue
            if name not in relations:
                relations.append(name)
        return self._derive(relations=tuple(relations))

    def with_states(self, *states: LifecycleState) -> 'ContentRepository':
        return self._derive(states=frozenset(states))

    def ordered_by_recent(self) -> 'ContentRepository':
        return self._derive(recent_first=True)

    def filter_live(self, now: Optional[datetime] = None) -> 'ContentRepository':
        return self._derive(clauses=self.criteria.clauses + (self.policy.live_clause(now),))

    def filter_region(self, region: Optional[str]) -> 'ContentRepository':
        clause = self.policy.region_clause(region)
        if clause is None:
            return self
        return self._derive(clauses=self.criteria.clauses + (clause,))

    def filter_category(self, category_slug: str) -> 'ContentRepository':
        clause = ContentItem.categories.any(Category.slug == category_slug)
        return self._derive(clauses=self.criteria.clauses + (clause,))

    # --- reads -----------------------------------------------------------

    def _query(self):
        query = db.session.query(ContentItem).filter(
            ContentItem.lifecycle.in_(list(self.criteria.states))
        )
        for clause in self.criteria.clauses:
            query = query.filter(clause)
        for name in self.criteria.relations:
            query = query.options(selectinload(RELATIONS[name]))
        return query

    def _ordered(self, query):
        if self.criteria.recent_first:
            return query.order_by(
                ContentItem.published_at.desc().nullslast(),
                ContentItem.created_at.desc(),
                ContentItem.id,
            )
        return query.order_by(ContentItem.created_at, ContentItem.id)

    def all(self) -> List[ContentItem]:
        return self._ordered(self._query()).all()

    def count(self) -> int:
        return self._query().order_by(None).count()

    def paginate(self, per_page: int = 15, page: int = 1) -> Page:
        page = max(page, 1)
        per_page = max(per_page, 1)
        total = self.count()
        items = self._ordered(self._query()).offset((page - 1) * per_page).limit(per_page).all()
        return Page(items=items, page=page, per_page=per_page, total=total)

    def take(self, limit: int) -> List[ContentItem]:
        return self._ordered(self._query()).limit(max(limit, 0)).all()

    def find_by_slug(self, slug: str) -> Optional[ContentItem]:
        return self._query().filter(ContentItem.slug == slug).first()

    def find_by_id(self, item_id: str) -> Optional[ContentItem]:
        return self._query().filter(ContentItem.id == item_id).first()

    def slug_exists(self, slug: str, exclude_id: Optional[str] = None) -> bool:
        """Slugs stay reserved across every lifecycle state."""
        query = db.session.query(ContentItem.id).filter(ContentItem.slug == slug)
        if exclude_id is not None:
            query = query.filter(ContentItem.id != exclude_id)
        return query.first() is not None

    # --- writes ----------------------------------------------------------

    def _get_or_404(self, item_id: str) -> ContentItem:
        item = self.find_by_id(item_id)
        if item is None:
            raise NotFound("Content item not found.", id=item_id)
        return item

    def create(self, data: Dict[str, Any], commit: bool = True) -> ContentItem:
        data = dict(data)
        regions = data.pop('regions', None)
        item = ContentItem(**data)
        if regions is not None:
            assign_regions(item, regions)
        db.session.add(item)
        if commit:
            db.session.commit()
        logger.info(f"Created content item {item.slug}")
        return item

    def update(self, item_id: str, data: Dict[str, Any], commit: bool = True) -> ContentItem:
        item = self._get_or_404(item_id)
        data = dict(data)
        regions = data.pop('regions', None)
        for key, value in data.items():
            setattr(item, key, value)
        if regions is not None:
            assign_regions(item, regions)
        if commit:
            db.session.commit()
        return item

    def delete(self, item_id: str) -> ContentItem:
        """Soft delete: the item leaves the visible set but can be restored."""
        item = self.with_states(LifecycleState.ACTIVE)._get_or_404(item_id)
        item.lifecycle = LifecycleState.SOFT_DELETED
        item.deleted_at = self.policy.now()
        db.session.commit()
        logger.info(f"Soft-deleted content item {item.slug}")
        return item

    def restore(self, item_id: str) -> ContentItem:
        item = self.with_states(LifecycleState.SOFT_DELETED)._get_or_404(item_id)
        item.lifecycle = LifecycleState.ACTIVE
        item.deleted_at = None
        db.session.commit()
        logger.info(f"Restored content item {item.slug}")
        return item

    def purge(self, item_id: str) -> ContentItem:
        item = self.with_states(LifecycleState.ACTIVE, LifecycleState.SOFT_DELETED)._get_or_404(item_id)
        item.lifecycle = LifecycleState.PURGED
        item.deleted_at = item.deleted_at or self.policy.now()
        db.session.commit()
        logger.info(f"Purged content item {item.slug}")
        return item

    def increment_view_count(self, item_id: str) -> int:
        """
        Add one view in a single UPDATE statement.

        The repository's own filters are part of the WHERE clause, so an item
        that stopped matching them (e.g. was unpublished) is not counted.
        Returns the new count; raises NotFound when no row matched.
        """
        statement = (
            update(ContentItem)
            .where(ContentItem.id == item_id)
            .where(ContentItem.lifecycle.in_(list(self.criteria.states)))
        )
        for clause in self.criteria.clauses:
            statement = statement.where(clause)
        statement = statement.values(
            view_count=ContentItem.view_count + 1,
            # views leave updated_at alone
            updated_at=ContentItem.updated_at,
        ).execution_options(synchronize_session=False)
        result = db.session.execute(statement)
        if result.rowcount == 0:
            db.session.rollback()
            raise NotFound()
        db.session.commit()
        return db.session.query(ContentItem.view_count).filter(ContentItem.id == item_id).scalar()
