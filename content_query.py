"""
Content query composition for the public read API.

``ContentQueryComposer`` is an immutable builder: each configuration call
returns a new composer, and nothing runs until an execution method
(``all``, ``results``, ``find_by_slug``, ``find_by_id``,
``fetch_for_display``, ``recent``, ``seo_metadata``) is called. A single
instance can therefore be shared by every request of the application.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Tuple

from errors import NotFound, ValidationError
from models import ContentItem
from publication import PublicationPolicy
from repository import ContentRepository, Page
from resources import content_item_resource
from search_seo import SchemaGenerator
from translation import TranslationResolver

logger = logging.getLogger(__name__)

DEFAULT_RELATIONS = ('author', 'categories', 'tags', 'regions')
MIN_SEARCH_LENGTH = 2


@dataclass(frozen=True)
class QueryOptions:
    relations: Tuple[str, ...] = ()
    published_only: bool = False
    region: Optional[str] = None
    category_slug: Optional[str] = None
    search_term: Optional[str] = None
    recent_first: bool = False
    page: int = 1
    per_page: int = 10
    limit: Optional[int] = None


class ContentQueryComposer:
    """
    Builds filtered, relation-hydrated, paginated result sets.

    Usage:
        composer.with_relations(['author']).filter_published() \\
                .filter_region('EG').paginate(1, 10).results('ar')
    """

    def __init__(self, repository: Optional[ContentRepository] = None,
                 resolver: Optional[TranslationResolver] = None,
                 policy: Optional[PublicationPolicy] = None,
                 schema_generator: Optional[SchemaGenerator] = None,
                 max_per_page: int = 100,
                 options: Optional[QueryOptions] = None):
        self.policy = policy or PublicationPolicy()
        self.repository = repository or ContentRepository(self.policy)
        self.resolver = resolver or TranslationResolver(self.policy.locale_config)
        self.schema_generator = schema_generator or SchemaGenerator(self.resolver)
        self.max_per_page = max_per_page
        self.options = options or QueryOptions()

    def _derive(self, **changes) -> 'ContentQueryComposer':
        return ContentQueryComposer(
            repository=self.repository,
            resolver=self.resolver,
            policy=self.policy,
            schema_generator=self.schema_generator,
            max_per_page=self.max_per_page,
            options=replace(self.options, **changes),
        )

    # --- configuration -------------------------------------------------------

    def with_relations(self, names) -> 'ContentQueryComposer':
        return self._derive(relations=tuple(names or ()))

    def filter_published(self) -> 'ContentQueryComposer':
        return self._derive(published_only=True)

    def filter_region(self, region: Optional[str]) -> 'ContentQueryComposer':
        return self._derive(region=region)

    def filter_category(self, category_slug: str) -> 'ContentQueryComposer':
        return self._derive(category_slug=category_slug)

    def ordered_by_recent(self) -> 'ContentQueryComposer':
        return self._derive(recent_first=True)

    def search(self, query: Optional[str]) -> 'ContentQueryComposer':
        query = query or ""
        if len(query) < MIN_SEARCH_LENGTH:
            logger.warning(f"Rejected search query shorter than {MIN_SEARCH_LENGTH} characters")
            raise ValidationError(
                f"Search query must be at least {MIN_SEARCH_LENGTH} characters.",
                {'q': [f"Search query must be at least {MIN_SEARCH_LENGTH} characters."]},
            )
        return self._derive(search_term=query.strip() or query)

    def paginate(self, page: int = 1, per_page: int = 10) -> 'ContentQueryComposer':
        errors = {}
        if page is None or page < 1:
            errors['page'] = ["Page must be a positive integer."]
        if per_page is None or per_page < 1:
            errors['per_page'] = ["Per page must be a positive integer."]
        if errors:
            raise ValidationError(errors=errors)
        return self._derive(page=page, per_page=min(per_page, self.max_per_page))

    def limit(self, count: int) -> 'ContentQueryComposer':
        if count is None or count < 1:
            raise ValidationError(errors={'limit': ["Limit must be a positive integer."]})
        return self._derive(limit=min(count, self.max_per_page))

    # --- execution -----------------------------------------------------------

    def _repository(self) -> ContentRepository:
        repository = self.repository.with_relations(self.options.relations)
        if self.options.published_only:
            repository = repository.filter_live(self.policy.now())
        repository = repository.filter_region(self.options.region)
        if self.options.category_slug:
            repository = repository.filter_category(self.options.category_slug)
        if self.options.recent_first:
            repository = repository.ordered_by_recent()
        return repository

    def _matches_search(self, item: ContentItem, locale: str) -> bool:
        needle = self.options.search_term.casefold()
        title = self.resolver.resolve(item.title, locale).casefold()
        content = self.resolver.resolve(item.content, locale).casefold()
        return needle in title or needle in content

    def _resolve(self, item: ContentItem, locale: str) -> Dict[str, Any]:
        return content_item_resource(item, self.resolver, locale, self.policy.is_live(item))

    def all(self, locale: Optional[str] = None) -> List[ContentItem]:
        """Run the query; honours ``limit`` and the search predicate."""
        repository = self._repository()
        if not self.options.search_term:
            if self.options.limit is not None:
                return repository.take(self.options.limit)
            return repository.all()

        locale = locale or self.resolver.locale_config.default_locale
        items = [item for item in repository.all() if self._matches_search(item, locale)]
        if self.options.limit is not None:
            items = items[:self.options.limit]
        return items

    def results(self, locale: str = 'en') -> Page:
        """
        Execute with pagination and resolve every item to ``locale``.

        ``total`` is the count under the applied filters; a page past the
        end is empty rather than an error.
        """
        page, per_page = self.options.page, self.options.per_page

        if self.options.search_term:
            # The substring predicate runs on resolved text, after the
            # database has applied the live/region/category filters.
            matched = self.all(locale)
            total = len(matched)
            start = (page - 1) * per_page
            items = matched[start:start + per_page]
        else:
            result = self._repository().paginate(per_page=per_page, page=page)
            total, items = result.total, result.items

        logger.info(f"Resolved {len(items)} content items for locale {locale} (total: {total})")
        return Page(
            items=[self._resolve(item, locale) for item in items],
            page=page,
            per_page=per_page,
            total=total,
        )

    def find_by_slug(self, slug: str) -> ContentItem:
        item = self._repository().find_by_slug(slug)
        if item is None:
            raise NotFound(slug=slug)
        return item

    def find_by_id(self, item_id: str) -> ContentItem:
        item = self._repository().find_by_id(item_id)
        if item is None:
            raise NotFound(id=item_id)
        return item

    def fetch_for_display(self, slug: str, locale: str = 'en') -> Dict[str, Any]:
        """
        Public single-item fetch.

        Only live items are visible. On success the view counter goes up by
        exactly one and the item comes back resolved to ``locale``. A missing
        and a non-live item raise the same NotFound and count nothing.
        """
        composer = self.filter_published()
        if not composer.options.relations:
            composer = composer.with_relations(DEFAULT_RELATIONS)
        repository = composer._repository()

        item = repository.find_by_slug(slug)
        if item is None:
            logger.info(f"Content item not found or not live: {slug}")
            raise NotFound(slug=slug)

        repository.increment_view_count(item.id)
        item = repository.find_by_id(item.id)
        if item is None:
            raise NotFound(slug=slug)

        logger.info(f"Retrieved content item: {slug} ({locale})")
        return composer._resolve(item, locale)

    def recent(self, limit: int = 5, locale: str = 'en') -> List[Dict[str, Any]]:
        composer = self.filter_published().ordered_by_recent().limit(limit)
        if not composer.options.relations:
            composer = composer.with_relations(('author',))
        return [composer._resolve(item, locale) for item in composer.all(locale)]

    def seo_metadata(self, slug: str) -> Dict[str, Any]:
        """SEO projection of a live item; no view is counted."""
        item = self.filter_published().find_by_slug(slug)
        return self.schema_generator.seo_metadata(item)
