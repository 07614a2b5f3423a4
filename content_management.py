"""
Content Management for the Content Platform

This module provides the write side of the platform: creating, updating,
publishing and retiring content items, and managing the category tree and
tags.

Every content-affecting write recomputes the derived fields
(``reading_time_minutes``, ``schema_json``, ``seo_score``) and stores them in
the same commit as the content change, so the stored score and markup
always describe the stored content.
"""

import logging
import math
import re
from collections.abc import Iterable, Mapping
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from slugify import slugify
from sqlalchemy.exc import SQLAlchemyError

from config import LocaleConfig
from errors import InvalidStatus, NotFound, ValidationError
from models import (
    db, Author, Category, ContentItem, ContentStatus, DeviceType,
    LifecycleState, PerformanceMetric, Tag
)
from publication import PublicationPolicy, as_naive_utc
from repository import ContentRepository
from search_seo import SchemaGenerator, SeoScorer
from translation import TRANSLATABLE_CONTENT_FIELDS, TranslationResolver
from resources import category_tree_resource

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 200
HEX_COLOR = re.compile(r'^#[0-9A-Fa-f]{6}$')
HTML_TAG = re.compile(r'<[^>]+>')
URL_FIELDS = ('canonical_url', 'og_image', 'featured_image_url')
METRIC_FIELDS = ('lcp', 'fid', 'cls', 'page_load_time', 'time_to_first_byte')


def compute_reading_time(content: str) -> int:
    """Minutes at 200 words per minute; at least 1 when there is any text."""
    text = HTML_TAG.sub(' ', content or '')
    word_count = len(text.split())
    if word_count == 0:
        return 0
    return max(1, math.ceil(word_count / WORDS_PER_MINUTE))


def _parse_datetime(value, field: str, errors: Dict[str, List[str]]) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return as_naive_utc(value)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            errors.setdefault(field, []).append(f"{field} must be an ISO-8601 timestamp.")
            return None
        return as_naive_utc(parsed)
    errors.setdefault(field, []).append(f"{field} must be an ISO-8601 timestamp.")
    return None


def _validate_translatable(value, field: str, errors: Dict[str, List[str]]):
    if value is None or isinstance(value, str):
        return
    if isinstance(value, Mapping):
        for locale, text in value.items():
            if not isinstance(locale, str) or not (text is None or isinstance(text, str)):
                errors.setdefault(field, []).append(
                    f"{field} must map locale codes to strings."
                )
                return
        return
    errors.setdefault(field, []).append(f"{field} must be a string or a locale mapping.")


def _validate_url(value, field: str, errors: Dict[str, List[str]]):
    if value in (None, ''):
        return
    if not isinstance(value, str) or not re.match(r'^https?://[^\s/$.?#].[^\s]*$', value):
        errors.setdefault(field, []).append(f"{field} must be an absolute http(s) URL.")


def parse_status(value) -> ContentStatus:
    if isinstance(value, ContentStatus):
        return value
    try:
        return ContentStatus(value)
    except ValueError:
        raise InvalidStatus(value, [status.value for status in ContentStatus])


class ContentService:
    """
    Write-side operations on content items.

    Features:
    - Slug derivation from the English title (stable across title edits)
    - Reading time, structured data and SEO score recomputed on every write
    - Publication status transitions (draft, scheduled, published)
    - Soft delete, restore and purge
    - Performance metric recording
    """

    def __init__(self, repository: Optional[ContentRepository] = None,
                 resolver: Optional[TranslationResolver] = None,
                 policy: Optional[PublicationPolicy] = None,
                 scorer: Optional[SeoScorer] = None,
                 schema_generator: Optional[SchemaGenerator] = None,
                 base_url: str = "https://devseo.com"):
        self.policy = policy or PublicationPolicy()
        self.locale_config: LocaleConfig = self.policy.locale_config
        self.resolver = resolver or TranslationResolver(self.locale_config)
        self.repository = repository or ContentRepository(self.policy)
        self.scorer = scorer or SeoScorer(self.resolver)
        self.schema_generator = schema_generator or SchemaGenerator(self.resolver, base_url)
        self.base_url = base_url.rstrip('/')

    # --- helpers -------------------------------------------------------------

    def _english(self, value) -> str:
        return self.resolver.resolve(value, self.locale_config.fallback_locale)

    def _unique_slug(self, base: str, exclude_id: Optional[str] = None) -> str:
        candidate, suffix = base, 2
        while self.repository.slug_exists(candidate, exclude_id):
            candidate = f"{base}-{suffix}"
            suffix += 1
        return candidate

    def _derive_slug(self, title, exclude_id: Optional[str] = None) -> str:
        base = slugify(self._english(title))
        if not base:
            raise ValidationError(errors={
                'title': ["An English title is required to derive the slug."]
            })
        return self._unique_slug(base, exclude_id)

    def _validate_payload(self, data: Dict[str, Any]) -> Dict[str, List[str]]:
        errors: Dict[str, List[str]] = {}
        for field in TRANSLATABLE_CONTENT_FIELDS:
            if field in data:
                _validate_translatable(data[field], field, errors)
        for field in URL_FIELDS:
            if field in data:
                _validate_url(data[field], field, errors)
        if 'schema_json' in data and data['schema_json'] is not None \
                and not isinstance(data['schema_json'], Mapping):
            errors.setdefault('schema_json', []).append("schema_json must be an object.")
        if 'regions' in data:
            regions = data['regions']
            if isinstance(regions, str) or not isinstance(regions, Iterable) or not list(regions):
                errors.setdefault('regions', []).append("At least one region is required.")
            else:
                invalid = [code for code in regions if not self.policy.is_valid_region(code)]
                if invalid:
                    errors.setdefault('regions', []).append(
                        f"Invalid region(s): {', '.join(map(str, invalid))}. "
                        f"Allowed: {', '.join(self.locale_config.regions)}."
                    )
        return errors

    def _load_related(self, model, ids, field: str, errors: Dict[str, List[str]]) -> List:
        ids = list(dict.fromkeys(ids or []))
        if not ids:
            return []
        records = model.query.filter(model.id.in_(ids)).all()
        found = {record.id for record in records}
        missing = [record_id for record_id in ids if record_id not in found]
        if missing:
            errors.setdefault(field, []).append(f"Unknown id(s): {', '.join(map(str, missing))}.")
        by_id = {record.id: record for record in records}
        return [by_id[record_id] for record_id in ids if record_id in by_id]

    def _apply_status(self, item: ContentItem, status: ContentStatus,
                      published_at: Optional[datetime] = None,
                      scheduled_at: Optional[datetime] = None):
        item.status = status
        if status == ContentStatus.PUBLISHED:
            item.published_at = published_at or item.published_at or self.policy.now()
        elif status == ContentStatus.SCHEDULED:
            item.scheduled_at = scheduled_at or item.scheduled_at
            if item.scheduled_at is None:
                raise ValidationError(errors={
                    'scheduled_at': ["A scheduled item needs a scheduled_at timestamp."]
                })

    def _refresh_derived(self, item: ContentItem, schema_override=None):
        """Recompute reading time, structured data and score from the current content."""
        now = self.policy.now()
        item.created_at = item.created_at or now
        item.updated_at = now
        item.reading_time_minutes = compute_reading_time(self._english(item.content))
        item.schema_json = dict(schema_override) if schema_override else self.schema_generator.generate(item)
        item.seo_score = self.scorer.score(item)

    def _commit(self, action: str, item: ContentItem):
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to {action} content item {item.slug}: {e}")
            raise
        logger.info(f"{action.capitalize()} content item {item.slug} (seo_score={item.seo_score})")

    def get_item(self, item_id: str, states=(LifecycleState.ACTIVE,)) -> ContentItem:
        """Admin lookup: any item in ``states``, regardless of publication status."""
        item = self.repository.with_states(*states).with_relations(
            ['author', 'categories', 'tags', 'regions']
        ).find_by_id(item_id)
        if item is None:
            raise NotFound("Content item not found.", id=item_id)
        return item

    # --- lifecycle -----------------------------------------------------------

    def create_item(self, data: Dict[str, Any], author_id: Optional[str] = None) -> ContentItem:
        """
        Create a content item.

        Items start as drafts unless a valid ``status`` is supplied. The slug
        comes from ``data['slug']`` when given, otherwise from the English
        title.
        """
        data = dict(data or {})
        errors = self._validate_payload(data)

        status = parse_status(data.get('status', ContentStatus.DRAFT.value))
        published_at = _parse_datetime(data.get('published_at'), 'published_at', errors)
        scheduled_at = _parse_datetime(data.get('scheduled_at'), 'scheduled_at', errors)

        if not self._english(data.get('title')) and not data.get('slug'):
            errors.setdefault('title', []).append("An English title is required.")

        author = None
        author_id = author_id or data.get('author_id')
        if author_id:
            author = db.session.get(Author, author_id)
            if author is None:
                errors.setdefault('author_id', []).append("Author not found.")

        categories = self._load_related(Category, data.get('category_ids'), 'category_ids', errors)
        tags = self._load_related(Tag, data.get('tag_ids'), 'tag_ids', errors)

        if errors:
            logger.warning(f"Rejected content item payload: {sorted(errors)}")
            raise ValidationError(errors=errors)

        if data.get('slug'):
            slug = slugify(data['slug'])
            if not slug:
                raise ValidationError(errors={'slug': ["Slug must contain URL-safe characters."]})
            slug = self._unique_slug(slug)
        else:
            slug = self._derive_slug(data['title'])

        record = {
            'slug': slug,
            'author': author,
            'categories': categories,
            'tags': tags,
            'regions': data.get('regions') or [self.locale_config.global_region],
            'canonical_url': data.get('canonical_url') or f"{self.base_url}/blog/{slug}",
            'og_image': data.get('og_image') or None,
            'featured_image_url': data.get('featured_image_url') or None,
            'status': ContentStatus.DRAFT,
            'lifecycle': LifecycleState.ACTIVE,
            'view_count': 0,
        }
        for field in TRANSLATABLE_CONTENT_FIELDS:
            record[field] = data.get(field)
        if record['title'] is None:
            record['title'] = {}

        try:
            item = self.repository.create(record, commit=False)
            self._apply_status(item, status, published_at, scheduled_at)
            self._refresh_derived(item, data.get('schema_json'))
        except ValidationError:
            db.session.rollback()
            raise
        self._commit('create', item)
        return item

    def update_item(self, item_id: str, data: Dict[str, Any]) -> ContentItem:
        """
        Apply a partial update and recompute derived fields in the same commit.

        The slug is kept across title edits; passing ``slug`` as an empty
        value regenerates it from the (possibly new) English title.
        """
        data = dict(data or {})
        item = self.get_item(item_id)
        errors = self._validate_payload(data)

        published_at = _parse_datetime(data.get('published_at'), 'published_at', errors)
        scheduled_at = _parse_datetime(data.get('scheduled_at'), 'scheduled_at', errors)
        status = parse_status(data['status']) if 'status' in data else None

        changes: Dict[str, Any] = {}
        if 'author_id' in data:
            author = db.session.get(Author, data['author_id']) if data['author_id'] else None
            if data['author_id'] and author is None:
                errors.setdefault('author_id', []).append("Author not found.")
            changes['author'] = author
        if 'category_ids' in data:
            changes['categories'] = self._load_related(Category, data['category_ids'], 'category_ids', errors)
        if 'tag_ids' in data:
            changes['tags'] = self._load_related(Tag, data['tag_ids'], 'tag_ids', errors)

        if errors:
            logger.warning(f"Rejected update for content item {item.slug}: {sorted(errors)}")
            raise ValidationError(errors=errors)

        for field in TRANSLATABLE_CONTENT_FIELDS:
            if field in data:
                changes[field] = data[field]
        for field in URL_FIELDS:
            if field in data:
                changes[field] = data[field] or None
        if 'regions' in data:
            changes['regions'] = list(data['regions'])
        if 'published_at' in data:
            changes['published_at'] = published_at
        if 'scheduled_at' in data:
            changes['scheduled_at'] = scheduled_at

        try:
            item = self.repository.update(item.id, changes, commit=False)
            if 'slug' in data:
                if data['slug']:
                    requested = slugify(data['slug'])
                    if not requested:
                        raise ValidationError(errors={'slug': ["Slug must contain URL-safe characters."]})
                    if requested != item.slug:
                        item.slug = self._unique_slug(requested, exclude_id=item.id)
                else:
                    item.slug = self._derive_slug(item.title, exclude_id=item.id)
            if not item.canonical_url:
                item.canonical_url = f"{self.base_url}/blog/{item.slug}"
            if status is not None:
                self._apply_status(item, status, published_at, scheduled_at)
            self._refresh_derived(item, data.get('schema_json'))
        except ValidationError:
            db.session.rollback()
            raise
        self._commit('update', item)
        return item

    def set_status(self, item_id: str, status, published_at=None, scheduled_at=None) -> ContentItem:
        status = parse_status(status)
        errors: Dict[str, List[str]] = {}
        published_at = _parse_datetime(published_at, 'published_at', errors)
        scheduled_at = _parse_datetime(scheduled_at, 'scheduled_at', errors)
        if errors:
            raise ValidationError(errors=errors)

        item = self.get_item(item_id)
        try:
            self._apply_status(item, status, published_at, scheduled_at)
            self._refresh_derived(item)
        except ValidationError:
            db.session.rollback()
            raise
        self._commit(f"set status {status.value} on", item)
        return item

    def publish_item(self, item_id: str, published_at=None) -> ContentItem:
        """Publish now (or at ``published_at``) and regenerate SEO data."""
        item = self.get_item(item_id)
        errors: Dict[str, List[str]] = {}
        when = _parse_datetime(published_at, 'published_at', errors) or self.policy.now()
        if errors:
            raise ValidationError(errors=errors)
        item.status = ContentStatus.PUBLISHED
        item.published_at = when
        self._refresh_derived(item)
        self._commit('publish', item)
        return item

    def schedule_item(self, item_id: str, scheduled_at) -> ContentItem:
        return self.set_status(item_id, ContentStatus.SCHEDULED, scheduled_at=scheduled_at)

    def publish_due_items(self, now: Optional[datetime] = None) -> List[ContentItem]:
        """Publish every scheduled item whose ``scheduled_at`` has passed."""
        now = as_naive_utc(now or self.policy.now())
        due = ContentItem.query.filter(
            ContentItem.lifecycle == LifecycleState.ACTIVE,
            ContentItem.status == ContentStatus.SCHEDULED,
            ContentItem.scheduled_at.isnot(None),
            ContentItem.scheduled_at <= now,
        ).all()
        for item in due:
            item.status = ContentStatus.PUBLISHED
            item.published_at = item.scheduled_at
            self._refresh_derived(item)
        if due:
            db.session.commit()
            logger.info(f"Published {len(due)} scheduled content items")
        return due

    def recalculate_seo(self, item_id: str) -> ContentItem:
        item = self.get_item(item_id)
        self._refresh_derived(item)
        self._commit('recalculate SEO for', item)
        return item

    def seo_report(self, item_id: str) -> Dict[str, Any]:
        item = self.get_item(item_id)
        report = self.scorer.analyze(item).to_dict()
        report['slug'] = item.slug
        report['stored_score'] = item.seo_score
        return report

    def soft_delete_item(self, item_id: str) -> ContentItem:
        return self.repository.delete(item_id)

    def restore_item(self, item_id: str) -> ContentItem:
        return self.repository.restore(item_id)

    def purge_item(self, item_id: str) -> ContentItem:
        return self.repository.purge(item_id)

    # --- metrics -------------------------------------------------------------

    def record_performance_metric(self, item_id: str, data: Dict[str, Any]) -> PerformanceMetric:
        """Store one measurement as received; nothing is aggregated here."""
        item = self.get_item(item_id)
        data = dict(data or {})
        errors: Dict[str, List[str]] = {}

        values = {}
        for field in METRIC_FIELDS:
            if data.get(field) is None:
                continue
            try:
                value = Decimal(str(data[field]))
            except InvalidOperation:
                errors.setdefault(field, []).append(f"{field} must be a number.")
                continue
            if value < 0:
                errors.setdefault(field, []).append(f"{field} cannot be negative.")
            values[field] = value

        device_type = None
        if data.get('device_type'):
            try:
                device_type = DeviceType(data['device_type'])
            except ValueError:
                errors.setdefault('device_type', []).append(
                    f"device_type must be one of: {', '.join(d.value for d in DeviceType)}."
                )
        measured_at = _parse_datetime(data.get('measured_at'), 'measured_at', errors)

        if errors:
            raise ValidationError(errors=errors)

        metric = PerformanceMetric(
            content_item=item,
            region=data.get('region'),
            device_type=device_type,
            browser=data.get('browser'),
            measured_at=measured_at or self.policy.now(),
            **values
        )
        db.session.add(metric)
        db.session.commit()
        logger.info(f"Recorded performance metric for {item.slug}")
        return metric


class TaxonomyService:
    """Categories (a tree without cycles) and tags."""

    def __init__(self, resolver: Optional[TranslationResolver] = None):
        self.resolver = resolver or TranslationResolver()

    def _english(self, value) -> str:
        return self.resolver.resolve(value, self.resolver.fallback_locale)

    def _slug_for(self, model, data, errors) -> Optional[str]:
        if not data.get('name'):
            errors.setdefault('name', []).append("Name is required.")
            return None
        slug = slugify(data.get('slug') or self._english(data.get('name')))
        if not slug:
            errors.setdefault('name', []).append("An English name is required.")
            return None
        if model.query.filter_by(slug=slug).first():
            errors.setdefault('slug', []).append(f"Slug '{slug}' is already taken.")
        return slug

    def get_category(self, category_id: str) -> Category:
        category = db.session.get(Category, category_id)
        if category is None:
            raise NotFound("Category not found.", id=category_id)
        return category

    def get_category_by_slug(self, slug: str) -> Category:
        category = Category.query.filter_by(slug=slug).first()
        if category is None:
            raise NotFound("Category not found.", slug=slug)
        return category

    def create_category(self, data: Dict[str, Any]) -> Category:
        data = dict(data or {})
        errors: Dict[str, List[str]] = {}
        for field in ('name', 'description', 'meta_title', 'meta_description'):
            if field in data:
                _validate_translatable(data[field], field, errors)
        slug = self._slug_for(Category, data, errors)

        parent = None
        if data.get('parent_id'):
            parent = db.session.get(Category, data['parent_id'])
            if parent is None:
                errors.setdefault('parent_id', []).append("Parent category not found.")

        if errors:
            raise ValidationError(errors=errors)

        category = Category(
            name=data.get('name'),
            slug=slug,
            description=data.get('description'),
            meta_title=data.get('meta_title'),
            meta_description=data.get('meta_description'),
            schema_json=data.get('schema_json'),
            display_order=data.get('display_order', 0),
            parent=parent,
        )
        db.session.add(category)
        db.session.commit()
        logger.info(f"Created new category: {category.slug}")
        return category

    def update_category(self, category_id: str, data: Dict[str, Any]) -> Category:
        category = self.get_category(category_id)
        data = dict(data or {})
        errors: Dict[str, List[str]] = {}
        for field in ('name', 'description', 'meta_title', 'meta_description'):
            if field in data:
                _validate_translatable(data[field], field, errors)

        if 'parent_id' in data:
            parent = None
            if data['parent_id']:
                parent = db.session.get(Category, data['parent_id'])
                if parent is None:
                    errors.setdefault('parent_id', []).append("Parent category not found.")
                elif parent.id == category.id or any(a.id == category.id for a in parent.ancestors()):
                    errors.setdefault('parent_id', []).append(
                        "A category cannot be moved under itself or one of its descendants."
                    )
            if not errors:
                category.parent = parent

        if errors:
            db.session.rollback()
            raise ValidationError(errors=errors)

        for field in ('name', 'description', 'meta_title', 'meta_description',
                      'schema_json', 'display_order'):
            if field in data:
                setattr(category, field, data[field])

        db.session.commit()
        logger.info(f"Updated category: {category.slug}")
        return category

    def category_tree(self, locale: str = 'en') -> List[Dict[str, Any]]:
        roots = Category.query.filter(Category.parent_id.is_(None)).order_by(
            Category.display_order, Category.slug
        ).all()
        return [category_tree_resource(root, self.resolver, locale) for root in roots]

    def create_tag(self, data: Dict[str, Any]) -> Tag:
        data = dict(data or {})
        errors: Dict[str, List[str]] = {}
        if 'name' in data:
            _validate_translatable(data['name'], 'name', errors)
        slug = self._slug_for(Tag, data, errors)
        color = data.get('color')
        if color and not HEX_COLOR.match(color):
            errors.setdefault('color', []).append("Color must be a hex code like #1A2B3C.")

        if errors:
            raise ValidationError(errors=errors)

        tag = Tag(name=data.get('name'), slug=slug, color=color)
        db.session.add(tag)
        db.session.commit()
        logger.info(f"Created new tag: {tag.slug}")
        return tag
