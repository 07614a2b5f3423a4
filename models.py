"""
Content Platform Data Models

This module defines the database models for the bilingual content platform.
It includes the content items themselves, their authors, taxonomy (categories
and tags), region targeting, recorded performance metrics and contact form
submissions.

Translatable fields are stored as JSON: either a plain string (legacy rows)
or an object keyed by locale code, e.g. ``{"en": "...", "ar": "..."}``. They
are never resolved here; see ``translation.TranslationResolver``.
"""

import uuid
from datetime import datetime
from enum import Enum

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import Index
from sqlalchemy.ext.associationproxy import association_proxy

db = SQLAlchemy()


def generate_uuid():
    return str(uuid.uuid4())


class ContentStatus(Enum):
    """
    Publication status of a content item.

    Only PUBLISHED items with a past ``published_at`` are live; there is no
    approval workflow beyond these three values.
    """
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"


class LifecycleState(Enum):
    """
    Visibility lifecycle of a content item.

    Soft-deleted items can be restored. Purged items are tombstones kept to
    reserve their id and slug; they are never restored.
    """
    ACTIVE = "active"
    SOFT_DELETED = "soft_deleted"
    PURGED = "purged"


class ContactStatus(Enum):
    NEW = "new"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    SPAM = "spam"


class DeviceType(Enum):
    MOBILE = "mobile"
    TABLET = "tablet"
    DESKTOP = "desktop"


# Association tables for many-to-many relationships
content_item_categories = db.Table('content_item_categories',
    db.Column('content_item_id', db.String(36), db.ForeignKey('content_item.id'), primary_key=True),
    db.Column('category_id', db.String(36), db.ForeignKey('category.id'), primary_key=True)
)

content_item_tags = db.Table('content_item_tags',
    db.Column('content_item_id', db.String(36), db.ForeignKey('content_item.id'), primary_key=True),
    db.Column('tag_id', db.String(36), db.ForeignKey('tag.id'), primary_key=True)
)


class Author(db.Model):
    """
    The person credited for a content item.

    Attributes:
        id (str): Primary key identifier.
        name (str): Display name.
        email (str): Contact address.
        region (str): Home region of the author.
        url (str): Optional public profile URL.
    """

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(100), unique=True)
    region = db.Column(db.String(10))
    url = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    content_items = db.relationship('ContentItem', back_populates='author')

    def __repr__(self):
        return f'<Author {self.name}>'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'region': self.region,
            'url': self.url,
        }


class Category(db.Model):
    """
    Represents a content category for organizing content items.

    Categories form a tree through ``parent_id``; cycles are rejected by
    ``TaxonomyService`` before anything is written.

    Attributes:
        id (str): Primary key identifier.
        parent_id (str): Reference to parent category for hierarchy.
        name (dict|str): Translatable display name.
        slug (str): URL-friendly identifier.
        description (dict|str): Translatable description.
        meta_title (dict|str): Translatable SEO title.
        meta_description (dict|str): Translatable SEO description.
        schema_json (dict): Optional structured data for the category page.
        display_order (int): Sort key among siblings.
    """

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    parent_id = db.Column(db.String(36), db.ForeignKey('category.id'))
    name = db.Column(db.JSON, nullable=False)
    slug = db.Column(db.String(150), unique=True, nullable=False)
    description = db.Column(db.JSON)
    meta_title = db.Column(db.JSON)
    meta_description = db.Column(db.JSON)
    schema_json = db.Column(db.JSON)
    display_order = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Self-referential relationship for hierarchy
    parent = db.relationship('Category', remote_side=[id], backref='children')

    content_items = db.relationship('ContentItem', secondary=content_item_categories,
                                    back_populates='categories')

    def __repr__(self):
        return f'<Category {self.slug}>'

    def ancestors(self):
        """Walk up the parent chain, nearest first."""
        seen = set()
        node = self.parent
        while node is not None and node.id not in seen:
            seen.add(node.id)
            yield node
            node = node.parent

    def to_dict(self, include_children=False):
        """Convert category to dictionary (untranslated, admin view)."""
        result = {
            'id': self.id,
            'parent_id': self.parent_id,
            'name': self.name,
            'slug': self.slug,
            'description': self.description,
            'meta_title': self.meta_title,
            'meta_description': self.meta_description,
            'schema_json': self.schema_json,
            'display_order': self.display_order,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

        if include_children:
            result['children'] = [child.to_dict(include_children=True) for child in self.children]

        return result


class Tag(db.Model):
    """
    Represents a content tag for flexible content labeling.

    Attributes:
        id (str): Primary key identifier.
        name (dict|str): Translatable display name.
        slug (str): URL-friendly identifier.
        color (str): Optional hex color code for UI display.
    """

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    name = db.Column(db.JSON, nullable=False)
    slug = db.Column(db.String(100), unique=True, nullable=False)
    color = db.Column(db.String(7))  # Hex color code
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    content_items = db.relationship('ContentItem', secondary=content_item_tags,
                                    back_populates='tags')

    def __repr__(self):
        return f'<Tag {self.slug}>'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'slug': self.slug,
            'color': self.color,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class ContentRegion(db.Model):
    """One region code targeted by a content item."""

    id = db.Column(db.Integer, primary_key=True)
    content_item_id = db.Column(db.String(36), db.ForeignKey('content_item.id'), nullable=False)
    code = db.Column(db.String(10), nullable=False)

    content_item = db.relationship('ContentItem', back_populates='region_links')

    __table_args__ = (
        Index('idx_content_region_item_code', 'content_item_id', 'code'),
        Index('idx_content_region_code', 'code'),
    )

    def __repr__(self):
        return f'<ContentRegion {self.code}>'


class ContentItem(db.Model):
    """
    Represents a bilingual blog post.

    Attributes:
        id (str): Opaque identifier, immutable once assigned.
        author_id (str): Reference to the credited Author.
        slug (str): Unique URL slug, derived once from the English title.

        # Translatable fields (JSON)
        title, description, content, excerpt, meta_title, meta_description

        # SEO fields
        canonical_url (str): Absolute canonical URL.
        og_image (str): Optional Open Graph image URL.
        featured_image_url (str): Optional featured image URL.
        schema_json (dict): Derived schema.org BlogPosting object.
        seo_score (int): Derived score in [0, 100].

        # Publication
        status (ContentStatus): draft, scheduled or published.
        published_at (datetime): When the item went (or goes) live.
        scheduled_at (datetime): Planned publication time.

        # Tracking
        view_count (int): Public live fetches, incremented atomically.
        reading_time_minutes (int): Derived from the English content.

        # Lifecycle
        lifecycle (LifecycleState): active, soft_deleted or purged.
        deleted_at (datetime): When the item left the active state.
    """

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    author_id = db.Column(db.String(36), db.ForeignKey('author.id'))
    slug = db.Column(db.String(255), unique=True, nullable=False)

    # Translatable content
    title = db.Column(db.JSON, nullable=False)
    description = db.Column(db.JSON)
    content = db.Column(db.JSON)
    excerpt = db.Column(db.JSON)

    # SEO fields
    meta_title = db.Column(db.JSON)
    meta_description = db.Column(db.JSON)
    canonical_url = db.Column(db.String(500))
    og_image = db.Column(db.String(500))
    featured_image_url = db.Column(db.String(500))
    schema_json = db.Column(db.JSON)
    seo_score = db.Column(db.Integer, default=0, nullable=False)

    # Publishing
    status = db.Column(db.Enum(ContentStatus), default=ContentStatus.DRAFT, nullable=False)
    published_at = db.Column(db.DateTime)
    scheduled_at = db.Column(db.DateTime)

    # Tracking
    view_count = db.Column(db.Integer, default=0, nullable=False)
    reading_time_minutes = db.Column(db.Integer, default=0, nullable=False)

    # Lifecycle
    lifecycle = db.Column(db.Enum(LifecycleState), default=LifecycleState.ACTIVE, nullable=False)
    deleted_at = db.Column(db.DateTime)

    # Timestamps
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    author = db.relationship('Author', back_populates='content_items')
    categories = db.relationship('Category', secondary=content_item_categories,
                                 back_populates='content_items',
                                 order_by='Category.display_order')
    tags = db.relationship('Tag', secondary=content_item_tags,
                           back_populates='content_items', order_by='Tag.slug')
    region_links = db.relationship('ContentRegion', back_populates='content_item',
                                   cascade='all, delete-orphan', order_by='ContentRegion.code')
    performance_metrics = db.relationship('PerformanceMetric', back_populates='content_item',
                                          cascade='all, delete-orphan')

    regions = association_proxy('region_links', 'code',
                                creator=lambda code: ContentRegion(code=code))

    # Indexes for performance
    __table_args__ = (
        Index('idx_content_item_status', 'status'),
        Index('idx_content_item_published_at', 'published_at'),
        Index('idx_content_item_lifecycle', 'lifecycle'),
        Index('idx_content_item_author', 'author_id'),
    )

    def __repr__(self):
        return f'<ContentItem {self.slug}>'

    def to_dict(self, include_relations=False):
        """Convert the item to a dictionary with raw translatable values (admin view)."""
        result = {
            'id': self.id,
            'author_id': self.author_id,
            'slug': self.slug,
            'title': self.title,
            'description': self.description,
            'content': self.content,
            'excerpt': self.excerpt,
            'meta_title': self.meta_title,
            'meta_description': self.meta_description,
            'canonical_url': self.canonical_url,
            'og_image': self.og_image,
            'featured_image_url': self.featured_image_url,
            'schema_json': self.schema_json,
            'seo_score': self.seo_score,
            'status': self.status.value if self.status else None,
            'published_at': self.published_at.isoformat() if self.published_at else None,
            'scheduled_at': self.scheduled_at.isoformat() if self.scheduled_at else None,
            'view_count': self.view_count,
            'reading_time_minutes': self.reading_time_minutes,
            'regions': sorted(self.regions),
            'lifecycle': self.lifecycle.value if self.lifecycle else None,
            'deleted_at': self.deleted_at.isoformat() if self.deleted_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

        if include_relations:
            result['author'] = self.author.to_dict() if self.author else None
            result['categories'] = [category.to_dict() for category in self.categories]
            result['tags'] = [tag.to_dict() for tag in self.tags]

        return result


class PerformanceMetric(db.Model):
    """
    A single Core Web Vitals measurement for a content item.

    Metrics are recorded as they arrive; nothing in this service aggregates
    them.
    """

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    content_item_id = db.Column(db.String(36), db.ForeignKey('content_item.id'))

    # Core Web Vitals
    lcp = db.Column(db.Numeric(5, 2))  # Largest Contentful Paint
    fid = db.Column(db.Numeric(5, 2))  # First Input Delay
    cls = db.Column(db.Numeric(5, 3))  # Cumulative Layout Shift

    page_load_time = db.Column(db.Numeric(5, 2))
    time_to_first_byte = db.Column(db.Numeric(5, 2))

    region = db.Column(db.String(10))
    device_type = db.Column(db.Enum(DeviceType))
    browser = db.Column(db.String(100))
    measured_at = db.Column(db.DateTime, default=datetime.utcnow)

    content_item = db.relationship('ContentItem', back_populates='performance_metrics')

    __table_args__ = (
        Index('idx_metric_content_item', 'content_item_id'),
        Index('idx_metric_measured_at', 'measured_at'),
    )

    def __repr__(self):
        return f'<PerformanceMetric {self.content_item_id} {self.measured_at}>'

    def meets_web_vitals(self):
        """LCP within 2.5s and CLS within 0.1; unmeasured values pass."""
        return ((self.lcp is None or float(self.lcp) <= 2.5) and
                (self.cls is None or float(self.cls) <= 0.1))

    def to_dict(self):
        return {
            'id': self.id,
            'content_item_id': self.content_item_id,
            'lcp': float(self.lcp) if self.lcp is not None else None,
            'fid': float(self.fid) if self.fid is not None else None,
            'cls': float(self.cls) if self.cls is not None else None,
            'page_load_time': float(self.page_load_time) if self.page_load_time is not None else None,
            'time_to_first_byte': float(self.time_to_first_byte) if self.time_to_first_byte is not None else None,
            'region': self.region,
            'device_type': self.device_type.value if self.device_type else None,
            'browser': self.browser,
            'measured_at': self.measured_at.isoformat() if self.measured_at else None,
            'meets_web_vitals': self.meets_web_vitals(),
        }


class ContactSubmission(db.Model):
    """
    A message sent through the public contact form.

    Attributes:
        name, email, phone, subject, message: Submitted fields.
        region (str): EG, US or INTL.
        ip_address, user_agent, locale: Request context captured on submit.
        status (ContactStatus): new, in_progress, resolved or spam.
        response_message (str): Reply recorded when resolved.
        responded_at (datetime): When the reply was recorded.
    """

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(30))
    subject = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    region = db.Column(db.String(10), nullable=False)
    ip_address = db.Column(db.String(45))
    user_agent = db.Column(db.String(500))
    locale = db.Column(db.String(10))
    status = db.Column(db.Enum(ContactStatus), default=ContactStatus.NEW, nullable=False)
    response_message = db.Column(db.Text)
    responded_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('idx_contact_status', 'status'),
        Index('idx_contact_region', 'region'),
    )

    def __repr__(self):
        return f'<ContactSubmission {self.email}>'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'subject': self.subject,
            'message': self.message,
            'region': self.region,
            'locale': self.locale,
            'status': self.status.value,
            'response_message': self.response_message,
            'responded_at': self.responded_at.isoformat() if self.responded_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
