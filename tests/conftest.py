"""
Shared fixtures for the content platform test suite.

Every test gets a fresh application on an in-memory SQLite database and a
mock clock, so publication checks never depend on the wall clock.
"""

import os
import sys
from datetime import datetime, timedelta
from unittest.mock import Mock

import pytest

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app import create_app
from config import TestingConfig
from models import db, Author

NOW = datetime(2026, 1, 15, 12, 0, 0)

ENGLISH_BODY = " ".join(["bilingual"] * 120)   # 1199 chars, 120 words
ARABIC_BODY = " ".join(["محتوى"] * 50)         # 299 chars


@pytest.fixture
def clock():
    """Mock clock; set ``clock.return_value`` to move time."""
    return Mock(return_value=NOW)


@pytest.fixture
def app(clock):
    app = create_app(TestingConfig, clock=clock)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def platform(app):
    return app.extensions["content_platform"]


@pytest.fixture
def author(app):
    author = Author(name="Layla Hassan", email="layla@devseo.com", region="EG")
    db.session.add(author)
    db.session.commit()
    return author


@pytest.fixture
def category(platform):
    return platform.taxonomy.create_category({
        "name": {"en": "Technical SEO", "ar": "تحسين محركات البحث التقني"},
    })


@pytest.fixture
def tag(platform):
    return platform.taxonomy.create_tag({
        "name": {"en": "Schema", "ar": "مخطط"},
        "color": "#1A2B3C",
    })


@pytest.fixture
def make_item(platform):
    """Factory creating items through ContentService."""
    def _make_item(title="Hello World", published=True, **fields):
        data = {"title": title if not isinstance(title, str) else {"en": title}}
        data.update(fields)
        if published:
            data.setdefault("status", "published")
            data.setdefault("published_at", NOW - timedelta(days=1))
        return platform.content.create_item(data)
    return _make_item


@pytest.fixture
def full_item(platform, author, category, tag):
    """An item meeting every SEO row."""
    return platform.content.create_item({
        "title": {"en": "Technical SEO for Bilingual Blogs", "ar": "تحسين محركات البحث للمدونات"},
        "meta_title": {"en": "T" * 45},
        "meta_description": {"en": "D" * 140},
        "content": {"en": ENGLISH_BODY, "ar": ARABIC_BODY},
        "og_image": "https://devseo.com/images/og.png",
        "featured_image_url": "https://devseo.com/images/featured.png",
        "category_ids": [category.id],
        "tag_ids": [tag.id],
        "status": "published",
        "published_at": NOW - timedelta(hours=2),
    }, author_id=author.id)
