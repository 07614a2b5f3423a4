"""
Test Suite for Content Management

Covers the write side of the platform: item creation and updates with
derived SEO fields, publication transitions, the soft delete lifecycle,
performance metrics and the category/tag taxonomy.
"""

from datetime import timedelta

import pytest

from content_management import compute_reading_time
from errors import InvalidStatus, NotFound, ValidationError
from models import ContentStatus, LifecycleState
from tests.conftest import NOW


class TestCreateItem:
    """Test content item creation"""

    def test_defaults(self, platform):
        """Test a minimal item gets draft status, GLOBAL region and derived fields"""
        item = platform.content.create_item({"title": {"en": "Hello World", "ar": "مرحبا بالعالم"}})

        assert item.slug == "hello-world"
        assert item.status == ContentStatus.DRAFT
        assert item.lifecycle == LifecycleState.ACTIVE
        assert item.regions == ["GLOBAL"]
        assert item.view_count == 0
        assert item.canonical_url == "https://devseo.com/blog/hello-world"
        assert item.schema_json["headline"] == "Hello World"
        assert item.seo_score == platform.scorer.score(item)

    def test_timestamps_follow_the_platform_clock(self, platform, clock):
        """Test created_at, updated_at and dateModified come from the injected clock"""
        item = platform.content.create_item({"title": {"en": "Hello World"}})
        assert item.created_at == item.updated_at == NOW
        assert item.schema_json["dateModified"] == NOW.isoformat()

        clock.return_value = NOW + timedelta(hours=3)
        item = platform.content.update_item(item.id, {"title": {"en": "Hello again"}})
        assert item.created_at == NOW
        assert item.updated_at == NOW + timedelta(hours=3)
        assert item.schema_json["dateModified"] == (NOW + timedelta(hours=3)).isoformat()

    def test_complete_item_scores_100(self, full_item):
        """Test an item meeting every SEO row is stored with a perfect score"""
        assert full_item.seo_score == 100
        assert full_item.reading_time_minutes == 1
        assert full_item.schema_json["author"]["name"] == "Layla Hassan"
        assert full_item.schema_json["articleSection"] == "Technical SEO"
        assert full_item.schema_json["keywords"] == "Schema"

    def test_slug_collisions_get_a_suffix(self, platform):
        slugs = [platform.content.create_item({"title": {"en": "Hello World"}}).slug for _ in range(3)]
        assert slugs == ["hello-world", "hello-world-2", "hello-world-3"]

    def test_explicit_slug_is_normalised(self, platform):
        item = platform.content.create_item({"title": {"en": "Hello"}, "slug": "My Custom Slug"})
        assert item.slug == "my-custom-slug"

    def test_english_title_is_required(self, platform):
        with pytest.raises(ValidationError) as excinfo:
            platform.content.create_item({"title": {"ar": "عنوان"}})
        assert "title" in excinfo.value.errors

    def test_invalid_status(self, platform):
        with pytest.raises(InvalidStatus) as excinfo:
            platform.content.create_item({"title": {"en": "Hello"}, "status": "archived"})
        assert excinfo.value.status_code == 422
        assert "status" in excinfo.value.errors

    def test_invalid_region(self, platform):
        with pytest.raises(ValidationError) as excinfo:
            platform.content.create_item({"title": {"en": "Hello"}, "regions": ["EG", "FR"]})
        assert "regions" in excinfo.value.errors

    def test_unknown_category(self, platform):
        with pytest.raises(ValidationError) as excinfo:
            platform.content.create_item({"title": {"en": "Hello"}, "category_ids": ["missing"]})
        assert "category_ids" in excinfo.value.errors

    def test_invalid_canonical_url(self, platform):
        with pytest.raises(ValidationError) as excinfo:
            platform.content.create_item({"title": {"en": "Hello"}, "canonical_url": "/relative"})
        assert "canonical_url" in excinfo.value.errors

    def test_published_on_create(self, platform, clock):
        item = platform.content.create_item({"title": {"en": "Hello"}, "status": "published"})
        assert item.status == ContentStatus.PUBLISHED
        assert item.published_at == NOW
        assert platform.policy.is_live(item)

    def test_duplicate_regions_are_collapsed(self, platform):
        item = platform.content.create_item({"title": {"en": "Hello"}, "regions": ["EG", "EG", "US"]})
        assert sorted(item.regions) == ["EG", "US"]


class TestUpdateItem:
    """Test updates and derived field recomputation"""

    def test_slug_is_stable_across_title_edits(self, platform):
        item = platform.content.create_item({"title": {"en": "Hello World"}})
        item = platform.content.update_item(item.id, {"title": {"en": "Brand New Title"}})

        assert item.slug == "hello-world"
        assert item.schema_json["headline"] == "Brand New Title"

    def test_clearing_the_slug_regenerates_it(self, platform):
        item = platform.content.create_item({"title": {"en": "Hello World"}})
        item = platform.content.update_item(item.id, {"title": {"en": "Brand New Title"}, "slug": ""})
        assert item.slug == "brand-new-title"

    def test_score_and_schema_follow_the_content(self, platform):
        """Test the stored score and schema are recomputed in the same write"""
        item = platform.content.create_item({"title": {"en": "Hello"}})
        before = item.seo_score

        item = platform.content.update_item(item.id, {
            "og_image": "https://devseo.com/og.png",
            "meta_title": {"en": "T" * 45},
        })

        assert item.seo_score > before
        assert item.seo_score == platform.scorer.score(item)
        assert item.schema_json["image"] == "https://devseo.com/og.png"

    def test_reading_time_is_recomputed(self, platform):
        item = platform.content.create_item({"title": {"en": "Hello"}})
        assert item.reading_time_minutes == 0

        item = platform.content.update_item(item.id, {"content": {"en": "word " * 450}})
        assert item.reading_time_minutes == 3

    def test_invalid_update_changes_nothing(self, platform):
        item = platform.content.create_item({"title": {"en": "Hello"}})

        with pytest.raises(ValidationError):
            platform.content.update_item(item.id, {"title": {"en": "Changed"}, "regions": ["FR"]})

        item = platform.content.get_item(item.id)
        assert item.title == {"en": "Hello"}
        assert item.regions == ["GLOBAL"]

    def test_regions_are_replaced(self, platform):
        item = platform.content.create_item({"title": {"en": "Hello"}, "regions": ["EG"]})
        item = platform.content.update_item(item.id, {"regions": ["US", "EG"]})
        assert sorted(item.regions) == ["EG", "US"]

    def test_unknown_item(self, platform):
        with pytest.raises(NotFound):
            platform.content.update_item("missing", {"title": {"en": "Hello"}})


class TestPublication:
    """Test status transitions"""

    def test_publish_item(self, platform):
        item = platform.content.create_item({"title": {"en": "Hello"}})
        item = platform.content.publish_item(item.id)

        assert item.status == ContentStatus.PUBLISHED
        assert item.published_at == NOW
        assert item.schema_json["datePublished"] == NOW.isoformat()

    def test_schedule_then_publish_due_items(self, platform, clock):
        item = platform.content.create_item({"title": {"en": "Hello"}})
        item = platform.content.schedule_item(item.id, NOW + timedelta(hours=1))
        assert item.status == ContentStatus.SCHEDULED
        assert not platform.policy.is_live(item)

        assert platform.content.publish_due_items() == []

        clock.return_value = NOW + timedelta(hours=2)
        published = platform.content.publish_due_items()

        assert [post.id for post in published] == [item.id]
        assert published[0].status == ContentStatus.PUBLISHED
        assert published[0].published_at == NOW + timedelta(hours=1)

    def test_schedule_accepts_iso_timestamps(self, platform):
        item = platform.content.create_item({"title": {"en": "Hello"}})
        item = platform.content.schedule_item(item.id, "2026-02-01T09:00:00Z")
        assert item.scheduled_at.isoformat() == "2026-02-01T09:00:00"

    def test_schedule_requires_a_time(self, platform):
        item = platform.content.create_item({"title": {"en": "Hello"}})
        with pytest.raises(ValidationError):
            platform.content.set_status(item.id, "scheduled")

    def test_set_status_rejects_unknown_values(self, platform):
        item = platform.content.create_item({"title": {"en": "Hello"}})
        with pytest.raises(InvalidStatus):
            platform.content.set_status(item.id, "archived")

    def test_back_to_draft(self, platform, make_item):
        item = make_item("Hello")
        item = platform.content.set_status(item.id, "draft")
        assert not platform.policy.is_live(item)


class TestLifecycle:
    """Test soft delete, restore and purge"""

    def test_soft_delete_and_restore(self, platform, make_item):
        item = make_item("Hello")
        platform.content.soft_delete_item(item.id)

        with pytest.raises(NotFound):
            platform.content.get_item(item.id)

        deleted = platform.content.get_item(item.id, states=(LifecycleState.SOFT_DELETED,))
        assert deleted.deleted_at is not None

        restored = platform.content.restore_item(item.id)
        assert restored.lifecycle == LifecycleState.ACTIVE
        assert restored.deleted_at is None

    def test_restore_requires_a_soft_deleted_item(self, platform, make_item):
        item = make_item("Hello")
        with pytest.raises(NotFound):
            platform.content.restore_item(item.id)

    def test_purged_items_cannot_be_restored(self, platform, make_item):
        item = make_item("Hello")
        platform.content.purge_item(item.id)

        with pytest.raises(NotFound):
            platform.content.restore_item(item.id)
        with pytest.raises(NotFound):
            platform.content.purge_item(item.id)

    def test_purged_slug_stays_reserved(self, platform, make_item):
        item = make_item("Hello")
        platform.content.purge_item(item.id)

        assert make_item("Hello").slug == "hello-2"


class TestSeoReporting:

    def test_recalculate_seo(self, platform, full_item):
        item = platform.content.recalculate_seo(full_item.id)
        assert item.seo_score == 100

    def test_seo_report(self, platform):
        item = platform.content.create_item({"title": {"en": "Hello"}})
        report = platform.content.seo_report(item.id)

        assert report["slug"] == "hello"
        assert report["score"] == report["stored_score"]
        assert report["grade"] == "F"
        assert len(report["recommendations"]) == 7


class TestReadingTime:

    @pytest.mark.parametrize("content, minutes", [
        ("", 0),
        (None, 0),
        ("<p></p>", 0),
        ("<p>one two three</p>", 1),
        ("word " * 200, 1),
        ("word " * 201, 2),
        ("<h2>Title</h2>" + "word " * 399, 2),
    ])
    def test_compute_reading_time(self, content, minutes):
        assert compute_reading_time(content) == minutes


class TestPerformanceMetrics:

    def test_record_metric(self, platform, make_item):
        item = make_item("Hello")
        metric = platform.content.record_performance_metric(item.id, {
            "lcp": 2.1,
            "cls": 0.05,
            "device_type": "mobile",
            "region": "EG",
        })

        assert metric.meets_web_vitals()
        assert metric.to_dict()["device_type"] == "mobile"
        assert metric.content_item_id == item.id

    def test_invalid_metric(self, platform, make_item):
        item = make_item("Hello")
        with pytest.raises(ValidationError) as excinfo:
            platform.content.record_performance_metric(item.id, {"lcp": "fast", "device_type": "watch"})
        assert set(excinfo.value.errors) == {"lcp", "device_type"}


class TestTaxonomy:
    """Test category tree and tag management"""

    def test_create_category(self, platform):
        category = platform.taxonomy.create_category({"name": {"en": "Web Performance", "ar": "أداء الويب"}})
        assert category.slug == "web-performance"

    def test_duplicate_category_slug(self, platform, category):
        with pytest.raises(ValidationError) as excinfo:
            platform.taxonomy.create_category({"name": {"en": "Technical SEO"}})
        assert "slug" in excinfo.value.errors

    def test_unknown_parent(self, platform):
        with pytest.raises(ValidationError) as excinfo:
            platform.taxonomy.create_category({"name": {"en": "Child"}, "parent_id": "missing"})
        assert "parent_id" in excinfo.value.errors

    def test_category_cycles_are_rejected(self, platform):
        parent = platform.taxonomy.create_category({"name": {"en": "Parent"}})
        child = platform.taxonomy.create_category({"name": {"en": "Child"}, "parent_id": parent.id})
        grandchild = platform.taxonomy.create_category({"name": {"en": "Grandchild"}, "parent_id": child.id})

        with pytest.raises(ValidationError):
            platform.taxonomy.update_category(parent.id, {"parent_id": grandchild.id})
        with pytest.raises(ValidationError):
            platform.taxonomy.update_category(parent.id, {"parent_id": parent.id})

        assert platform.taxonomy.get_category(parent.id).parent_id is None

    def test_move_category(self, platform):
        first = platform.taxonomy.create_category({"name": {"en": "First"}})
        second = platform.taxonomy.create_category({"name": {"en": "Second"}})

        moved = platform.taxonomy.update_category(second.id, {"parent_id": first.id})
        assert moved.parent_id == first.id

    def test_category_tree(self, platform):
        parent = platform.taxonomy.create_category({"name": {"en": "Marketing", "ar": "التسويق"}})
        platform.taxonomy.create_category({"name": {"en": "SEO", "ar": "السيو"}, "parent_id": parent.id})

        tree = platform.taxonomy.category_tree("ar")

        assert len(tree) == 1
        assert tree[0]["name"] == "التسويق"
        assert [child["name"] for child in tree[0]["children"]] == ["السيو"]

    def test_create_tag(self, tag):
        assert tag.slug == "schema"
        assert tag.color == "#1A2B3C"

    def test_tag_color_is_validated(self, platform):
        with pytest.raises(ValidationError) as excinfo:
            platform.taxonomy.create_tag({"name": {"en": "Red"}, "color": "red"})
        assert "color" in excinfo.value.errors


class TestAdminRepresentations:
    """Test raw (untranslated) model dictionaries"""

    def test_content_item_to_dict(self, full_item):
        data = full_item.to_dict(include_relations=True)

        assert data["title"]["ar"] == "تحسين محركات البحث للمدونات"
        assert data["status"] == "published"
        assert data["lifecycle"] == "active"
        assert data["regions"] == ["GLOBAL"]
        assert data["author"]["name"] == "Layla Hassan"
        assert data["categories"][0]["slug"] == "technical-seo"
        assert data["tags"][0]["color"] == "#1A2B3C"

    def test_category_to_dict_with_children(self, platform):
        parent = platform.taxonomy.create_category({"name": {"en": "Marketing"}})
        platform.taxonomy.create_category({"name": {"en": "SEO"}, "parent_id": parent.id})

        data = platform.taxonomy.get_category_by_slug("marketing").to_dict(include_children=True)
        assert [child["slug"] for child in data["children"]] == ["seo"]
