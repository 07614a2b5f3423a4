"""
Tests for locale resolution and publication/region visibility rules.
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from config import LocaleConfig
from models import ContentStatus
from publication import PublicationPolicy
from translation import TranslationResolver

NOW = datetime(2026, 1, 15, 12, 0, 0)


class TestTranslationResolver:

    def setup_method(self):
        self.resolver = TranslationResolver()

    def test_requested_locale_wins(self):
        assert self.resolver.resolve({"en": "Title", "ar": "عنوان"}, "ar") == "عنوان"

    def test_falls_back_to_english(self):
        assert self.resolver.resolve({"en": "Title"}, "ar") == "Title"

    def test_empty_requested_translation_falls_back(self):
        assert self.resolver.resolve({"en": "Title", "ar": ""}, "ar") == "Title"

    def test_no_english_and_no_requested_locale_is_empty(self):
        assert self.resolver.resolve({"ar": "عنوان"}, "en") == ""

    def test_plain_string_is_returned_unchanged(self):
        assert self.resolver.resolve("Legacy title", "ar") == "Legacy title"

    @pytest.mark.parametrize("value", [None, 42, ["en"], {"en": 5}])
    def test_unexpected_shapes_resolve_to_empty(self, value):
        assert self.resolver.resolve(value, "en") == ""

    def test_unknown_locale_uses_fallback(self):
        assert self.resolver.resolve({"en": "Title", "ar": "عنوان"}, "fr") == "Title"

    def test_resolve_fields(self):
        post = SimpleNamespace(title={"en": "Title", "ar": "عنوان"}, excerpt="Plain")
        assert self.resolver.resolve_fields(post, ["title", "excerpt", "missing"], "ar") == {
            "title": "عنوان",
            "excerpt": "Plain",
            "missing": "",
        }

    def test_normalize_locale(self):
        assert self.resolver.normalize_locale("AR") == "ar"
        assert self.resolver.normalize_locale("fr") == "en"
        assert self.resolver.normalize_locale(None) == "en"

    def test_injected_locale_config(self):
        resolver = TranslationResolver(LocaleConfig(supported_locales=("en", "ar", "fr")))
        assert resolver.normalize_locale("fr") == "fr"


class TestPublicationPolicy:

    def setup_method(self):
        self.policy = PublicationPolicy(clock=lambda: NOW)

    def make_post(self, status=ContentStatus.PUBLISHED, published_at=NOW - timedelta(days=1),
                  regions=("GLOBAL",)):
        return SimpleNamespace(status=status, published_at=published_at, regions=list(regions))

    def test_published_in_the_past_is_live(self):
        assert self.policy.is_live(self.make_post())

    def test_published_exactly_now_is_live(self):
        assert self.policy.is_live(self.make_post(published_at=NOW))

    def test_future_publication_is_not_live(self):
        assert not self.policy.is_live(self.make_post(published_at=NOW + timedelta(minutes=1)))

    def test_missing_publish_time_is_not_live(self):
        assert not self.policy.is_live(self.make_post(published_at=None))

    @pytest.mark.parametrize("status", [ContentStatus.DRAFT, ContentStatus.SCHEDULED])
    def test_other_statuses_are_not_live(self, status):
        assert not self.policy.is_live(self.make_post(status=status))

    def test_explicit_now_overrides_clock(self):
        post = self.make_post(published_at=NOW + timedelta(days=1))
        assert self.policy.is_live(post, now=NOW + timedelta(days=2))

    @pytest.mark.parametrize("published_at, now, expected", [
        (datetime(2026, 1, 14, 12, 0, tzinfo=timezone.utc), None, True),
        (datetime(2026, 1, 15, 13, 0, tzinfo=timezone(timedelta(hours=2))), None, True),
        (datetime(2026, 1, 15, 15, 0, tzinfo=timezone(timedelta(hours=2))), None, False),
        (NOW - timedelta(hours=1), datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc), True),
        (NOW + timedelta(hours=1), datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc), False),
        (datetime(2026, 1, 15, 14, 0, tzinfo=timezone(timedelta(hours=2))),
         datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc), True),
    ])
    def test_mixed_timezone_awareness(self, published_at, now, expected):
        assert self.policy.is_live(self.make_post(published_at=published_at), now=now) is expected

    def test_aware_clock(self):
        policy = PublicationPolicy(clock=lambda: datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc))
        assert policy.now() == NOW
        assert policy.is_live(self.make_post())

    def test_global_item_matches_every_region(self):
        post = self.make_post(regions=("GLOBAL",))
        for region in ("EG", "US", "GLOBAL", None):
            assert self.policy.matches_region(post, region)

    def test_region_specific_item(self):
        post = self.make_post(regions=("EG",))
        assert self.policy.matches_region(post, "EG")
        assert not self.policy.matches_region(post, "US")

    def test_unrestricted_request_sees_region_specific_items(self):
        post = self.make_post(regions=("US",))
        assert self.policy.matches_region(post, "GLOBAL")
        assert self.policy.matches_region(post, None)

    def test_region_clause_is_none_when_unrestricted(self):
        assert self.policy.region_clause("GLOBAL") is None
        assert self.policy.region_clause(None) is None
        assert self.policy.region_clause("EG") is not None

    def test_valid_regions_come_from_config(self):
        policy = PublicationPolicy(LocaleConfig(regions=("EG", "SA", "GLOBAL")))
        assert policy.is_valid_region("SA")
        assert not policy.is_valid_region("US")
