"""
SEO Scoring and Structured Data for the Content Platform

This module provides the on-page SEO quality score for content items and
the schema.org BlogPosting markup derived from them.

Both engines always read the English resolution of translatable fields,
whatever locale the item is served in, so a score never depends on the
request. Both are pure: they accept ORM items or any object exposing the
same attributes, and they never raise.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from translation import TranslationResolver

SCORING_LOCALE = "en"
DEFAULT_ARTICLE_SECTION = "Technology"
DEFAULT_AUTHOR_NAME = "Anonymous"


def _count(collection) -> int:
    try:
        return len(collection or ())
    except TypeError:
        return 0


@dataclass(frozen=True)
class SeoRule:
    """One independently evaluated row of the score table."""
    name: str
    evaluate: Callable[[Any], int]
    max_points: int = 10


@dataclass
class SeoAnalysis:
    score: int
    max_score: int
    grade: str
    breakdown: Dict[str, int] = field(default_factory=dict)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "max_score": self.max_score,
            "grade": self.grade,
            "breakdown": dict(self.breakdown),
            "recommendations": list(self.recommendations),
        }


class SeoScorer:
    """
    Deterministic 0-100 on-page SEO score.

    Rows (10 points each, partial credit 5 where noted):
    - meta title 30-60 chars (any length: 5)
    - meta description 120-160 chars (any length: 5)
    - content >= 1000 chars (>= 500: 5)
    - OG image and featured image (either: 5)
    - structured data present
    - canonical URL present
    - >= 1 category and >= 1 tag (either: 5)
    - reading time set
    - Arabic content longer than 200 chars

    The row points (90 at most) are scaled onto 0-100, rounding half up,
    and clamped, so an item meeting every row scores exactly 100.
    """

    MAX_SCORE = 100

    META_TITLE_RANGE = (30, 60)
    META_DESCRIPTION_RANGE = (120, 160)
    CONTENT_FULL_LENGTH = 1000
    CONTENT_PARTIAL_LENGTH = 500
    ARABIC_MIN_LENGTH = 200

    def __init__(self, resolver: Optional[TranslationResolver] = None):
        self.resolver = resolver or TranslationResolver()
        self.rules = [
            SeoRule("meta_title", self._score_meta_title),
            SeoRule("meta_description", self._score_meta_description),
            SeoRule("content_length", self._score_content_length),
            SeoRule("images", self._score_images),
            SeoRule("structured_data", self._score_structured_data),
            SeoRule("canonical_url", self._score_canonical_url),
            SeoRule("taxonomy", self._score_taxonomy),
            SeoRule("reading_time", self._score_reading_time),
            SeoRule("bilingual", self._score_bilingual),
        ]

    def _english(self, item, field_name: str) -> str:
        return self.resolver.resolve(getattr(item, field_name, None), SCORING_LOCALE)

    def _arabic_content(self, item) -> str:
        content = getattr(item, "content", None)
        if isinstance(content, Mapping):
            value = content.get("ar")
            return value if isinstance(value, str) else ""
        return ""

    # --- rows ------------------------------------------------------------

    @staticmethod
    def _length_points(length: int, bounds) -> int:
        low, high = bounds
        if low <= length <= high:
            return 10
        if length > 0:
            return 5
        return 0

    def _score_meta_title(self, item) -> int:
        return self._length_points(len(self._english(item, "meta_title")), self.META_TITLE_RANGE)

    def _score_meta_description(self, item) -> int:
        return self._length_points(len(self._english(item, "meta_description")),
                                   self.META_DESCRIPTION_RANGE)

    def _score_content_length(self, item) -> int:
        length = len(self._english(item, "content"))
        if length >= self.CONTENT_FULL_LENGTH:
            return 10
        if length >= self.CONTENT_PARTIAL_LENGTH:
            return 5
        return 0

    def _score_images(self, item) -> int:
        has_og = bool(getattr(item, "og_image", None))
        has_featured = bool(getattr(item, "featured_image_url", None))
        if has_og and has_featured:
            return 10
        if has_og or has_featured:
            return 5
        return 0

    def _score_structured_data(self, item) -> int:
        return 10 if getattr(item, "schema_json", None) else 0

    def _score_canonical_url(self, item) -> int:
        return 10 if getattr(item, "canonical_url", None) else 0

    def _score_taxonomy(self, item) -> int:
        has_categories = _count(getattr(item, "categories", None)) > 0
        has_tags = _count(getattr(item, "tags", None)) > 0
        if has_categories and has_tags:
            return 10
        if has_categories or has_tags:
            return 5
        return 0

    def _score_reading_time(self, item) -> int:
        minutes = getattr(item, "reading_time_minutes", None)
        try:
            return 10 if minutes is not None and minutes > 0 else 0
        except TypeError:
            return 0

    def _score_bilingual(self, item) -> int:
        arabic = self._arabic_content(item)
        return 10 if arabic and len(arabic) > self.ARABIC_MIN_LENGTH else 0

    # --- public API ----------------------------------------------------------

    def breakdown(self, item) -> Dict[str, int]:
        return {rule.name: min(rule.evaluate(item), rule.max_points) for rule in self.rules}

    @property
    def raw_max(self) -> int:
        return sum(rule.max_points for rule in self.rules)

    def _scaled(self, breakdown: Dict[str, int]) -> int:
        raw = sum(breakdown.values())
        scaled = (raw * self.MAX_SCORE * 2 + self.raw_max) // (self.raw_max * 2)
        return max(0, min(scaled, self.MAX_SCORE))

    def score(self, item) -> int:
        return self._scaled(self.breakdown(item))

    def suggest_improvements(self, item) -> List[str]:
        """Human-readable fixes, in the same order as the score table."""
        improvements = []

        # Meta title
        title_length = len(self._english(item, "meta_title"))
        low, high = self.META_TITLE_RANGE
        if title_length < low:
            improvements.append(
                f"Meta title is too short ({title_length} characters). "
                f"Add {low - title_length} more to reach the {low}-{high} character range."
            )
        elif title_length > high:
            improvements.append(
                f"Meta title is too long ({title_length} characters). "
                f"Remove {title_length - high} to stay within {high} characters."
            )

        # Meta description
        description_length = len(self._english(item, "meta_description"))
        low, high = self.META_DESCRIPTION_RANGE
        if description_length < low:
            improvements.append(
                f"Meta description is too short ({description_length} characters). "
                f"Add {low - description_length} more to reach the {low}-{high} character range."
            )
        elif description_length > high:
            improvements.append(
                f"Meta description is too long ({description_length} characters). "
                f"Remove {description_length - high} to stay within {high} characters."
            )

        # Content length
        content_length = len(self._english(item, "content"))
        if content_length < self.CONTENT_FULL_LENGTH:
            improvements.append(
                f"Content is too short ({content_length} characters). "
                f"Add {self.CONTENT_FULL_LENGTH - content_length} more to reach at least "
                f"{self.CONTENT_FULL_LENGTH:,} characters."
            )

        # Images
        has_og = bool(getattr(item, "og_image", None))
        has_featured = bool(getattr(item, "featured_image_url", None))
        if not has_og and not has_featured:
            improvements.append("Missing OG image and featured image. Add both (0 of 2 set).")
        elif not has_og:
            improvements.append("Missing OG image. Add an image for social sharing (1 of 2 set).")
        elif not has_featured:
            improvements.append("Missing featured image. Add one for listings (1 of 2 set).")

        # Categories and tags
        if _count(getattr(item, "categories", None)) == 0:
            improvements.append("No categories assigned. Add at least 1 relevant category.")
        if _count(getattr(item, "tags", None)) == 0:
            improvements.append("No tags assigned. Add at least 1 relevant tag.")

        # Multilingual
        arabic_length = len(self._arabic_content(item))
        if arabic_length <= self.ARABIC_MIN_LENGTH:
            improvements.append(
                f"Arabic content is missing or incomplete ({arabic_length} characters). "
                f"Add {self.ARABIC_MIN_LENGTH + 1 - arabic_length} more to exceed "
                f"{self.ARABIC_MIN_LENGTH} characters."
            )

        return improvements

    def analyze(self, item) -> SeoAnalysis:
        """Score, letter grade, per-row breakdown and recommendations."""
        breakdown = self.breakdown(item)
        score = self._scaled(breakdown)

        if score >= 90:
            grade = "A"
        elif score >= 80:
            grade = "B"
        elif score >= 70:
            grade = "C"
        elif score >= 60:
            grade = "D"
        else:
            grade = "F"

        return SeoAnalysis(
            score=score,
            max_score=self.MAX_SCORE,
            grade=grade,
            breakdown=breakdown,
            recommendations=self.suggest_improvements(item),
        )


class SchemaGenerator:
    """
    Builds schema.org BlogPosting markup from a content item.

    ``wordCount`` is the character length of the English content. This is
    deliberate and must not be replaced by a real word count: stored
    markup and scores depend on it.
    """

    def __init__(self, resolver: Optional[TranslationResolver] = None,
                 base_url: str = "https://devseo.com"):
        self.resolver = resolver or TranslationResolver()
        self.base_url = base_url.rstrip("/")

    def _english(self, value) -> str:
        return self.resolver.resolve(value, SCORING_LOCALE)

    @staticmethod
    def _isoformat(value) -> Optional[str]:
        return value.isoformat() if value is not None and hasattr(value, "isoformat") else None

    def _author(self, author) -> Dict[str, Any]:
        if author is None:
            return {"@type": "Person", "name": DEFAULT_AUTHOR_NAME}

        result = {
            "@type": "Person",
            "name": getattr(author, "name", None) or DEFAULT_AUTHOR_NAME,
        }
        url = getattr(author, "url", None)
        author_id = getattr(author, "id", None)
        if url:
            result["url"] = url
        elif author_id is not None:
            result["url"] = f"{self.base_url}/authors/{author_id}"
        return result

    def generate(self, item) -> Dict[str, Any]:
        categories = list(getattr(item, "categories", None) or [])
        tags = list(getattr(item, "tags", None) or [])
        updated_at = getattr(item, "updated_at", None) or getattr(item, "created_at", None)

        schema = {
            "@context": "https://schema.org",
            "@type": "BlogPosting",
            "headline": self._english(getattr(item, "title", None)),
            "description": self._english(getattr(item, "meta_description", None)),
            "datePublished": self._isoformat(getattr(item, "published_at", None)),
            "dateModified": self._isoformat(updated_at),
            "author": self._author(getattr(item, "author", None)),
            "mainEntityOfPage": {
                "@type": "WebPage",
                "@id": getattr(item, "canonical_url", None) or "",
            },
            "wordCount": len(self._english(getattr(item, "content", None))),
            "articleSection": (self._english(getattr(categories[0], "name", None)) if categories else "")
                              or DEFAULT_ARTICLE_SECTION,
            "keywords": ", ".join(
                name for name in (self._english(getattr(tag, "name", None)) for tag in tags) if name
            ),
        }

        og_image = getattr(item, "og_image", None)
        if og_image:
            schema["image"] = og_image

        return schema

    def seo_metadata(self, item) -> Dict[str, Any]:
        """SEO-only projection of an item (English meta fields, stored markup)."""
        return {
            "slug": getattr(item, "slug", None),
            "meta_title": self._english(getattr(item, "meta_title", None)),
            "meta_description": self._english(getattr(item, "meta_description", None)),
            "og_image": getattr(item, "og_image", None),
            "canonical_url": getattr(item, "canonical_url", None),
            "schema_json": getattr(item, "schema_json", None),
        }
