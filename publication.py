"""
Publication and region visibility rules.

Each rule exists twice with identical semantics: as a Python predicate over a
loaded item, and as a SQLAlchemy clause so the same filter runs inside the
database. Callers AND the live clause and the region clause as independent
filters.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import and_

from config import LocaleConfig
from models import ContentItem, ContentRegion, ContentStatus


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Aware datetimes are converted to UTC and stored naive, like the columns."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class PublicationPolicy:

    def __init__(self, locale_config: Optional[LocaleConfig] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.locale_config = locale_config or LocaleConfig()
        self.clock = clock or datetime.utcnow

    @property
    def global_region(self) -> str:
        return self.locale_config.global_region

    def now(self) -> datetime:
        return as_naive_utc(self.clock())

    def is_live(self, item, now: Optional[datetime] = None) -> bool:
        """published status, a publish time, and that time not in the future"""
        now = as_naive_utc(now or self.now())
        status = getattr(item, 'status', None)
        published_at = as_naive_utc(getattr(item, 'published_at', None))
        if status not in (ContentStatus.PUBLISHED, ContentStatus.PUBLISHED.value):
            return False
        return published_at is not None and published_at <= now

    def is_unrestricted(self, region: Optional[str]) -> bool:
        return not region or region == self.global_region

    def matches_region(self, item, region: Optional[str]) -> bool:
        if self.is_unrestricted(region):
            return True
        regions = set(getattr(item, 'regions', None) or ())
        return region in regions or self.global_region in regions

    def live_clause(self, now: Optional[datetime] = None):
        now = as_naive_utc(now or self.now())
        return and_(
            ContentItem.status == ContentStatus.PUBLISHED,
            ContentItem.published_at.isnot(None),
            ContentItem.published_at <= now,
        )

    def region_clause(self, region: Optional[str]):
        """Clause for ``matches_region``; None when the request is unrestricted."""
        if self.is_unrestricted(region):
            return None
        return ContentItem.region_links.any(
            ContentRegion.code.in_([region, self.global_region])
        )

    def is_valid_region(self, region: str) -> bool:
        return region in self.locale_config.regions
