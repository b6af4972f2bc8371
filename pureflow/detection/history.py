"""
Historical alerts: filtering, deduplication and recency sections.

This module serves the stored-alert screens. Pure helpers shape a list of
stored alerts for display; HistoricalAlertsService fetches them from
PostgreSQL behind a short-lived cache.

Key Features:
    - Filters by type, severity and parameter ("all" disables a filter)
    - Deduplication by alert signature, most recent record kept
    - Sections: Today, Yesterday, This Week, Older (empty ones omitted)
    - Relative age strings such as "5 min ago"
    - Stale cache served when the store is unreachable

Example:
    >>> service = HistoricalAlertsService(postgres_client, cache_ttl_seconds=60)
    >>> page = await service.get_sections(parameter="pH")
    >>> [section.title for section in page.sections]
    ['Today', 'Older']
"""

import re
import time
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional

import structlog
from pydantic import BaseModel, Field

from pureflow.models.alerts import Alert
from pureflow.storage.postgres_client import PostgresClient

logger = structlog.get_logger(__name__)


DEFAULT_CACHE_TTL_SECONDS = 60.0
DEFAULT_FETCH_LIMIT = 500

SECTION_TITLES = ("Today", "Yesterday", "This Week", "Older")

_ALERT_ID_PATTERN = re.compile(r"^alert_(\d+)_")
_MIN_ID_YEAR = 2020
_MAX_ID_YEAR = 2100


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# MODELS
# =============================================================================


class HistoricalAlert(BaseModel):
    """Stored alert with its relative age for display."""

    model_config = {"frozen": True, "extra": "forbid"}

    alert: Alert
    age: str = Field(..., description="Relative age, e.g. '3 hr ago'")


class HistorySection(BaseModel):
    """One recency section, newest alert first."""

    model_config = {"frozen": True, "extra": "forbid"}

    title: str
    alerts: List[HistoricalAlert] = Field(default_factory=list)


class HistoryPage(BaseModel):
    """
    Sectioned historical alerts.

    Attributes:
        sections: Non-empty sections in display order.
        total_count: Alerts fetched before filtering.
        filtered_count: Alerts remaining after filtering and deduplication.
        last_updated: When the page was built.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    sections: List[HistorySection] = Field(default_factory=list)
    total_count: int = Field(default=0, ge=0)
    filtered_count: int = Field(default=0, ge=0)
    last_updated: datetime


class HistoryStatistics(BaseModel):
    """Counts over stored alerts."""

    model_config = {"frozen": True, "extra": "forbid"}

    total: int = Field(default=0, ge=0)
    by_type: Dict[str, int] = Field(default_factory=dict)
    by_severity: Dict[str, int] = Field(default_factory=dict)
    by_parameter: Dict[str, int] = Field(default_factory=dict)
    recent: int = Field(default=0, ge=0, description="Alerts created in the last 24 hours")


# =============================================================================
# PURE HELPERS
# =============================================================================


def _matches(actual: str, wanted: Optional[str]) -> bool:
    if not wanted or wanted.lower() == "all":
        return True
    return actual.lower() == wanted.lower()


def filter_alerts(
    alerts: Iterable[Alert],
    alert_type: Optional[str] = None,
    severity: Optional[str] = None,
    parameter: Optional[str] = None,
) -> List[Alert]:
    """
    Filter alerts by type, severity and parameter (case-insensitive).

    A filter that is None, empty or "all" is not applied.

    Example:
        >>> [a.parameter for a in filter_alerts(alerts, parameter="PH")]
        ['pH', 'pH']
    """
    return [
        alert
        for alert in alerts
        if _matches(alert.type.value, alert_type)
        and _matches(alert.severity.value, severity)
        and _matches(alert.parameter, parameter)
    ]


def dedupe_by_signature(alerts: Iterable[Alert]) -> List[Alert]:
    """
    Keep the most recent alert per signature.

    Returns:
        List[Alert]: Unique alerts, newest first.
    """
    newest_first = sorted(alerts, key=lambda alert: alert.created_at, reverse=True)
    seen = set()
    unique: List[Alert] = []
    for alert in newest_first:
        signature = alert.signature
        if signature in seen:
            continue
        seen.add(signature)
        unique.append(alert)
    return unique


def describe_age(timestamp: datetime, now: datetime) -> str:
    """
    Describe how long ago a timestamp was.

    Example:
        >>> describe_age(now - timedelta(minutes=5), now)
        '5 min ago'
        >>> describe_age(now - timedelta(days=1, hours=2), now)
        '1 day ago'
    """
    age_seconds = (now - timestamp).total_seconds()
    if age_seconds < 0:
        return "Time unknown"
    if age_seconds < 60:
        return "Just now"
    if age_seconds < 3600:
        return f"{int(age_seconds // 60)} min ago"
    if age_seconds < 86400:
        return f"{int(age_seconds // 3600)} hr ago"
    days = int(age_seconds // 86400)
    return f"{days} day{'s' if days > 1 else ''} ago"


def timestamp_from_alert_id(alert_id: str) -> Optional[datetime]:
    """
    Recover the creation time embedded in an ``alert_{ms}_...`` id.

    Returns:
        Optional[datetime]: UTC timestamp, or None if the id does not carry
            a plausible one (years 2020 to 2100).

    Example:
        >>> timestamp_from_alert_id("alert_1740816000000_3_k3j9x0a2b").year
        2025
    """
    match = _ALERT_ID_PATTERN.match(alert_id or "")
    if match is None:
        return None
    try:
        timestamp = datetime.fromtimestamp(int(match.group(1)) / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None
    if not _MIN_ID_YEAR <= timestamp.year <= _MAX_ID_YEAR:
        return None
    return timestamp


def group_by_recency(alerts: Iterable[Alert], now: datetime) -> List[HistorySection]:
    """
    Group alerts into recency sections.

    Day boundaries follow the timezone of ``now``. "This Week" covers the
    seven days before today; anything earlier is "Older".

    Args:
        alerts: Alerts to group.
        now: Reference time.

    Returns:
        List[HistorySection]: Non-empty sections, each sorted newest first.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    start_of_today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    start_of_yesterday = start_of_today - timedelta(days=1)
    start_of_week = start_of_today - timedelta(days=7)

    groups: Dict[str, List[Alert]] = {title: [] for title in SECTION_TITLES}
    for alert in alerts:
        created = alert.created_at
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)

        if created >= start_of_today:
            groups["Today"].append(alert)
        elif created >= start_of_yesterday:
            groups["Yesterday"].append(alert)
        elif created >= start_of_week:
            groups["This Week"].append(alert)
        else:
            groups["Older"].append(alert)

    sections: List[HistorySection] = []
    for title in SECTION_TITLES:
        members = sorted(groups[title], key=lambda alert: alert.created_at, reverse=True)
        if not members:
            continue
        sections.append(
            HistorySection(
                title=title,
                alerts=[
                    HistoricalAlert(alert=alert, age=describe_age(alert.created_at, now))
                    for alert in members
                ],
            )
        )
    return sections


def summarize(alerts: Iterable[Alert], now: datetime) -> HistoryStatistics:
    """
    Count alerts by type, severity and parameter.

    Args:
        alerts: Alerts to count.
        now: Reference time for the 24 hour "recent" count.

    Returns:
        HistoryStatistics: The counts.
    """
    alerts = list(alerts)
    day_ago = now - timedelta(hours=24)
    return HistoryStatistics(
        total=len(alerts),
        by_type=dict(Counter(alert.type.value for alert in alerts)),
        by_severity=dict(Counter(alert.severity.value for alert in alerts)),
        by_parameter=dict(Counter(alert.parameter for alert in alerts)),
        recent=sum(1 for alert in alerts if alert.created_at > day_ago),
    )


# =============================================================================
# SERVICE
# =============================================================================


class HistoricalAlertsService:
    """
    Stored alerts for display, cached for a short time.

    If the store cannot be queried and a previous result is cached, the
    stale result is served and a warning logged; otherwise the error
    propagates.

    Attributes:
        postgres_client: Source of stored alerts.
        cache_ttl_seconds: How long a fetched result is reused.
        fetch_limit: Maximum alerts fetched per query.
    """

    def __init__(
        self,
        postgres_client: PostgresClient,
        cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        fetch_limit: int = DEFAULT_FETCH_LIMIT,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.postgres_client = postgres_client
        self.cache_ttl_seconds = cache_ttl_seconds
        self.fetch_limit = fetch_limit
        self._clock = clock
        self._cached: Optional[List[Alert]] = None
        self._cached_at: Optional[float] = None

    def _cache_valid(self) -> bool:
        if self._cached is None or self._cached_at is None:
            return False
        return time.monotonic() - self._cached_at < self.cache_ttl_seconds

    async def fetch_alerts(self, use_cache: bool = True) -> List[Alert]:
        """
        Fetch stored alerts, newest first.

        Args:
            use_cache: Reuse a fresh cached result if available.

        Returns:
            List[Alert]: Stored alerts.

        Raises:
            PostgresClientError: If the query fails and nothing is cached.
        """
        if use_cache and self._cache_valid():
            logger.debug("history_cache_hit", count=len(self._cached))
            return list(self._cached)

        try:
            alerts = await self.postgres_client.query_alerts(limit=self.fetch_limit)
        except Exception as e:
            if self._cached is not None:
                logger.warning(
                    "history_stale_cache_served",
                    count=len(self._cached),
                    error=str(e),
                )
                return list(self._cached)
            raise

        self._cached = alerts
        self._cached_at = time.monotonic()
        logger.debug("history_fetched", count=len(alerts))
        return list(alerts)

    async def get_sections(
        self,
        alert_type: Optional[str] = None,
        severity: Optional[str] = None,
        parameter: Optional[str] = None,
        use_cache: bool = True,
    ) -> HistoryPage:
        """
        Build the sectioned history page.

        Args:
            alert_type: Optional type filter.
            severity: Optional severity filter.
            parameter: Optional parameter filter.
            use_cache: Reuse a fresh cached result if available.

        Returns:
            HistoryPage: Filtered, deduplicated and sectioned alerts.
        """
        now = self._clock()
        alerts = await self.fetch_alerts(use_cache=use_cache)
        unique = dedupe_by_signature(filter_alerts(alerts, alert_type, severity, parameter))

        return HistoryPage(
            sections=group_by_recency(unique, now),
            total_count=len(alerts),
            filtered_count=len(unique),
            last_updated=now,
        )

    async def get_statistics(self) -> HistoryStatistics:
        """
        Count stored alerts after deduplication.

        Returns:
            HistoryStatistics: Counts by type, severity and parameter.
        """
        alerts = await self.fetch_alerts()
        return summarize(dedupe_by_signature(alerts), self._clock())

    def clear_cache(self) -> None:
        """Drop the cached result."""
        self._cached = None
        self._cached_at = None
        logger.debug("history_cache_cleared")
