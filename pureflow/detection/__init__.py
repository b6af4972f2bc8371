"""
Alert detection and lifecycle for the alert engine.

This module contains threshold evaluation, alert deduplication and
lifecycle management, recommendations, persistence and refresh scheduling.

Components:
    evaluator: ThresholdEvaluator and candidate alert generation
    signatures: Batch data signatures and the bounded signature history
    recommendations: RecommendationEngine for remediation steps
    manager: AlertManager for alert lifecycle
    sync_queue: SyncQueue for at-least-once persistence
    storage: AlertStorage for PostgreSQL and the Redis mirror
    refresher: AlertRefresher for polling and on-demand refreshes
    history: Historical alert sections and statistics

Example:
    >>> from pureflow.detection import AlertManager, AlertStorage, SyncQueue
    >>>
    >>> storage = AlertStorage(postgres_client)
    >>> manager = AlertManager(thresholds=thresholds, sync_queue=SyncQueue(storage))
    >>> result = manager.process_batch(readings)
    >>> await manager.flush()
"""

from pureflow.detection.evaluator import (
    ThresholdEvaluator,
    build_candidates,
    create_evaluator,
    display_name,
    CRITICAL_DEVIATION_PERCENT,
)
from pureflow.detection.signatures import (
    SignatureHistory,
    build_data_signature,
    latest_reading,
    reading_signature,
)
from pureflow.detection.recommendations import (
    RecommendationEngine,
    RecommendationPriority,
    create_recommendation_engine,
)
from pureflow.detection.sync_queue import SyncQueue, DEFAULT_QUEUE_CAPACITY
from pureflow.detection.manager import (
    AlertManager,
    create_alert_manager,
    DEFAULT_GRACE_PERIOD_SECONDS,
    DEFAULT_HOMEPAGE_LIMIT,
)
from pureflow.detection.storage import AlertStorage, create_alert_storage
from pureflow.detection.refresher import AlertRefresher, RefreshOutcome
from pureflow.detection.history import (
    HistoricalAlertsService,
    HistoryPage,
    HistoryStatistics,
)

__all__ = [
    # Evaluator
    "ThresholdEvaluator",
    "build_candidates",
    "create_evaluator",
    "display_name",
    "CRITICAL_DEVIATION_PERCENT",
    # Signatures
    "SignatureHistory",
    "build_data_signature",
    "latest_reading",
    "reading_signature",
    # Recommendations
    "RecommendationEngine",
    "RecommendationPriority",
    "create_recommendation_engine",
    # Sync queue
    "SyncQueue",
    "DEFAULT_QUEUE_CAPACITY",
    # Manager
    "AlertManager",
    "create_alert_manager",
    "DEFAULT_GRACE_PERIOD_SECONDS",
    "DEFAULT_HOMEPAGE_LIMIT",
    # Storage
    "AlertStorage",
    "create_alert_storage",
    # Refresher
    "AlertRefresher",
    "RefreshOutcome",
    # History
    "HistoricalAlertsService",
    "HistoryPage",
    "HistoryStatistics",
]
