"""Paginated-resource synchronization engine."""

from crm_sync.sync.cache import (
    FetchFailure,
    FetchSuccess,
    Insert,
    MarkRead,
    PageCorrection,
    Remove,
    Replace,
    ResourceCache,
)
from crm_sync.sync.dashboard import DashboardLoader
from crm_sync.sync.debounce import Debouncer
from crm_sync.sync.engine import (
    CollectionEngine,
    InquiryStats,
    NotificationEngine,
    inquiry_stats,
    open_engine,
)
from crm_sync.sync.mutations import DeleteConfirmation, MutationReconciler, UnreadCounter
from crm_sync.sync.orchestrator import FetchOrchestrator
from crm_sync.sync.query import compose, to_params
from crm_sync.sync.reference import ReferenceData, filter_areas

__all__ = [
    "CollectionEngine",
    "DashboardLoader",
    "Debouncer",
    "DeleteConfirmation",
    "FetchFailure",
    "FetchOrchestrator",
    "FetchSuccess",
    "InquiryStats",
    "Insert",
    "MarkRead",
    "MutationReconciler",
    "NotificationEngine",
    "PageCorrection",
    "ReferenceData",
    "Remove",
    "Replace",
    "ResourceCache",
    "UnreadCounter",
    "compose",
    "filter_areas",
    "inquiry_stats",
    "open_engine",
    "to_params",
]
