"""
CRM Sync - paginated-resource synchronization for a CRM admin console

This package keeps a locally cached, paginated and filtered view of a CRM
REST API (clients, inquiries, notifications, reference data) consistent
while the user searches, filters, pages and edits:

Engine:
- One CollectionEngine per resource collection
- Debounced search, page reset on filter/search changes
- Last-issued query wins; stale responses are discarded
- Create/update/delete reconciled with the cache, two-step delete
- Optimistic mark-read with unread counter correction
- Period-keyed dashboard summary loader

Transport:
- requests-based HTTPTransport, no automatic retries
- CSV export download

Example usage:
    >>> import asyncio
    >>> from crm_sync import CollectionEngine, HTTPTransport
    >>> transport = HTTPTransport("https://crm.example.com/api")
    >>> engine = CollectionEngine("clients", transport)
    >>> asyncio.run(engine.load())
    >>> state = engine.state()
    >>> print(state.pagination.total_pages, len(state.items))

Example usage (notifications):
    >>> from crm_sync import NotificationEngine
    >>> notifications = NotificationEngine(transport)
    >>> asyncio.run(notifications.mark_all_read())
    >>> notifications.unread_count
    0
"""

__version__ = "0.1.0"

# Transport
from crm_sync.clients import HTTPTransport, Transport, export_collection

# Collections
from crm_sync.data import COLLECTIONS, CollectionSpec, get_collection, list_collections

# Errors
from crm_sync.errors import (
    NetworkFailure,
    ServerRejection,
    SyncError,
    TransportError,
    ValidationFailure,
)

# Models
from crm_sync.models import (
    ALL,
    Area,
    Client,
    DashboardPeriod,
    DashboardState,
    DeleteStage,
    ErrorInfo,
    FetchState,
    FetchStatus,
    FilterKey,
    Inquiry,
    MutationIntent,
    MutationKind,
    MutationResult,
    MutationStatus,
    Notification,
    PageResponse,
    Pagination,
    QueryDescriptor,
    Resource,
    Salesman,
)
from crm_sync.settings import SyncSettings

# Engine
from crm_sync.sync import (
    CollectionEngine,
    DashboardLoader,
    Debouncer,
    DeleteConfirmation,
    FetchOrchestrator,
    MutationReconciler,
    NotificationEngine,
    ReferenceData,
    ResourceCache,
    UnreadCounter,
    compose,
    inquiry_stats,
    open_engine,
    to_params,
)

__all__ = [
    # Version
    "__version__",
    # Transport
    "HTTPTransport",
    "Transport",
    "export_collection",
    # Collections
    "COLLECTIONS",
    "CollectionSpec",
    "get_collection",
    "list_collections",
    # Errors
    "NetworkFailure",
    "ServerRejection",
    "SyncError",
    "TransportError",
    "ValidationFailure",
    # Models
    "ALL",
    "Area",
    "Client",
    "DashboardPeriod",
    "DashboardState",
    "DeleteStage",
    "ErrorInfo",
    "FetchState",
    "FetchStatus",
    "FilterKey",
    "Inquiry",
    "MutationIntent",
    "MutationKind",
    "MutationResult",
    "MutationStatus",
    "Notification",
    "PageResponse",
    "Pagination",
    "QueryDescriptor",
    "Resource",
    "Salesman",
    "SyncSettings",
    # Engine
    "CollectionEngine",
    "DashboardLoader",
    "Debouncer",
    "DeleteConfirmation",
    "FetchOrchestrator",
    "MutationReconciler",
    "NotificationEngine",
    "ReferenceData",
    "ResourceCache",
    "UnreadCounter",
    "compose",
    "inquiry_stats",
    "open_engine",
    "to_params",
]
