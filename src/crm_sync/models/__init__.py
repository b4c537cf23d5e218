"""Pydantic models for CRM records, queries, fetch state and mutations."""

from crm_sync.models.dashboard import (
    ChartPoint,
    DashboardData,
    DashboardPeriod,
    DashboardState,
    DashboardStats,
)
from crm_sync.models.mutation import (
    DeleteStage,
    MutationIntent,
    MutationKind,
    MutationResult,
    MutationStatus,
)
from crm_sync.models.query import ALL, FilterKey, QueryDescriptor, normalize_filters
from crm_sync.models.resources import (
    Area,
    Client,
    Inquiry,
    Notification,
    PageResponse,
    Resource,
    Salesman,
)
from crm_sync.models.state import ErrorInfo, FetchState, FetchStatus, Pagination

__all__ = [
    # Records
    "Area",
    "Client",
    "Inquiry",
    "Notification",
    "PageResponse",
    "Resource",
    "Salesman",
    # Queries
    "ALL",
    "FilterKey",
    "QueryDescriptor",
    "normalize_filters",
    # State
    "ErrorInfo",
    "FetchState",
    "FetchStatus",
    "Pagination",
    # Dashboard
    "ChartPoint",
    "DashboardData",
    "DashboardPeriod",
    "DashboardState",
    "DashboardStats",
    # Mutations
    "DeleteStage",
    "MutationIntent",
    "MutationKind",
    "MutationResult",
    "MutationStatus",
]
