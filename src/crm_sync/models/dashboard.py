"""Dashboard summary models: headline counts, inquiry chart and recent inquiries."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from crm_sync.models.resources import Inquiry
from crm_sync.models.state import ErrorInfo, FetchStatus


class DashboardPeriod(str, Enum):
    """Bucket size of the inquiries chart."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class DashboardStats(BaseModel):
    """Headline counts shown on the stat cards."""

    total_inquiries: int = Field(default=0, alias="totalInquiries")
    total_clients: int = Field(default=0, alias="totalClients")
    total_salesmen: int = Field(default=0, alias="totalSalesmen")
    total_areas: int = Field(default=0, alias="totalAreas")

    model_config = {"populate_by_name": True}


class ChartPoint(BaseModel):
    """One bar of the inquiries chart."""

    name: str
    value: int = 0


class DashboardData(BaseModel):
    """Dashboard payload for one period."""

    stats: DashboardStats = Field(default_factory=DashboardStats)
    inquiries_chart: list[ChartPoint] = Field(default_factory=list)
    recent_inquiries: list[Inquiry] = Field(default_factory=list, alias="recentInquiries")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "DashboardData":
        """Parse the dashboard response.

        Accepts the summary at the top level or under ``data``; the chart
        series is read from ``chartData.inquiries``.
        """
        if isinstance(payload.get("data"), dict):
            payload = payload["data"]
        chart = payload.get("chartData")
        if not isinstance(chart, dict):
            chart = {}
        return cls(
            stats=payload.get("stats") or {},
            inquiries_chart=chart.get("inquiries") or [],
            recent_inquiries=payload.get("recentInquiries") or [],
        )


class DashboardState(BaseModel):
    """Read-only snapshot of the dashboard loader.

    ``data`` survives a failed reload; ``error`` describes the failure.
    """

    status: FetchStatus = FetchStatus.IDLE
    period: DashboardPeriod = DashboardPeriod.MONTH
    data: DashboardData | None = None
    error: ErrorInfo | None = None
    in_flight_request_id: str | None = None

    model_config = {"frozen": True}

    @property
    def loading(self) -> bool:
        return self.status == FetchStatus.LOADING
