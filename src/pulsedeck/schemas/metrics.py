"""Pydantic response models for the PulseDeck metrics API."""
from typing import Literal, Optional

from pydantic import BaseModel, Field


class InsightOut(BaseModel):
    """Generated observation attached to an overview."""

    type: Literal["performance_change", "trend", "anomaly"]
    message: str
    severity: Literal["info", "warning", "critical"]
    entity_type: str = Field(..., description="workspace, platform, campaign, ...")
    entity_id: str


class OverviewResponse(BaseModel):
    """KPI overview for a workspace window."""

    spend: float
    revenue: float
    roas: float
    cpa: float
    ctr: float
    cpm: float
    cvr: float
    mer: float
    comparison: dict[str, float] = Field(
        default_factory=dict,
        description=(
            "spend_change, revenue_change, roas_change, cpa_change, ctr_change, "
            "cpm_change, cvr_change, mer_change in percent; empty without comparison_mode"
        ),
    )
    insights: list[InsightOut] = Field(default_factory=list)


class KpiRow(BaseModel):
    """Summed counters and derived KPIs for one bucket."""

    spend: float
    revenue: float
    roas: float
    cpa: float
    ctr: float
    cpm: float
    cvr: float
    impressions: int
    clicks: int
    conversions: int


class PlatformComparisonRow(KpiRow):
    platform: str
    account_count: int
    campaign_count: int


class TrendRow(KpiRow):
    date: Optional[str] = None
    platform: Optional[str] = None
    account_id: Optional[str] = None
    account_name: Optional[str] = None


class DailyMetricRow(BaseModel):
    """Raw daily metric record."""

    id: int
    date: str
    platform: str
    account_id: str
    account_name: Optional[str] = None
    campaign_id: Optional[str] = None
    adset_id: Optional[str] = None
    ad_id: Optional[str] = None
    spend: float
    impressions: int
    clicks: int
    conversions: int
    revenue: float


class Pagination(BaseModel):
    page: int
    per_page: int
    total: int
    total_pages: int


class DailyMetricsPage(BaseModel):
    data: list[DailyMetricRow]
    pagination: Pagination


class ErrorResponse(BaseModel):
    """Body returned for every handled error."""

    success: bool = False
    message: str
    error_code: str
    timestamp: str
