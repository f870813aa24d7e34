"""FastAPI routes for workspace metrics."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..metrics import breakdowns
from ..metrics.dates import parse_iso_date, resolve_date_range, resolve_window
from ..metrics.overview import OverviewAggregator
from ..schemas.metrics import (
    DailyMetricsPage,
    ErrorResponse,
    OverviewResponse,
    PlatformComparisonRow,
    TrendRow,
)
from ..storage.metrics_store import MetricsStore
from .auth import require_api_key
from .deps import get_store
from .rate_limit import enforce_rate_limit


logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/workspaces/{workspace_id}/metrics",
    tags=["metrics"],
    dependencies=[Depends(require_api_key), Depends(enforce_rate_limit)],
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)


def split_csv(raw: Optional[str]) -> Optional[list[str]]:
    """Split a comma-separated filter; blank items dropped, empty means no filter."""
    if not raw:
        return None
    items = [item.strip() for item in raw.split(",") if item.strip()]
    return items or None


@router.get(
    "/overview",
    response_model=OverviewResponse,
    summary="KPI overview with comparison and insights",
)
def get_overview(
    workspace_id: str,
    date_from: Optional[str] = Query(None, description="Inclusive start, YYYY-MM-DD"),
    date_to: Optional[str] = Query(None, description="Inclusive end, YYYY-MM-DD"),
    date_preset: Optional[str] = Query(
        None, description="today|yesterday|last_7_days|last_30_days|last_90_days"
    ),
    comparison_mode: Optional[str] = Query(
        None, description="vs_previous_period|vs_same_period_last_year"
    ),
    platforms: Optional[str] = Query(None, description="Comma-separated platforms"),
    accounts: Optional[str] = Query(None, description="Comma-separated account IDs"),
    store: MetricsStore = Depends(get_store),
) -> dict:
    """Summed spend/revenue, derived KPIs, optional period deltas and insights."""
    date_range = resolve_date_range(
        date_preset=date_preset,
        date_from=date_from,
        date_to=date_to,
        comparison_mode=comparison_mode,
    )
    logger.debug(
        "Overview request: workspace=%s window=%s..%s comparison=%s..%s",
        workspace_id,
        date_range.start,
        date_range.end,
        date_range.comparison_start,
        date_range.comparison_end,
    )
    overview = OverviewAggregator(store).build(
        workspace_id,
        date_range,
        platforms=split_csv(platforms),
        accounts=split_csv(accounts),
    )
    return overview.to_response()


@router.get(
    "/comparison",
    response_model=list[PlatformComparisonRow],
    summary="Cross-platform KPI comparison",
)
def get_platform_comparison(
    workspace_id: str,
    date_from: Optional[str] = Query(None),
    date_to: Optional[str] = Query(None),
    date_preset: Optional[str] = Query(None),
    sort_by: str = Query("spend"),
    sort_order: str = Query("desc"),
    store: MetricsStore = Depends(get_store),
) -> list[dict]:
    start, end = resolve_window(date_preset, date_from, date_to)
    return breakdowns.platform_comparison(
        store, workspace_id, start, end, sort_by=sort_by, sort_order=sort_order
    )


@router.get(
    "/trends",
    response_model=list[TrendRow],
    summary="KPIs grouped by date, platform or account",
)
def get_trends(
    workspace_id: str,
    date_from: Optional[str] = Query(None),
    date_to: Optional[str] = Query(None),
    date_preset: Optional[str] = Query(None),
    group_by: str = Query("date", description="date|platform|account"),
    platforms: Optional[str] = Query(None, description="Comma-separated platforms"),
    store: MetricsStore = Depends(get_store),
) -> list[dict]:
    start, end = resolve_window(date_preset, date_from, date_to)
    return breakdowns.trends(
        store,
        workspace_id,
        start,
        end,
        group_by=group_by,
        platforms=split_csv(platforms),
    )


@router.get(
    "/daily",
    response_model=DailyMetricsPage,
    summary="Paginated raw daily metric records",
)
def get_daily_metrics(
    workspace_id: str,
    date_from: Optional[str] = Query(None),
    date_to: Optional[str] = Query(None),
    platform: Optional[str] = Query(None),
    account_id: Optional[str] = Query(None),
    campaign_id: Optional[str] = Query(None),
    adset_id: Optional[str] = Query(None),
    ad_id: Optional[str] = Query(None),
    limit: int = Query(10),
    offset: int = Query(0),
    sort_by: str = Query("date"),
    sort_order: str = Query("desc"),
    store: MetricsStore = Depends(get_store),
) -> dict:
    return breakdowns.daily_metrics(
        store,
        workspace_id,
        filters={
            "platform": platform,
            "account_id": account_id,
            "campaign_id": campaign_id,
            "adset_id": adset_id,
            "ad_id": ad_id,
        },
        date_from=parse_iso_date(date_from, "date_from") if date_from else None,
        date_to=parse_iso_date(date_to, "date_to") if date_to else None,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )
