"""Platform comparison, trends and daily listing reports."""
import math
from datetime import date
from typing import Any, Optional, Sequence

from ..errors import ValidationError
from ..storage.metrics_store import (
    DAILY_SORT_COLUMNS,
    GROUP_BY_FIELDS,
    MetricsStore,
)
from .kpis import compute_snapshot, round2
from .overview import require_workspace


PLATFORM_SORT_KEYS = (
    "platform",
    "spend",
    "revenue",
    "roas",
    "cpa",
    "ctr",
    "cpm",
    "cvr",
    "impressions",
    "clicks",
    "conversions",
)

MAX_PAGE_SIZE = 500


def _descending(sort_order: str) -> bool:
    order = sort_order.lower()
    if order not in {"asc", "desc"}:
        raise ValidationError(
            f"sort_order must be 'asc' or 'desc', got '{sort_order}'",
            error_code="INVALID_SORT",
        )
    return order == "desc"


def _snapshot_fields(totals) -> dict[str, Any]:
    snapshot = compute_snapshot(totals)
    return {
        "spend": round2(snapshot.spend),
        "revenue": round2(snapshot.revenue),
        "roas": snapshot.roas,
        "cpa": snapshot.cpa,
        "ctr": snapshot.ctr,
        "cpm": snapshot.cpm,
        "cvr": snapshot.cvr,
        "impressions": snapshot.impressions,
        "clicks": snapshot.clicks,
        "conversions": snapshot.conversions,
    }


def platform_comparison(
    store: MetricsStore,
    workspace_id: str,
    start: date,
    end: date,
    sort_by: str = "spend",
    sort_order: str = "desc",
) -> list[dict[str, Any]]:
    """Per-platform KPIs with account/campaign counts, sorted.

    Raises:
        ValidationError: Unknown sort key or order
        NotFoundError: Unknown workspace
    """
    if sort_by not in PLATFORM_SORT_KEYS:
        raise ValidationError(
            f"sort_by must be one of {', '.join(PLATFORM_SORT_KEYS)}",
            error_code="INVALID_SORT",
        )
    descending = _descending(sort_order)

    require_workspace(store, workspace_id)

    rows = []
    for item in store.platform_totals(workspace_id, start, end):
        row = {"platform": item.platform, **_snapshot_fields(item.totals)}
        row["account_count"] = item.account_count
        row["campaign_count"] = item.campaign_count
        rows.append(row)

    rows.sort(key=lambda row: (row[sort_by], row["platform"]), reverse=descending)
    return rows


def trends(
    store: MetricsStore,
    workspace_id: str,
    start: date,
    end: date,
    group_by: str = "date",
    platforms: Optional[Sequence[str]] = None,
) -> list[dict[str, Any]]:
    """KPIs bucketed by date, platform or account.

    Raises:
        ValidationError: Unknown group_by
        NotFoundError: Unknown workspace
    """
    if group_by not in GROUP_BY_FIELDS:
        raise ValidationError(
            f"group_by must be one of {', '.join(GROUP_BY_FIELDS)}",
            error_code="INVALID_GROUP_BY",
        )

    require_workspace(store, workspace_id)

    results = []
    for bucket in store.grouped_totals(workspace_id, start, end, group_by, platforms):
        row: dict[str, Any] = {"date": bucket.date, "platform": bucket.platform}
        if group_by == "account":
            row["account_id"] = bucket.account_id
            row["account_name"] = bucket.account_name
        row.update(_snapshot_fields(bucket.totals))
        results.append(row)
    return results


def daily_metrics(
    store: MetricsStore,
    workspace_id: str,
    filters: dict[str, Optional[str]],
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    sort_by: str = "date",
    sort_order: str = "desc",
    limit: int = 10,
    offset: int = 0,
) -> dict[str, Any]:
    """Paginated raw daily rows.

    Raises:
        ValidationError: Bad pagination, sort or date bounds
        NotFoundError: Unknown workspace
    """
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError(
            f"limit must be between 1 and {MAX_PAGE_SIZE}",
            error_code="INVALID_PAGINATION",
        )
    if offset < 0:
        raise ValidationError("offset must be non-negative", error_code="INVALID_PAGINATION")
    if sort_by not in DAILY_SORT_COLUMNS:
        raise ValidationError(
            f"sort_by must be one of {', '.join(DAILY_SORT_COLUMNS)}",
            error_code="INVALID_SORT",
        )
    descending = _descending(sort_order)
    if date_from and date_to and date_from > date_to:
        raise ValidationError(
            "date_from must not be after date_to", error_code="INVALID_DATE_RANGE"
        )

    require_workspace(store, workspace_id)

    rows, total = store.daily_rows(
        workspace_id,
        filters,
        date_from,
        date_to,
        sort_by,
        descending,
        limit,
        offset,
    )
    return {
        "data": rows,
        "pagination": {
            "page": offset // limit + 1,
            "per_page": limit,
            "total": total,
            "total_pages": math.ceil(total / limit),
        },
    }
