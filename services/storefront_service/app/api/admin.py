"""Back-office routes: notification feed and dashboard statistics."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from ..dashboard import DashboardAggregator
from ..dependencies import get_admin_feed, get_dashboard
from ..feed import AdminNotificationFeed
from ..formatting import format_price
from ..schemas import DashboardStatsResponse, FeedEntryResponse

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/notifications", response_model=list[FeedEntryResponse])
async def list_notifications(feed: AdminNotificationFeed = Depends(get_admin_feed)) -> list[FeedEntryResponse]:
    return [FeedEntryResponse.model_validate(entry) for entry in feed.entries()]


@router.delete("/notifications")
async def clear_notifications(feed: AdminNotificationFeed = Depends(get_admin_feed)) -> Response:
    feed.clear()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/stats", response_model=DashboardStatsResponse)
async def dashboard_stats(dashboard: DashboardAggregator = Depends(get_dashboard)) -> DashboardStatsResponse:
    stats = await dashboard.collect()
    return DashboardStatsResponse.model_validate({**stats, "formattedRevenue": format_price(stats["revenue"])})
