"""Admin dashboard counters."""

from __future__ import annotations

from datetime import datetime, timedelta

from psychic_homily.interfaces.report_provider import IStatsProvider
from psychic_homily.models.report import DashboardStats
from psychic_homily.utils.dates import utc_now

_ACTIVITY_WINDOW = timedelta(days=7)


class AdminStatsService:
    def __init__(self, stats_store: IStatsProvider) -> None:
        self._stats_store = stats_store

    async def get_dashboard_stats(self, now: datetime | None = None) -> DashboardStats:
        return await self._stats_store.get_dashboard_stats((now or utc_now()) - _ACTIVITY_WINDOW)
