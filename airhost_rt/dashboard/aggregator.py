"""Dashboard snapshot aggregation with per-section degradation"""

import asyncio
import time
from collections import defaultdict
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

import structlog

from ..cache import SnapshotCache
from ..config.defaults import CacheParams
from ..errors import MessageValidationError
from ..models.dashboard import (
    ChannelMetrics,
    PropertyMetrics,
    ReservationMetrics,
    build_dashboard_snapshot,
)
from ..sources.interfaces import DashboardSource
from ..utils.time import format_timestamp, parse_timestamp, utc_now
from . import metrics

logger = structlog.get_logger(__name__)

REPORT_TIMEFRAMES = ("month", "quarter")
MONTH_NAMES = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


class MetricsAggregator:
    """
    Builds one consistent dashboard snapshot per owner.

    The owner's records are fetched once per aggregation and shared by the
    sub-aggregations, which run concurrently. A sub-aggregation that fails,
    including because the fetch itself failed, contributes its neutral
    default and is listed under ``degraded``.
    """

    def __init__(
        self,
        source: DashboardSource,
        dashboard_cache: Optional[SnapshotCache] = None,
        report_cache: Optional[SnapshotCache] = None,
        params: Optional[CacheParams] = None,
        now_fn: Optional[Callable[[], datetime]] = None,
        connection_stats: Optional[Callable[[], dict[str, int]]] = None
    ):
        self.params = params or CacheParams()
        self.source = source
        self.dashboard_cache = dashboard_cache if dashboard_cache is not None else SnapshotCache(
            self.params.dashboard_ttl_seconds,
            max_entries=self.params.max_entries,
            single_flight=self.params.single_flight,
            name="dashboard",
        )
        self.report_cache = report_cache if report_cache is not None else SnapshotCache(
            self.params.report_ttl_seconds,
            max_entries=self.params.max_entries,
            single_flight=self.params.single_flight,
            name="report",
        )
        self.now_fn = now_fn or utc_now
        self.connection_stats = connection_stats or (lambda: {"total": 0, "authenticated": 0})
        self.started_at = time.monotonic()
        self.last_update: Optional[str] = None
        self.last_degraded: list[str] = []
        self.logger = logger

    async def get_dashboard_data(self, owner_id: str) -> dict[str, Any]:
        """
        Dashboard snapshot for one owner, served from cache within the TTL.

        The returned dict carries ``from_cache``; the cached payload itself
        is never mutated.
        """
        result = await self.dashboard_cache.get_or_compute(
            f"dashboard_{owner_id}",
            lambda: self._build_dashboard(owner_id),
        )

        if result.from_cache:
            self.logger.debug("Returning cached dashboard data", owner_id=owner_id)

        return {**result.payload, "from_cache": result.from_cache}

    async def _build_dashboard(self, owner_id: str) -> dict[str, Any]:
        started = time.perf_counter()
        now = self.now_fn()
        inputs = asyncio.ensure_future(self.source.fetch_dashboard_inputs(owner_id))
        degraded: list[str] = []

        try:
            properties, reservations, channels, activity, alerts = await asyncio.gather(
                self._section("properties", owner_id, degraded, PropertyMetrics.empty,
                              self._properties(inputs)),
                self._section("reservations", owner_id, degraded, ReservationMetrics.empty,
                              self._reservations(inputs, now)),
                self._section("channels", owner_id, degraded, ChannelMetrics.empty,
                              self._channels(inputs)),
                self._section("recent_activity", owner_id, degraded, list,
                              self._activity(inputs)),
                self._section("alerts", owner_id, degraded, list,
                              self._alerts(inputs)),
            )
        finally:
            if not inputs.done():
                inputs.cancel()

        timestamp = format_timestamp(now)
        snapshot = build_dashboard_snapshot(
            properties, reservations, channels, activity, alerts,
            timestamp=timestamp,
            degraded=degraded,
        )
        snapshot["performance"] = {
            "response_time_ms": round((time.perf_counter() - started) * 1000, 1),
            "uptime_seconds": round(time.monotonic() - self.started_at),
            "last_sync": timestamp,
        }

        self.last_update = timestamp
        self.last_degraded = sorted(degraded)
        self.logger.info(
            "Dashboard data generated",
            owner_id=owner_id,
            degraded=sorted(degraded)
        )
        return snapshot

    async def _section(self, name: str, owner_id: str, degraded: list[str],
                       default: Callable[[], Any], compute: Awaitable[Any]) -> Any:
        try:
            return await compute
        except Exception as e:
            degraded.append(name)
            self.logger.warning(
                "Dashboard section unavailable, using default",
                section=name,
                owner_id=owner_id,
                error=str(e),
                error_type=type(e).__name__
            )
            return default()

    async def _properties(self, inputs: Awaitable[dict[str, Any]]) -> PropertyMetrics:
        return metrics.property_metrics((await inputs)["properties"])

    async def _reservations(self, inputs: Awaitable[dict[str, Any]], now: datetime) -> ReservationMetrics:
        return metrics.reservation_metrics((await inputs)["reservations"], now)

    async def _channels(self, inputs: Awaitable[dict[str, Any]]) -> ChannelMetrics:
        return metrics.channel_metrics((await inputs)["channels"])

    async def _activity(self, inputs: Awaitable[dict[str, Any]]) -> list[dict[str, Any]]:
        return metrics.recent_activity((await inputs)["activity"])

    async def _alerts(self, inputs: Awaitable[dict[str, Any]]) -> list[dict[str, Any]]:
        data = await inputs
        return metrics.build_alerts(data.get("channels", {}), data.get("properties", []))

    async def get_business_report(self, owner_id: str, timeframe: str = "month",
                                  year: Optional[int] = None) -> dict[str, Any]:
        """
        Revenue report for one calendar year, served from the report cache.

        Raises:
            MessageValidationError: If the timeframe is not supported
        """
        if timeframe not in REPORT_TIMEFRAMES:
            raise MessageValidationError(
                f"Unsupported report timeframe: {timeframe}",
                field="timeframe"
            )
        if year is None:
            year = self.now_fn().year

        result = await self.report_cache.get_or_compute(
            f"report_{owner_id}_{timeframe}_{year}",
            lambda: self._build_report(owner_id, timeframe, year),
        )
        return {**result.payload, "from_cache": result.from_cache}

    async def _build_report(self, owner_id: str, timeframe: str, year: int) -> dict[str, Any]:
        data = await self.source.fetch_dashboard_inputs(owner_id)

        booked = []
        for r in data.get("reservations", []):
            created = parse_timestamp(r.get("created_at"))
            if created is not None and created.year == year and r.get("status") != "cancelled":
                booked.append((r, created))

        if timeframe == "month":
            labels = list(MONTH_NAMES)
            bucket_of = lambda ts: ts.month - 1
        else:
            labels = ["Q1", "Q2", "Q3", "Q4"]
            bucket_of = lambda ts: (ts.month - 1) // 3

        periods = [0.0] * len(labels)
        by_property: dict[str, float] = defaultdict(float)
        by_channel: dict[str, float] = defaultdict(float)
        nights = 0

        for r, created in booked:
            amount = float(r.get("total_amount") or 0)
            periods[bucket_of(created)] += amount
            by_property[r.get("property_name", "unknown")] += amount
            by_channel[r.get("channel", "unknown")] += amount
            nights += metrics.reservation_nights(r)

        total_revenue = sum(periods)
        properties = data.get("properties", [])
        occupancy = (sum(float(p.get("occupancy_rate") or 0) for p in properties) / len(properties)
                     if properties else 0.0)

        revenue_by_period = []
        previous = None
        for label, revenue in zip(labels, periods):
            growth = round((revenue - previous) / previous * 100, 1) if previous else 0.0
            revenue_by_period.append({"period": label, "revenue": round(revenue, 2), "growth": growth})
            previous = revenue

        self.logger.info("Business report generated", owner_id=owner_id,
                         timeframe=timeframe, year=year)

        return {
            "timeframe": timeframe,
            "year": year,
            "generated_at": format_timestamp(),
            "executive_summary": {
                "total_revenue": round(total_revenue, 2),
                "total_bookings": len(booked),
                "average_occupancy": round(occupancy, 1),
                "average_daily_rate": round(total_revenue / nights, 2) if nights else 0.0,
            },
            "revenue_analysis": {
                "by_period": revenue_by_period,
                "by_property": metrics.share_of(by_property, "name"),
                "by_channel": metrics.share_of(by_channel, "channel"),
            },
        }

    async def get_realtime_metrics(self, owner_id: str) -> dict[str, dict[str, Any]]:
        """The ``dashboard_metrics`` and ``system_status`` payloads pushed to one owner."""
        dashboard = await self.get_dashboard_data(owner_id)
        overview = dashboard["overview"]

        return {
            "dashboard_metrics": {
                "today_revenue": dashboard["revenue"]["today"],
                "active_reservations": overview["active_reservations"],
                "occupancy_rate": overview["occupancy_rate"],
                "today_checkins": overview["today_checkins"],
                "today_checkouts": overview["today_checkouts"],
                "timestamp": dashboard["timestamp"],
            },
            "system_status": {
                "status": "degraded" if dashboard["degraded"] else "operational",
                "degraded": dashboard["degraded"],
                "connections": self.connection_stats(),
                "timestamp": format_timestamp(),
            },
        }

    def get_live_stats(self) -> dict[str, Any]:
        return {
            "active_connections": self.connection_stats().get("total", 0),
            "system_status": "operational",
            "last_update": self.last_update,
            "uptime_seconds": round(time.monotonic() - self.started_at),
        }

    def get_realtime_update(self) -> dict[str, Any]:
        """
        The ``dashboard_realtime`` payload shared by every subscriber.

        Carries no owner data: live stats, an alert when the most recent
        snapshot was degraded, and the most recent refresh as activity.
        """
        stats = self.get_live_stats()
        alerts = []
        if self.last_degraded:
            alerts.append({
                "type": "warning",
                "message": f"Dashboard data degraded: {', '.join(self.last_degraded)}",
                "timestamp": self.last_update,
            })

        activity = None
        if self.last_update is not None:
            activity = {"type": "sync", "title": "Dashboard refreshed", "time": self.last_update}

        return {
            "metrics": {
                **stats,
                "cache_hits": self.dashboard_cache.hits,
                "cache_misses": self.dashboard_cache.misses,
                "timestamp": format_timestamp(),
            },
            "alerts": alerts,
            "activity": activity,
        }

    def clear(self) -> None:
        self.dashboard_cache.clear()
        self.report_cache.clear()
