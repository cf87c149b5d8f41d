"""
Pure sub-aggregations over raw dashboard records.

Each function raises on records it cannot interpret; the aggregator turns
that into the section's neutral default.
"""

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

from ..errors import MalformedSourceDataError
from ..models.dashboard import ChannelMetrics, PropertyMetrics, ReservationMetrics, TopPerformer
from ..utils.time import parse_timestamp, start_of_day, start_of_month, start_of_week, start_of_year

LOW_OCCUPANCY_THRESHOLD = 50.0
MAX_ACTIVITY_ITEMS = 10


def _number(value: Any) -> float:
    return float(value or 0)


def property_metrics(properties: list[dict[str, Any]]) -> PropertyMetrics:
    """Counts, average occupancy and rating, top performer and low-occupancy properties."""
    total = len(properties)
    if not total:
        return PropertyMetrics.empty()

    active = sum(1 for p in properties if p.get("is_active"))
    occupancy = sum(_number(p.get("occupancy_rate")) for p in properties) / total
    rating = sum(_number(p.get("average_rating")) for p in properties) / total

    top = None
    for prop in properties:
        revenue = _number(prop.get("total_revenue"))
        if revenue > (top.revenue if top else 0):
            top = TopPerformer(
                name=prop["name"],
                revenue=revenue,
                occupancy=_number(prop.get("occupancy_rate")),
            )

    needs_attention = [
        {"name": p["name"], "issue": "Low occupancy rate"}
        for p in properties
        if _number(p.get("occupancy_rate")) < LOW_OCCUPANCY_THRESHOLD
    ]

    return PropertyMetrics(
        total=total,
        active=active,
        occupancy_rate=round(occupancy, 1),
        average_rating=round(rating, 1),
        top_performer=top,
        needs_attention=needs_attention,
    )


def _revenue_since(reservations: Iterable[tuple[dict[str, Any], datetime]], since: datetime,
                   until: Optional[datetime] = None) -> float:
    return sum(
        _number(r.get("total_amount"))
        for r, created in reservations
        if created >= since and (until is None or created < until)
    )


def reservation_metrics(reservations: list[dict[str, Any]], now: datetime) -> ReservationMetrics:
    """Status counts, revenue by creation period, today's movements and conversion rate."""
    total = len(reservations)
    if not total:
        return ReservationMetrics.empty()

    by_status: dict[str, int] = defaultdict(int)
    for r in reservations:
        by_status[r.get("status", "unknown")] += 1

    dated = []
    for r in reservations:
        created = parse_timestamp(r.get("created_at"))
        if created is None:
            raise MalformedSourceDataError(
                "Reservation has no usable created_at",
                source="reservations",
                raw_data=str(r.get("created_at")),
                expected_format="ISO8601 timestamp"
            )
        dated.append((r, created))

    today = start_of_day(now)
    tomorrow = today + timedelta(days=1)
    month_start = start_of_month(now)
    previous_month_start = start_of_month(month_start - timedelta(days=1))

    month_revenue = _revenue_since(dated, month_start)
    previous_month_revenue = _revenue_since(dated, previous_month_start, month_start)
    growth = 0.0
    if previous_month_revenue > 0:
        growth = round((month_revenue - previous_month_revenue) / previous_month_revenue * 100, 1)

    def _is_today(value: Any) -> bool:
        ts = parse_timestamp(value)
        return ts is not None and today <= ts < tomorrow

    cancelled = by_status["cancelled"]

    return ReservationMetrics(
        total=total,
        active=by_status["confirmed"],
        confirmed=by_status["confirmed"],
        checked_in=by_status["checked_in"],
        completed=by_status["completed"],
        cancelled=cancelled,
        today_revenue=_revenue_since(dated, today),
        week_revenue=_revenue_since(dated, start_of_week(now)),
        month_revenue=month_revenue,
        year_revenue=_revenue_since(dated, start_of_year(now)),
        today_checkins=sum(1 for r in reservations if _is_today(r.get("check_in"))),
        today_checkouts=sum(1 for r in reservations if _is_today(r.get("check_out"))),
        revenue_growth=growth,
        conversion_rate=round((total - cancelled) / total * 100, 1),
    )


def channel_metrics(channels: dict[str, Any]) -> ChannelMetrics:
    if "status" not in channels:
        raise MalformedSourceDataError(
            "Channel data has no sync status",
            source="channels",
            expected_format="{channels, status}"
        )

    return ChannelMetrics(
        channels={name: dict(figures) for name, figures in channels.get("channels", {}).items()},
        status=dict(channels["status"]),
    )


def recent_activity(activity: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [dict(entry) for entry in activity[:MAX_ACTIVITY_ITEMS]]


def build_alerts(channels: dict[str, Any], properties: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Alerts for disconnected channels and properties with low occupancy."""
    alerts = []

    for name, status in channels.get("status", {}).items():
        if status != "connected":
            alerts.append({
                "type": "warning",
                "title": "Sync pending",
                "message": f"{name} is {status}",
                "action": "sync_channels",
            })

    low = [p["name"] for p in properties
           if p.get("is_active") and _number(p.get("occupancy_rate")) < LOW_OCCUPANCY_THRESHOLD]
    if low:
        alerts.append({
            "type": "info",
            "title": "Pricing opportunity",
            "message": f"Low occupancy at {', '.join(low)}",
            "action": "optimize_pricing",
        })

    return alerts


def reservation_nights(reservation: dict[str, Any]) -> int:
    check_in = parse_timestamp(reservation.get("check_in"))
    check_out = parse_timestamp(reservation.get("check_out"))
    if check_in is None or check_out is None:
        return 0
    return max((check_out.date() - check_in.date()).days, 0)


def share_of(rows: dict[str, float], key_name: str) -> list[dict[str, Any]]:
    """Rows sorted by revenue, each with its percentage of the total."""
    total = sum(rows.values())
    return [
        {
            key_name: key,
            "revenue": round(revenue, 2),
            "percentage": round(revenue / total * 100, 1) if total else 0.0,
        }
        for key, revenue in sorted(rows.items(), key=lambda item: item[1], reverse=True)
    ]
