"""Data models for dashboard snapshots"""

from dataclasses import asdict, dataclass, field
from typing import Any, Optional


@dataclass
class TopPerformer:
    name: str
    revenue: float
    occupancy: float


@dataclass
class PropertyMetrics:
    """Property counts, occupancy and ratings for one owner"""
    total: int = 0
    active: int = 0
    occupancy_rate: float = 0.0
    average_rating: float = 0.0
    top_performer: Optional[TopPerformer] = None
    needs_attention: list[dict[str, str]] = field(default_factory=list)

    @classmethod
    def empty(cls) -> "PropertyMetrics":
        return cls()


@dataclass
class ReservationMetrics:
    """Reservation counts and revenue by period for one owner"""
    total: int = 0
    active: int = 0
    confirmed: int = 0
    checked_in: int = 0
    completed: int = 0
    cancelled: int = 0
    today_revenue: float = 0.0
    week_revenue: float = 0.0
    month_revenue: float = 0.0
    year_revenue: float = 0.0
    today_checkins: int = 0
    today_checkouts: int = 0
    revenue_growth: float = 0.0
    conversion_rate: float = 0.0

    @classmethod
    def empty(cls) -> "ReservationMetrics":
        return cls()


@dataclass
class ChannelMetrics:
    """Per-channel bookings/revenue and sync status"""
    channels: dict[str, dict[str, float]] = field(default_factory=dict)
    status: dict[str, str] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "ChannelMetrics":
        return cls(status={"sync": "unknown"})


def build_dashboard_snapshot(
    properties: PropertyMetrics,
    reservations: ReservationMetrics,
    channels: ChannelMetrics,
    recent_activity: list[dict[str, Any]],
    alerts: list[dict[str, Any]],
    timestamp: str,
    degraded: Optional[list[str]] = None
) -> dict[str, Any]:
    """Assemble the dashboard payload from its sub-aggregations"""
    top = asdict(properties.top_performer) if properties.top_performer else None

    return {
        "overview": {
            "total_properties": properties.total,
            "active_reservations": reservations.active,
            "monthly_revenue": reservations.month_revenue,
            "occupancy_rate": properties.occupancy_rate,
            "average_rating": properties.average_rating,
            "today_checkins": reservations.today_checkins,
            "today_checkouts": reservations.today_checkouts,
        },
        "revenue": {
            "today": reservations.today_revenue,
            "week": reservations.week_revenue,
            "month": reservations.month_revenue,
            "year": reservations.year_revenue,
            "growth": reservations.revenue_growth,
        },
        "bookings": {
            "total": reservations.total,
            "confirmed": reservations.confirmed,
            "checked_in": reservations.checked_in,
            "completed": reservations.completed,
            "cancelled": reservations.cancelled,
            "conversion_rate": reservations.conversion_rate,
        },
        "properties": {
            "total": properties.total,
            "active": properties.active,
            "average_occupancy": properties.occupancy_rate,
            "top_performer": top,
            "needs_attention": list(properties.needs_attention),
        },
        "channels": {
            **channels.channels,
            "sync_status": dict(channels.status),
        },
        "recent_activity": recent_activity,
        "alerts": alerts,
        "degraded": sorted(degraded or []),
        "timestamp": timestamp,
    }
