"""
Demo data sources.

Seeded stand-ins for the storage and market-data collaborators, used by the
``--demo`` server mode and by tests that want realistic-looking records.
"""

import random
from datetime import date, timedelta
from typing import Any, Optional

from ..utils.time import utc_now

DEMO_PROPERTIES = [
    {"name": "Apartamento Centro", "is_active": True, "occupancy_rate": 95.0,
     "average_rating": 4.9, "total_revenue": 3250.0},
    {"name": "Casa del Mar", "is_active": True, "occupancy_rate": 82.0,
     "average_rating": 4.8, "total_revenue": 2890.0},
    {"name": "Estudio Moderno", "is_active": True, "occupancy_rate": 74.0,
     "average_rating": 4.7, "total_revenue": 1865.0},
    {"name": "Villa Premium", "is_active": True, "occupancy_rate": 42.0,
     "average_rating": 4.9, "total_revenue": 934.0},
    {"name": "Loft Universidad", "is_active": False, "occupancy_rate": 0.0,
     "average_rating": 0.0, "total_revenue": 0.0},
]

DEMO_CHANNELS = {
    "channels": {
        "airbnb": {"bookings": 45, "revenue": 8900, "growth": 12.3},
        "booking": {"bookings": 28, "revenue": 5400, "growth": 8.7},
        "direct": {"bookings": 15, "revenue": 2100, "growth": 25.1},
    },
    "status": {"airbnb": "connected", "booking": "connected", "vrbo": "disconnected"},
}

DEMO_ACTIVITY = [
    {"icon": "booking", "title": "New booking", "description": "Casa del Mar - 3 nights", "type": "booking"},
    {"icon": "message", "title": "Automatic message", "description": "Check-in instructions sent", "type": "message"},
    {"icon": "payment", "title": "Payment received", "description": "320 - Apartamento Centro", "type": "payment"},
    {"icon": "sync", "title": "Sync completed", "description": "Airbnb calendar updated", "type": "sync"},
    {"icon": "review", "title": "New review", "description": "5 stars", "type": "review"},
]

RESERVATION_STATUSES = ["confirmed", "confirmed", "checked_in", "completed", "completed", "cancelled"]
CHANNEL_NAMES = ["airbnb", "booking", "direct"]


class DemoDashboardSource:
    """Generates a plausible set of dashboard records per owner."""

    def __init__(self, seed: Optional[int] = None, reservation_count: int = 40):
        self.rng = random.Random(seed)
        self.reservation_count = reservation_count

    async def fetch_dashboard_inputs(self, owner_id: str) -> dict[str, Any]:
        now = utc_now()
        reservations = []

        for i in range(self.reservation_count):
            created = now - timedelta(days=self.rng.randint(0, 400), hours=self.rng.randint(0, 23))
            check_in = created + timedelta(days=self.rng.randint(1, 60))
            nights = self.rng.randint(1, 7)
            reservations.append({
                "id": f"{owner_id}-res-{i}",
                "status": self.rng.choice(RESERVATION_STATUSES),
                "total_amount": round(self.rng.uniform(80, 450) * nights, 2),
                "check_in": check_in.isoformat(),
                "check_out": (check_in + timedelta(days=nights)).isoformat(),
                "created_at": created.isoformat(),
                "property_name": self.rng.choice(DEMO_PROPERTIES)["name"],
                "channel": self.rng.choice(CHANNEL_NAMES),
            })

        return {
            "properties": [dict(p) for p in DEMO_PROPERTIES],
            "reservations": reservations,
            "channels": {
                "channels": {k: dict(v) for k, v in DEMO_CHANNELS["channels"].items()},
                "status": dict(DEMO_CHANNELS["status"]),
            },
            "activity": [dict(a) for a in DEMO_ACTIVITY],
        }


class DemoPricingDataSource:
    """Randomised market data within realistic ranges."""

    def __init__(self, seed: Optional[int] = None, base_prices: Optional[dict[str, float]] = None):
        self.rng = random.Random(seed)
        self.base_prices = dict(base_prices or {})

    async def fetch_base_price(self, property_id: str) -> float:
        # Stable per property so competition ratios are computed against one reference
        if property_id not in self.base_prices:
            self.base_prices[property_id] = round(100 + self.rng.random() * 200, 2)
        return self.base_prices[property_id]

    async def fetch_competitor_prices(self, property_id: str, day: date) -> list[float]:
        count = 3 + self.rng.randint(0, 4)
        return [round(80 + self.rng.random() * 300, 2) for _ in range(count)]

    async def fetch_historical_performance(self, property_id: str, day: date) -> list[dict[str, float]]:
        return [
            {"occupancy": 0.7 + self.rng.random() * 0.3, "revenue": 150 + self.rng.random() * 100},
            {"occupancy": 0.6 + self.rng.random() * 0.4, "revenue": 120 + self.rng.random() * 80},
        ]

    async def fetch_local_events(self, property_id: str, day: date) -> list[dict[str, Any]]:
        if self.rng.random() > 0.7:
            return [
                {"name": "Local festival", "impact": "high", "distance": 2},
                {"name": "Conference", "impact": "medium", "distance": 5},
            ]
        return []
