"""Pytest configuration and shared fixtures."""

import json
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import pytest

from airhost_rt.errors import AuthError, DataSourceUnavailableError
from airhost_rt.realtime.registry import Connection, ConnectionRegistry


class FakeTransport:
    """Records frames sent to a client; can be told to fail."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[Dict[str, Any]] = []
        self.closed = False

    async def send(self, message: str) -> None:
        if self.fail:
            raise ConnectionResetError("peer went away")
        self.sent.append(json.loads(message))

    async def close(self) -> None:
        self.closed = True

    def of_type(self, message_type: str) -> List[Dict[str, Any]]:
        return [m for m in self.sent if m["type"] == message_type]

    @property
    def last(self) -> Dict[str, Any]:
        return self.sent[-1]


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StaticVerifier:
    """Identity verifier backed by a token -> user id table."""

    def __init__(self, tokens: Dict[str, str]):
        self.tokens = tokens
        self.calls = 0

    async def verify_token(self, token: str) -> Dict[str, Any]:
        self.calls += 1
        if token not in self.tokens:
            raise AuthError("Authentication failed", reason="invalid")
        return {"userId": self.tokens[token]}


class FakePricingSource:
    """Pricing data source with fixed answers and switchable failures."""

    def __init__(
        self,
        base_price: float = 100.0,
        competitor_prices: Optional[List[float]] = None,
        history: Optional[List[Dict[str, float]]] = None,
        events: Optional[List[Dict[str, Any]]] = None,
        failing: tuple = ()
    ):
        self.base_price = base_price
        self.competitor_prices = competitor_prices or []
        self.history = history or []
        self.events = events or []
        self.failing = set(failing)
        self.base_price_calls = 0

    def _check(self, name: str) -> None:
        if name in self.failing:
            raise DataSourceUnavailableError(f"{name} source down", source=name)

    async def fetch_base_price(self, property_id: str) -> float:
        self.base_price_calls += 1
        self._check("base_price")
        return self.base_price

    async def fetch_competitor_prices(self, property_id: str, day: date) -> List[float]:
        self._check("competition")
        return list(self.competitor_prices)

    async def fetch_historical_performance(self, property_id: str, day: date) -> List[Dict[str, float]]:
        self._check("historical")
        return list(self.history)

    async def fetch_local_events(self, property_id: str, day: date) -> List[Dict[str, Any]]:
        self._check("events")
        return list(self.events)


class FakeDashboardSource:
    """Dashboard source returning fixed records, or raising."""

    def __init__(self, inputs: Dict[str, Any], fail: bool = False):
        self.inputs = inputs
        self.fail = fail
        self.calls = 0

    async def fetch_dashboard_inputs(self, owner_id: str) -> Dict[str, Any]:
        self.calls += 1
        if self.fail:
            raise DataSourceUnavailableError("storage unavailable", source="dashboard")
        return self.inputs


NOW = datetime(2024, 5, 15, 12, 0, 0, tzinfo=timezone.utc)   # a Wednesday


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def verifier() -> StaticVerifier:
    return StaticVerifier({"token-alice": "alice", "token-bob": "bob"})


@pytest.fixture
def registry(verifier: StaticVerifier, clock: ManualClock) -> ConnectionRegistry:
    return ConnectionRegistry(verifier, clock=clock)


@pytest.fixture
def make_connection(registry: ConnectionRegistry) -> Callable[..., Connection]:
    """Admit a new connection backed by a FakeTransport."""
    def _make(fail: bool = False) -> Connection:
        return registry.admit(Connection(transport=FakeTransport(fail=fail)))
    return _make


@pytest.fixture
def transport_factory() -> Callable[..., FakeTransport]:
    return FakeTransport


@pytest.fixture
def pricing_source_factory() -> Callable[..., FakePricingSource]:
    return FakePricingSource


@pytest.fixture
def dashboard_inputs() -> Dict[str, Any]:
    """Records for one owner relative to NOW."""
    def ts(delta: timedelta) -> str:
        return (NOW + delta).isoformat()

    return {
        "properties": [
            {"name": "Casa del Mar", "is_active": True, "occupancy_rate": 80.0,
             "average_rating": 4.8, "total_revenue": 2900.0},
            {"name": "Villa Premium", "is_active": True, "occupancy_rate": 40.0,
             "average_rating": 4.6, "total_revenue": 900.0},
        ],
        "reservations": [
            # created today, checking in today
            {"status": "confirmed", "total_amount": 300.0, "check_in": ts(timedelta(hours=2)),
             "check_out": ts(timedelta(days=2)), "created_at": ts(timedelta(hours=-1)),
             "property_name": "Casa del Mar", "channel": "airbnb"},
            # created earlier this month, checking out today
            {"status": "checked_in", "total_amount": 500.0, "check_in": ts(timedelta(days=-3)),
             "check_out": ts(timedelta(hours=1)), "created_at": ts(timedelta(days=-10)),
             "property_name": "Villa Premium", "channel": "booking"},
            # created last month
            {"status": "completed", "total_amount": 400.0, "check_in": ts(timedelta(days=-40)),
             "check_out": ts(timedelta(days=-37)), "created_at": ts(timedelta(days=-20)),
             "property_name": "Casa del Mar", "channel": "direct"},
            {"status": "cancelled", "total_amount": 200.0, "check_in": ts(timedelta(days=20)),
             "check_out": ts(timedelta(days=22)), "created_at": ts(timedelta(days=-2)),
             "property_name": "Casa del Mar", "channel": "airbnb"},
        ],
        "channels": {
            "channels": {"airbnb": {"bookings": 2, "revenue": 500.0, "growth": 0.0}},
            "status": {"airbnb": "connected", "vrbo": "disconnected"},
        },
        "activity": [{"title": "New booking", "type": "booking"}],
    }


@pytest.fixture
def dashboard_source_factory() -> Callable[..., FakeDashboardSource]:
    return FakeDashboardSource
