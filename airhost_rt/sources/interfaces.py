"""
Collaborator interfaces consumed by the realtime and pricing core.

Storage, identity and market data live outside this package. The core only
talks to them through these protocols, and every call is awaited so a slow
source never blocks the event loop.
"""

from datetime import date
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class IdentityVerifier(Protocol):
    """Verifies a credential token presented by a realtime client."""

    async def verify_token(self, token: str) -> dict[str, Any]:
        """
        Return the verified identity, at least ``{"userId": ...}``.

        Raises:
            AuthError: If the token is invalid or expired
        """
        ...


@runtime_checkable
class DashboardSource(Protocol):
    """Supplies raw records for one owner's dashboard."""

    async def fetch_dashboard_inputs(self, owner_id: str) -> dict[str, Any]:
        """
        Return ``{"properties", "reservations", "channels", "activity"}``.

        properties: list of dicts with name, is_active, occupancy_rate,
            average_rating, total_revenue
        reservations: list of dicts with status, total_amount, check_in,
            check_out, created_at, property_name, channel
        channels: dict with "channels" (per-channel figures) and "status"
        activity: list of recent activity entries
        """
        ...


@runtime_checkable
class PricingDataSource(Protocol):
    """Supplies the market data the pricing factors are built from."""

    async def fetch_base_price(self, property_id: str) -> float:
        ...

    async def fetch_competitor_prices(self, property_id: str, day: date) -> list[float]:
        ...

    async def fetch_historical_performance(self, property_id: str, day: date) -> list[dict[str, float]]:
        """Records with ``occupancy`` (0-1) and ``revenue``."""
        ...

    async def fetch_local_events(self, property_id: str, day: date) -> list[dict[str, Any]]:
        """Events with an ``impact`` of high, medium or low."""
        ...
