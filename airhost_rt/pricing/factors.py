"""
Pricing factor model.

Five independent multipliers, each 1.0 when neutral. The pure functions
below compute a factor from already-fetched inputs; the providers fetch
those inputs and guarantee that a failing source resolves to exactly 1.0.
"""

import asyncio
import random
from datetime import date
from typing import Any, Awaitable, Callable, Optional, Protocol, Union

import structlog

from ..config.defaults import DemandParams, EventImpactParams, PricingParams, SeasonParams
from ..errors import MalformedSourceDataError
from ..models.pricing import NEUTRAL, PricingFactors
from ..sources.interfaces import PricingDataSource
from ..utils.time import days_until, utc_now

logger = structlog.get_logger(__name__)

NoiseFn = Callable[[], float]
TodayFn = Callable[[], date]


def seasonal_factor(day: date, params: Optional[SeasonParams] = None) -> float:
    """Month-of-year season multiplier with a weekend premium."""
    params = params or SeasonParams()

    if day.month in params.high_months:
        factor = params.high_multiplier
    elif day.month in params.medium_months:
        factor = params.medium_multiplier
    else:
        factor = params.low_multiplier

    if day.weekday() in params.weekend_days:
        factor *= params.weekend_premium

    return factor


def lead_time_factor(lead_days: int, params: Optional[DemandParams] = None) -> float:
    """Demand rises as the date approaches."""
    params = params or DemandParams()

    if lead_days <= params.last_minute_days:
        return params.last_minute_multiplier
    if lead_days <= params.short_term_days:
        return params.short_term_multiplier
    if lead_days <= params.normal_days:
        return params.normal_multiplier
    return params.early_booking_multiplier


def demand_factor(lead_days: int, noise: float = 1.0, params: Optional[DemandParams] = None) -> float:
    """Lead-time curve perturbed by market noise, clamped to the demand bounds."""
    params = params or DemandParams()
    factor = lead_time_factor(lead_days, params) * noise
    return max(params.min_factor, min(params.max_factor, factor))


def competition_factor(competitor_prices: list[float], base_price: float) -> float:
    """Respond to the average competitor price relative to our base price."""
    if not competitor_prices:
        return NEUTRAL

    if base_price <= 0:
        raise MalformedSourceDataError(
            "Base price must be positive to compare against competitors",
            source="competition",
            raw_data=str(base_price)
        )

    average = sum(competitor_prices) / len(competitor_prices)
    ratio = average / base_price

    if ratio > 1.2:
        return 1.15
    if ratio > 1.05:
        return 1.05
    if ratio < 0.8:
        return 0.9
    return NEUTRAL


def historical_factor(records: list[dict[str, float]]) -> float:
    """Reward strong past occupancy on comparable dates, discount weak occupancy."""
    if not records:
        return NEUTRAL

    avg_occupancy = sum(r["occupancy"] for r in records) / len(records)
    avg_revenue = sum(r["revenue"] for r in records) / len(records)

    if avg_occupancy > 0.8 and avg_revenue > 0:
        return 1.1
    if avg_occupancy < 0.5:
        return 0.9
    return NEUTRAL


def events_factor(events: list[dict[str, Any]], params: Optional[EventImpactParams] = None) -> float:
    """Stack local event impacts multiplicatively, capped."""
    params = params or EventImpactParams()
    impacts = {"high": params.high, "medium": params.medium, "low": params.low}

    factor = NEUTRAL
    for event in events:
        factor *= impacts.get(event.get("impact"), NEUTRAL)

    return min(factor, params.cap)


class FactorProvider(Protocol):
    """Produces the five pricing factors for one property and date."""

    async def compute(self, property_id: str, day: date, base_price: float) -> PricingFactors:
        ...


class MarketFactorProvider:
    """
    Factors computed from a pricing data source.

    Demand noise comes from ``noise_fn``; by default it is drawn uniformly
    from the configured noise band using ``rng``. Pass ``noise_fn=lambda: 1.0``
    for a deterministic provider.
    """

    def __init__(
        self,
        source: PricingDataSource,
        params: Optional[PricingParams] = None,
        rng: Optional[random.Random] = None,
        noise_fn: Optional[NoiseFn] = None,
        today_fn: Optional[TodayFn] = None
    ):
        self.source = source
        self.params = params or PricingParams()
        self.rng = rng or random.Random()
        self.noise_fn = noise_fn or self._uniform_noise
        self.today_fn = today_fn or (lambda: utc_now().date())
        self.logger = logger

    def _uniform_noise(self) -> float:
        return self.rng.uniform(self.params.demand.noise_low, self.params.demand.noise_high)

    async def seasonal(self, day: date) -> float:
        return seasonal_factor(day, self.params.season)

    async def demand(self, day: date) -> float:
        lead_days = days_until(day, self.today_fn())
        return demand_factor(lead_days, self.noise_fn(), self.params.demand)

    async def competition(self, property_id: str, day: date, base_price: float) -> float:
        prices = await self.source.fetch_competitor_prices(property_id, day)
        return competition_factor(prices, base_price)

    async def historical(self, property_id: str, day: date) -> float:
        records = await self.source.fetch_historical_performance(property_id, day)
        return historical_factor(records)

    async def events(self, property_id: str, day: date) -> float:
        events = await self.source.fetch_local_events(property_id, day)
        return events_factor(events, self.params.events)

    async def _resilient(self, name: str, property_id: str, day: date,
                         factor: Awaitable[float]) -> float:
        """Await one factor, replacing any failure with the neutral value."""
        try:
            return float(await factor)
        except Exception as e:
            self.logger.warning(
                "Pricing factor unavailable, using neutral value",
                factor=name,
                property_id=property_id,
                date=day.isoformat(),
                error=str(e),
                error_type=type(e).__name__
            )
            return NEUTRAL

    async def compute(self, property_id: str, day: date, base_price: float) -> PricingFactors:
        seasonal, demand, competition, historical, events = await asyncio.gather(
            self._resilient("seasonal", property_id, day, self.seasonal(day)),
            self._resilient("demand", property_id, day, self.demand(day)),
            self._resilient("competition", property_id, day,
                            self.competition(property_id, day, base_price)),
            self._resilient("historical", property_id, day, self.historical(property_id, day)),
            self._resilient("events", property_id, day, self.events(property_id, day)),
        )

        return PricingFactors(
            seasonal=seasonal,
            demand=demand,
            competition=competition,
            historical=historical,
            events=events,
        )


class FixedFactorProvider:
    """
    Deterministic factors, either one set for every date or a per-date mapping.

    Dates missing from the mapping get the default factors.
    """

    def __init__(
        self,
        factors: Union[PricingFactors, dict[str, float], None] = None,
        by_date: Optional[dict[date, PricingFactors]] = None
    ):
        if isinstance(factors, dict):
            factors = PricingFactors(**factors)
        self.factors = factors or PricingFactors()
        self.by_date = dict(by_date or {})

    async def compute(self, property_id: str, day: date, base_price: float) -> PricingFactors:
        return self.by_date.get(day, self.factors)
