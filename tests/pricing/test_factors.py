"""Tests for the pricing factor functions and providers."""

from datetime import date

import pytest

from airhost_rt.errors import MalformedSourceDataError
from airhost_rt.models.pricing import PricingFactors
from airhost_rt.pricing.factors import (
    FixedFactorProvider,
    MarketFactorProvider,
    competition_factor,
    demand_factor,
    events_factor,
    historical_factor,
    lead_time_factor,
    seasonal_factor,
)


class TestSeasonalFactor:
    """Test month buckets and weekend premium."""

    def test_high_season_midweek(self) -> None:
        assert seasonal_factor(date(2024, 7, 10)) == pytest.approx(1.3)

    def test_medium_season_midweek(self) -> None:
        assert seasonal_factor(date(2024, 4, 10)) == pytest.approx(1.1)
        assert seasonal_factor(date(2024, 10, 16)) == pytest.approx(1.1)

    def test_low_season_midweek(self) -> None:
        assert seasonal_factor(date(2024, 1, 10)) == pytest.approx(0.85)

    def test_december_is_high_season(self) -> None:
        assert seasonal_factor(date(2024, 12, 11)) == pytest.approx(1.3)

    def test_friday_and_saturday_premium(self) -> None:
        assert seasonal_factor(date(2024, 7, 12)) == pytest.approx(1.3 * 1.15)   # Friday
        assert seasonal_factor(date(2024, 1, 13)) == pytest.approx(0.85 * 1.15)  # Saturday

    def test_sunday_has_no_premium(self) -> None:
        assert seasonal_factor(date(2024, 1, 14)) == pytest.approx(0.85)


class TestDemandFactor:
    """Test the lead-time curve and noise clamp."""

    @pytest.mark.parametrize("lead_days,expected", [
        (0, 1.25), (7, 1.25), (8, 1.10), (30, 1.10), (31, 1.00), (60, 1.00), (61, 0.95), (365, 0.95),
    ])
    def test_lead_time_curve(self, lead_days: int, expected: float) -> None:
        assert lead_time_factor(lead_days) == pytest.approx(expected)

    def test_noise_is_applied(self) -> None:
        assert demand_factor(45, noise=1.05) == pytest.approx(1.05)

    def test_clamped_to_upper_bound(self) -> None:
        assert demand_factor(0, noise=1.3) == pytest.approx(1.5)

    def test_clamped_to_lower_bound(self) -> None:
        assert demand_factor(90, noise=0.5) == pytest.approx(0.7)


class TestCompetitionFactor:
    """Test response to competitor pricing."""

    def test_no_competitors_is_neutral(self) -> None:
        assert competition_factor([], 100.0) == 1.0

    def test_competitors_much_higher(self) -> None:
        assert competition_factor([120.0, 140.0], 100.0) == 1.15

    def test_competitors_slightly_higher(self) -> None:
        assert competition_factor([110.0], 100.0) == 1.05

    def test_competitors_much_lower(self) -> None:
        assert competition_factor([60.0, 80.0], 100.0) == 0.9

    def test_competitors_in_line(self) -> None:
        assert competition_factor([95.0, 105.0], 100.0) == 1.0

    def test_non_positive_base_price_is_rejected(self) -> None:
        with pytest.raises(MalformedSourceDataError):
            competition_factor([100.0], 0.0)


class TestHistoricalFactor:
    """Test the occupancy-based historical factor."""

    def test_no_history_is_neutral(self) -> None:
        assert historical_factor([]) == 1.0

    def test_strong_occupancy_with_revenue(self) -> None:
        records = [{"occupancy": 0.9, "revenue": 150.0}, {"occupancy": 0.85, "revenue": 120.0}]
        assert historical_factor(records) == 1.1

    def test_strong_occupancy_without_revenue_is_neutral(self) -> None:
        assert historical_factor([{"occupancy": 0.95, "revenue": 0.0}]) == 1.0

    def test_weak_occupancy(self) -> None:
        assert historical_factor([{"occupancy": 0.3, "revenue": 80.0}]) == 0.9

    def test_missing_fields_raise(self) -> None:
        with pytest.raises(KeyError):
            historical_factor([{"occupancy": 0.9}])


class TestEventsFactor:
    """Test multiplicative event impacts."""

    def test_no_events_is_neutral(self) -> None:
        assert events_factor([]) == 1.0

    def test_impacts_multiply(self) -> None:
        events = [{"impact": "high"}, {"impact": "medium"}]
        assert events_factor(events) == pytest.approx(1.4 * 1.2)

    def test_capped(self) -> None:
        events = [{"impact": "high"}] * 3
        assert events_factor(events) == 2.0

    def test_unknown_impact_is_ignored(self) -> None:
        events = [{"impact": "catastrophic"}, {"impact": "low"}, {"name": "no impact"}]
        assert events_factor(events) == pytest.approx(1.1)


class TestMarketFactorProvider:
    """Test factor computation against a data source."""

    @pytest.mark.asyncio
    async def test_computes_all_factors(self, pricing_source_factory) -> None:
        source = pricing_source_factory(
            competitor_prices=[130.0],
            history=[{"occupancy": 0.9, "revenue": 200.0}],
            events=[{"impact": "low"}],
        )
        provider = MarketFactorProvider(
            source,
            noise_fn=lambda: 1.0,
            today_fn=lambda: date(2024, 7, 1),
        )

        factors = await provider.compute("prop-1", date(2024, 7, 3), base_price=100.0)

        assert factors.seasonal == pytest.approx(1.3)    # Wednesday in July
        assert factors.demand == pytest.approx(1.25)     # two days out
        assert factors.competition == 1.15
        assert factors.historical == 1.1
        assert factors.events == pytest.approx(1.1)

    @pytest.mark.asyncio
    async def test_failing_sources_resolve_to_neutral(self, pricing_source_factory) -> None:
        source = pricing_source_factory(
            competitor_prices=[130.0],
            failing=("competition", "historical", "events"),
        )
        provider = MarketFactorProvider(source, noise_fn=lambda: 1.0,
                                        today_fn=lambda: date(2024, 1, 1))

        factors = await provider.compute("prop-1", date(2024, 1, 10), base_price=100.0)

        assert factors.competition == 1.0
        assert factors.historical == 1.0
        assert factors.events == 1.0
        assert factors.seasonal == pytest.approx(0.85)

    @pytest.mark.asyncio
    async def test_failing_noise_resolves_demand_to_neutral(self, pricing_source_factory) -> None:
        def broken_noise() -> float:
            raise RuntimeError("rng exhausted")

        provider = MarketFactorProvider(pricing_source_factory(), noise_fn=broken_noise)
        factors = await provider.compute("prop-1", date(2024, 1, 10), base_price=100.0)

        assert factors.demand == 1.0

    @pytest.mark.asyncio
    async def test_seeded_noise_is_reproducible(self, pricing_source_factory) -> None:
        import random

        day = date(2024, 3, 20)
        today = lambda: date(2024, 3, 1)
        first = MarketFactorProvider(pricing_source_factory(), rng=random.Random(7), today_fn=today)
        second = MarketFactorProvider(pricing_source_factory(), rng=random.Random(7), today_fn=today)

        a = await first.compute("prop-1", day, 100.0)
        b = await second.compute("prop-1", day, 100.0)

        assert a.demand == b.demand
        assert 1.10 * 0.9 <= a.demand <= 1.10 * 1.1


class TestFixedFactorProvider:
    """Test the deterministic provider."""

    @pytest.mark.asyncio
    async def test_same_factors_for_every_date(self) -> None:
        provider = FixedFactorProvider({"seasonal": 1.3})
        factors = await provider.compute("p", date(2024, 1, 1), 100.0)

        assert factors == PricingFactors(seasonal=1.3)

    @pytest.mark.asyncio
    async def test_per_date_factors(self) -> None:
        special = PricingFactors(events=1.4)
        provider = FixedFactorProvider(by_date={date(2024, 6, 1): special})

        assert await provider.compute("p", date(2024, 6, 1), 100.0) == special
        assert await provider.compute("p", date(2024, 6, 2), 100.0) == PricingFactors()
