"""Pricing engine combining factors into bounded, rounded nightly prices"""

import math
from datetime import date
from typing import Optional

from ..config.defaults import PricingParams
from ..errors import FatalPricingError
from ..logging.config import get_pricing_logger, log_pricing_decision
from ..models.pricing import (
    DateRange,
    PriceRecommendation,
    PricingFactors,
    PricingReport,
    RecommendationSummary,
)
from ..sources.interfaces import PricingDataSource
from ..utils.time import format_timestamp
from .factors import FactorProvider, MarketFactorProvider
from .rounding import clamp_price, round_half_away, round_price
from .strategy import generate_market_insights

logger = get_pricing_logger(__name__)


def combine_factors(factors: PricingFactors, weights: dict[str, float]) -> float:
    """Weighted multiplier: 1 + sum of each weight times its factor's deviation from neutral."""
    values = factors.as_dict()
    return 1.0 + sum(weights[name] * (values[name] - 1.0) for name in weights)


class PricingEngine:
    """
    Dynamic pricing engine

    Prices each night independently from the property's base price and the
    five market factors. Only the base price lookup can fail a request;
    factor sources degrade to neutral inside the factor provider.
    """

    def __init__(
        self,
        source: PricingDataSource,
        factor_provider: Optional[FactorProvider] = None,
        params: Optional[PricingParams] = None
    ):
        self.source = source
        self.params = params or PricingParams()
        self.factor_provider = factor_provider or MarketFactorProvider(source, self.params)
        self.weights = self.params.weights.as_dict()
        self.logger = logger

    async def fetch_base_price(self, property_id: str) -> float:
        """
        Raises:
            FatalPricingError: If the lookup fails or yields no usable price
        """
        try:
            base_price = float(await self.source.fetch_base_price(property_id))
        except Exception as e:
            self.logger.error("Base price lookup failed",
                              property_id=property_id, error=str(e))
            raise FatalPricingError(
                f"Base price unavailable for property {property_id}",
                property_id=property_id,
                context={"error": str(e)}
            ) from e

        if not math.isfinite(base_price) or base_price <= 0:
            raise FatalPricingError(
                f"Invalid base price {base_price} for property {property_id}",
                property_id=property_id
            )

        return base_price

    async def calculate_optimal_price(self, property_id: str, day: date) -> PriceRecommendation:
        """
        Recommend a price for one night.

        Raises:
            FatalPricingError: If the base price cannot be fetched
        """
        base_price = await self.fetch_base_price(property_id)
        return await self._price_day(property_id, day, base_price)

    async def generate_pricing_recommendations(
        self,
        property_id: str,
        date_range: DateRange,
        with_insights: bool = False
    ) -> PricingReport:
        """
        Recommend prices for every night in an inclusive date range.

        The base price is fetched once for the whole range.

        Raises:
            FatalPricingError: If the base price cannot be fetched
        """
        base_price = await self.fetch_base_price(property_id)

        recommendations = []
        for day in date_range.days():
            recommendations.append(await self._price_day(property_id, day, base_price))

        summary = RecommendationSummary.from_recommendations(recommendations)

        self.logger.info(
            "Pricing recommendations generated",
            property_id=property_id,
            start=date_range.start.isoformat(),
            end=date_range.end.isoformat(),
            count=summary.count,
            average_price=round(summary.average_price, 2)
        )

        return PricingReport(
            property_id=property_id,
            date_range=date_range,
            recommendations=recommendations,
            summary=summary,
            generated_at=format_timestamp(),
            market_insights=generate_market_insights(recommendations, summary) if with_insights else None,
        )

    async def _price_day(self, property_id: str, day: date, base_price: float) -> PriceRecommendation:
        factors = await self.factor_provider.compute(property_id, day, base_price)
        multiplier = combine_factors(factors, self.weights)

        raw_price = round_half_away(base_price * multiplier)
        clamped = clamp_price(raw_price, base_price, self.params)
        final_price = round_price(clamped, base_price, self.params)

        occupancy = self.estimate_occupancy(factors)

        log_pricing_decision(
            self.logger,
            property_id=property_id,
            date=day.isoformat(),
            base_price=base_price,
            final_price=final_price,
            multiplier=multiplier,
            factors=factors.as_dict(),
            clamped=clamped != raw_price
        )

        return PriceRecommendation(
            date=day,
            base_price=base_price,
            optimized_price=final_price,
            multiplier=multiplier,
            factors=factors,
            confidence=self.calculate_confidence(factors),
            potential_revenue=final_price * occupancy,
            notes=tuple(self.build_notes(factors, final_price, base_price)),
        )

    def calculate_confidence(self, factors: PricingFactors) -> float:
        """Confidence falls as the factors disagree; real market data raises it."""
        p = self.params
        confidence = min(p.max_confidence, max(p.min_confidence, 1.0 - factors.variance() * p.variance_penalty))

        if factors.has_market_data():
            confidence = min(p.max_confidence, confidence * p.data_confidence_boost)

        return confidence

    def estimate_occupancy(self, factors: PricingFactors) -> float:
        p = self.params
        mean = factors.mean()

        if mean > p.high_demand_mean_factor:
            return p.high_demand_occupancy
        if mean < p.low_demand_mean_factor:
            return p.low_demand_occupancy
        return p.baseline_occupancy

    def build_notes(self, factors: PricingFactors, final_price: float, base_price: float) -> list[str]:
        notes = []
        change = (final_price - base_price) / base_price * 100

        if final_price > base_price * 1.1:
            notes.append(f"Price {change:.1f}% above base due to high demand")
        elif final_price < base_price * 0.9:
            notes.append(f"Price lowered {abs(change):.1f}% to stay competitive")

        if factors.events > 1.2:
            notes.append("Local events detected, premium pricing opportunity")

        if factors.seasonal > 1.2:
            notes.append("High season, keep prices elevated")

        if factors.competition > 1.1:
            notes.append("Competitive advantage identified")

        return notes
