"""Applying recommendations under a pricing strategy, and market insights"""

from dataclasses import dataclass
from typing import Any

from ..models.pricing import PriceRecommendation, RecommendationSummary
from .rounding import round_half_away

STRATEGY_MULTIPLIERS = {
    "conservative": 0.5,
    "moderate": 0.75,
    "aggressive": 1.0,
}
DEFAULT_STRATEGY = "moderate"


@dataclass(frozen=True)
class AppliedPrice:
    """A recommendation after applying a share of its suggested change"""
    recommendation: PriceRecommendation
    strategy: str
    applied_price: int
    potential_revenue: float

    @property
    def price_change_pct(self) -> float:
        base = self.recommendation.base_price
        return (self.applied_price - base) / base * 100

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.recommendation.to_dict(),
            "applied_price": self.applied_price,
            "strategy": self.strategy,
            "potential_revenue": round(self.potential_revenue, 2),
        }


def strategy_multiplier(strategy: str) -> float:
    """Share of the suggested change to apply; unknown strategies count as moderate."""
    return STRATEGY_MULTIPLIERS.get(strategy, STRATEGY_MULTIPLIERS[DEFAULT_STRATEGY])


def apply_pricing_strategy(recommendations: list[PriceRecommendation], strategy: str) -> list[AppliedPrice]:
    """Move each price from base toward its recommendation by the strategy's share."""
    share = strategy_multiplier(strategy)
    applied = []

    for rec in recommendations:
        price = round_half_away(rec.base_price + (rec.optimized_price - rec.base_price) * share)
        applied.append(AppliedPrice(
            recommendation=rec,
            strategy=strategy,
            applied_price=price,
            potential_revenue=rec.potential_revenue * share,
        ))

    return applied


def summarize_applied(property_id: str, strategy: str, applied: list[AppliedPrice]) -> dict[str, Any]:
    """Result payload for an applied pricing run."""
    changes = [a.price_change_pct for a in applied]
    average_change = sum(changes) / len(changes) if changes else 0.0

    return {
        "property_id": property_id,
        "strategy": strategy,
        "applied_dates": len(applied),
        "total_potential_revenue": round(sum(a.potential_revenue for a in applied), 2),
        "average_price_change": round(average_change, 1),
        "prices": [a.to_dict() for a in applied],
    }


def generate_market_insights(recommendations: list[PriceRecommendation],
                             summary: RecommendationSummary) -> dict[str, Any]:
    """Market position and demand trend read off a set of recommendations."""
    if not recommendations:
        return {
            "market_position": "unknown",
            "demand_trend": "stable",
            "average_market_price": 0.0,
            "price_recommendation": "Not enough data for a recommendation",
        }

    average_multiplier = sum(r.multiplier for r in recommendations) / len(recommendations)
    if average_multiplier > 1.1:
        position = "premium"
    elif average_multiplier < 0.95:
        position = "budget"
    else:
        position = "competitive"

    half = len(recommendations) // 2
    if half:
        early = sum(r.factors.demand for r in recommendations[:half]) / half
        late = sum(r.factors.demand for r in recommendations[half:]) / (len(recommendations) - half)
        if late > early * 1.02:
            trend = "increasing"
        elif late < early * 0.98:
            trend = "decreasing"
        else:
            trend = "stable"
    else:
        trend = "stable"

    if position == "premium":
        hint = "Consider slight price reduction to increase bookings"
    elif position == "budget":
        hint = "Room to raise prices toward the market average"
    else:
        hint = "Pricing is competitive for the market"

    return {
        "market_position": position,
        "demand_trend": trend,
        "average_market_price": round(summary.average_price * 0.95, 2),
        "price_recommendation": hint,
    }
