"""Data models for pricing recommendations"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

from ..errors import MessageValidationError
from ..utils.time import DateLike, iter_days, to_date

NEUTRAL = 1.0


@dataclass(frozen=True)
class PricingFactors:
    """The five independent multipliers for one (property, date) pair"""
    seasonal: float = NEUTRAL
    demand: float = NEUTRAL
    competition: float = NEUTRAL
    historical: float = NEUTRAL
    events: float = NEUTRAL

    def as_dict(self) -> dict[str, float]:
        return {
            "seasonal": self.seasonal,
            "demand": self.demand,
            "competition": self.competition,
            "historical": self.historical,
            "events": self.events,
        }

    def values(self) -> list[float]:
        return list(self.as_dict().values())

    def mean(self) -> float:
        values = self.values()
        return sum(values) / len(values)

    def variance(self) -> float:
        """Population variance of the five factor values"""
        values = self.values()
        mean = sum(values) / len(values)
        return sum((v - mean) ** 2 for v in values) / len(values)

    def has_market_data(self) -> bool:
        """Both external-data factors moved away from neutral"""
        return self.competition != NEUTRAL and self.historical != NEUTRAL


@dataclass(frozen=True)
class PriceRecommendation:
    """Recommended nightly price for one date"""
    date: date
    base_price: float
    optimized_price: int
    multiplier: float
    factors: PricingFactors
    confidence: float
    potential_revenue: float
    notes: tuple[str, ...] = ()

    @property
    def price_change_pct(self) -> float:
        if not self.base_price:
            return 0.0
        return (self.optimized_price - self.base_price) / self.base_price * 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "base_price": self.base_price,
            "optimized_price": self.optimized_price,
            "multiplier": round(self.multiplier, 3),
            "factors": self.factors.as_dict(),
            "confidence": round(self.confidence, 3),
            "potential_revenue": round(self.potential_revenue, 2),
            "notes": list(self.notes),
        }


@dataclass(frozen=True)
class RecommendationSummary:
    """Aggregate statistics over a list of recommendations"""
    count: int = 0
    average_price: float = 0.0
    min_price: float = 0.0
    max_price: float = 0.0
    average_confidence: float = 0.0
    total_potential_revenue: float = 0.0

    @classmethod
    def from_recommendations(cls, recommendations: list[PriceRecommendation]) -> "RecommendationSummary":
        if not recommendations:
            return cls()

        prices = [r.optimized_price for r in recommendations]
        count = len(recommendations)

        return cls(
            count=count,
            average_price=sum(prices) / count,
            min_price=min(prices),
            max_price=max(prices),
            average_confidence=sum(r.confidence for r in recommendations) / count,
            total_potential_revenue=sum(r.potential_revenue for r in recommendations),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "average_price": round(self.average_price),
            "price_range": {"min": round(self.min_price), "max": round(self.max_price)},
            "average_confidence": round(self.average_confidence, 3),
            "total_potential_revenue": round(self.total_potential_revenue),
        }


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of calendar days"""
    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise MessageValidationError(
                f"Date range end {self.end.isoformat()} is before start {self.start.isoformat()}",
                field="end"
            )

    @classmethod
    def parse(cls, start: DateLike, end: DateLike) -> "DateRange":
        """Build a range from dates, datetimes or ISO strings."""
        try:
            return cls(start=to_date(start), end=to_date(end))
        except ValueError as e:
            raise MessageValidationError(f"Invalid date range: {e}", field="date_range")

    def days(self) -> Iterator[date]:
        return iter_days(self.start, self.end)

    def __len__(self) -> int:
        return (self.end - self.start).days + 1

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass(frozen=True)
class PricingReport:
    """Recommendations for a date range plus their summary"""
    property_id: str
    date_range: DateRange
    recommendations: list[PriceRecommendation]
    summary: RecommendationSummary
    generated_at: str
    market_insights: Optional[dict[str, Any]] = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        result = {
            "property_id": self.property_id,
            "date_range": self.date_range.to_dict(),
            "recommendations": [r.to_dict() for r in self.recommendations],
            "summary": self.summary.to_dict(),
            "generated_at": self.generated_at,
        }
        if self.market_insights is not None:
            result["market_insights"] = self.market_insights
        return result
