"""
Dynamic pricing: factor model, engine and strategy application.
"""
from .engine import PricingEngine, combine_factors
from .factors import FactorProvider, FixedFactorProvider, MarketFactorProvider
from .strategy import apply_pricing_strategy, generate_market_insights

__all__ = [
    "PricingEngine",
    "combine_factors",
    "FactorProvider",
    "FixedFactorProvider",
    "MarketFactorProvider",
    "apply_pricing_strategy",
    "generate_market_insights",
]
