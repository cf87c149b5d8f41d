"""Default configuration parameters for the realtime broadcast and pricing system."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class FactorWeights:
    """Weights applied to each factor's deviation from neutral (sum to 1.0)."""
    seasonal: float = 0.25
    demand: float = 0.30
    competition: float = 0.20
    historical: float = 0.15
    events: float = 0.10

    def as_dict(self) -> dict[str, float]:
        return {
            "seasonal": self.seasonal,
            "demand": self.demand,
            "competition": self.competition,
            "historical": self.historical,
            "events": self.events,
        }


@dataclass(frozen=True)
class SeasonParams:
    """Month buckets use 1-12 month numbers; weekend days use date.weekday()."""
    high_months: tuple[int, ...] = (6, 7, 8, 12)
    medium_months: tuple[int, ...] = (3, 4, 5, 9, 10, 11)
    high_multiplier: float = 1.3
    medium_multiplier: float = 1.1
    low_multiplier: float = 0.85
    weekend_days: tuple[int, ...] = (4, 5)           # Friday, Saturday
    weekend_premium: float = 1.15


@dataclass(frozen=True)
class DemandParams:
    """Lead-time demand curve and market noise bounds."""
    last_minute_days: int = 7
    last_minute_multiplier: float = 1.25
    short_term_days: int = 30
    short_term_multiplier: float = 1.10
    normal_days: int = 60
    normal_multiplier: float = 1.00
    early_booking_multiplier: float = 0.95
    noise_low: float = 0.9                           # ±10% market variation
    noise_high: float = 1.1
    min_factor: float = 0.7
    max_factor: float = 1.5


@dataclass(frozen=True)
class EventImpactParams:
    """Multipliers per local-event impact level."""
    high: float = 1.4
    medium: float = 1.2
    low: float = 1.1
    cap: float = 2.0


@dataclass(frozen=True)
class PricingParams:
    """Pricing engine parameters."""
    weights: FactorWeights = field(default_factory=FactorWeights)
    season: SeasonParams = field(default_factory=SeasonParams)
    demand: DemandParams = field(default_factory=DemandParams)
    events: EventImpactParams = field(default_factory=EventImpactParams)

    # Business-rule clamp relative to base price
    min_price_ratio: float = 0.7
    max_price_ratio: float = 2.0

    # Rounding: nearest step above the threshold, nearest integer below
    rounding_threshold: float = 200.0
    rounding_step: int = 5

    # Confidence heuristic
    min_confidence: float = 0.1
    max_confidence: float = 0.95
    variance_penalty: float = 0.5
    data_confidence_boost: float = 1.1

    # Occupancy estimate
    baseline_occupancy: float = 0.7
    high_demand_occupancy: float = 0.85
    low_demand_occupancy: float = 0.55
    high_demand_mean_factor: float = 1.2
    low_demand_mean_factor: float = 0.9


@dataclass(frozen=True)
class CacheParams:
    """Snapshot cache TTLs and optional hardening knobs."""
    dashboard_ttl_seconds: float = 300.0             # 5 minutes
    report_ttl_seconds: float = 1800.0               # 30 minutes
    max_entries: Optional[int] = None                # None = unbounded
    single_flight: bool = False


@dataclass(frozen=True)
class BroadcastParams:
    """Broadcast scheduler parameters."""
    interval_seconds: float = 5.0
    producer: str = "synthetic"                      # synthetic, aggregate
    topics: tuple[str, ...] = ("dashboard_metrics", "system_status", "activity_feed", "dashboard_realtime")


@dataclass(frozen=True)
class ConnectionParams:
    """Connection handling parameters."""
    auth_timeout_seconds: Optional[float] = None     # None = never sweep
    sweep_interval_seconds: float = 30.0


@dataclass(frozen=True)
class AuthParams:
    """Token verification parameters."""
    jwt_secret: str = "airhost-dev-secret-change-me-in-production"
    jwt_algorithms: tuple[str, ...] = ("HS256",)
    user_id_claim: str = "userId"


@dataclass(frozen=True)
class ServerParams:
    """Realtime server parameters."""
    host: str = "0.0.0.0"
    port: int = 8765
    path: str = "/ws"
    ping_interval_seconds: Optional[float] = 20.0


@dataclass(frozen=True)
class LoggingParams:
    """Logging parameters."""
    level: str = "INFO"
    format_json: bool = False


@dataclass(frozen=True)
class DefaultConfig:
    """Complete default configuration."""
    pricing: PricingParams
    cache: CacheParams
    broadcast: BroadcastParams
    connection: ConnectionParams
    auth: AuthParams
    server: ServerParams
    logging: LoggingParams


def get_default_config() -> DefaultConfig:
    """Get the default configuration instance."""
    return DefaultConfig(
        pricing=PricingParams(),
        cache=CacheParams(),
        broadcast=BroadcastParams(),
        connection=ConnectionParams(),
        auth=AuthParams(),
        server=ServerParams(),
        logging=LoggingParams(),
    )
