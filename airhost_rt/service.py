"""
Realtime service composition root.

Owns one registry, one aggregator, one pricing engine and one scheduler,
all constructed here or injected. Nothing is held in module-level state, so
tests can build and tear down as many services as they like.
"""

import asyncio
import random
from typing import Any, Optional

import structlog

from .config.defaults import DefaultConfig, get_default_config
from .config.loader import ConfigLoader
from .dashboard import MetricsAggregator
from .errors import ConfigurationError, MessageValidationError
from .models.messages import Topic
from .models.pricing import DateRange, PriceRecommendation, PricingReport
from .pricing import FactorProvider, MarketFactorProvider, PricingEngine
from .pricing.strategy import apply_pricing_strategy, summarize_applied
from .realtime import BroadcastScheduler, ConnectionRegistry, RealtimeServer, SyntheticMetricsProducer
from .realtime.scheduler import LiveStatsProducer, Producer
from .sources.interfaces import DashboardSource, IdentityVerifier, PricingDataSource
from .sources.jwt_verifier import JwtIdentityVerifier

logger = structlog.get_logger(__name__)

TRIGGER_TOPICS = {
    "activity": Topic.ACTIVITY_FEED.value,
    "metrics": Topic.DASHBOARD_METRICS.value,
    "status": Topic.SYSTEM_STATUS.value,
}


class RealtimeService:
    """
    Realtime dashboard and pricing service.

    Args:
        dashboard_source: Supplies per-owner dashboard records
        pricing_source: Supplies base prices and market data
        config: Full configuration; defaults when omitted
        verifier: Token verifier; a JWT verifier built from ``config.auth`` by default
        factor_provider: Pricing factor provider; market-data backed by default
        rng: Random source for synthetic broadcasts and demand noise
        host_server: Also run the websocket server on ``start()``
    """

    def __init__(
        self,
        dashboard_source: DashboardSource,
        pricing_source: PricingDataSource,
        config: Optional[DefaultConfig] = None,
        verifier: Optional[IdentityVerifier] = None,
        factor_provider: Optional[FactorProvider] = None,
        rng: Optional[random.Random] = None,
        host_server: bool = False
    ):
        self.config = config or get_default_config()
        self.logger = logger
        self.rng = rng or random.Random()

        self.verifier = verifier or JwtIdentityVerifier(self.config.auth)
        self.registry = ConnectionRegistry(self.verifier)

        self.aggregator = MetricsAggregator(
            dashboard_source,
            params=self.config.cache,
            connection_stats=self.registry.connected_clients,
        )

        self.engine = PricingEngine(
            pricing_source,
            factor_provider=factor_provider or MarketFactorProvider(
                pricing_source, self.config.pricing, rng=self.rng
            ),
            params=self.config.pricing,
        )

        self.scheduler = BroadcastScheduler(
            self.registry,
            producer=self._build_producer(),
            params=self.config.broadcast,
        )

        self.server = RealtimeServer(self.registry, self.config.server) if host_server else None
        self._sweeper: Optional[asyncio.Task] = None

    @classmethod
    def from_config_dir(
        cls,
        dashboard_source: DashboardSource,
        pricing_source: PricingDataSource,
        config_dir: Optional[str] = None,
        overrides: Optional[dict[str, Any]] = None,
        **kwargs: Any
    ) -> "RealtimeService":
        config = ConfigLoader.create(config_dir).load(overrides)
        return cls(dashboard_source, pricing_source, config=config, **kwargs)

    def _build_producer(self) -> Producer:
        kind = self.config.broadcast.producer
        if kind == "synthetic":
            return SyntheticMetricsProducer(self.rng)
        if kind == "aggregate":
            return LiveStatsProducer(self.aggregator.get_live_stats, self.aggregator.get_realtime_update)
        raise ConfigurationError(f"Unknown broadcast producer: {kind}")

    async def start(self) -> None:
        if self.server is not None:
            await self.server.start()

        self.scheduler.start()

        timeout = self.config.connection.auth_timeout_seconds
        if timeout is not None and self._sweeper is None:
            self._sweeper = asyncio.create_task(self._sweep_loop(timeout), name="auth-sweeper")

        self.logger.info("Realtime service started", hosted=self.server is not None)

    async def stop(self) -> None:
        await self.scheduler.stop()

        if self._sweeper is not None:
            self._sweeper.cancel()
            try:
                await self._sweeper
            except asyncio.CancelledError:
                pass
            self._sweeper = None

        if self.server is not None:
            await self.server.stop()
        else:
            await self.registry.close_all()

        self.aggregator.clear()
        self.logger.info("Realtime service stopped")

    async def _sweep_loop(self, max_age_seconds: float) -> None:
        while True:
            await asyncio.sleep(self.config.connection.sweep_interval_seconds)
            try:
                await self.registry.sweep_unauthenticated(max_age_seconds)
            except Exception as e:
                self.logger.error("Unauthenticated sweep failed", error=str(e))

    async def publish_pricing_recommendations(self, owner_id: str, property_id: str,
                                              date_range: DateRange) -> PricingReport:
        """
        Generate recommendations and push their summary to the owner.

        Raises:
            FatalPricingError: If the base price cannot be fetched
        """
        report = await self.engine.generate_pricing_recommendations(
            property_id, date_range, with_insights=True
        )

        await self.registry.broadcast_to_owner(owner_id, Topic.PRICING_UPDATE.value, {
            "property_id": property_id,
            "summary": report.summary.to_dict(),
        })
        return report

    async def apply_pricing(self, owner_id: str, property_id: str,
                            recommendations: list[PriceRecommendation],
                            strategy: str = "moderate") -> dict[str, Any]:
        """Apply a strategy to recommendations and push the result to the owner."""
        applied = apply_pricing_strategy(recommendations, strategy)
        results = summarize_applied(property_id, strategy, applied)

        await self.registry.broadcast_to_owner(owner_id, Topic.PRICING_APPLIED.value, {
            "property_id": property_id,
            "strategy": strategy,
            "results": results,
        })

        self.logger.info("Pricing applied", owner_id=owner_id, property_id=property_id,
                         strategy=strategy, dates=len(applied))
        return results

    async def push_dashboard_update(self, owner_id: str) -> dict[str, int]:
        """Push live dashboard metrics and system status to one owner."""
        payloads = await self.aggregator.get_realtime_metrics(owner_id)

        reached = {}
        for topic, payload in payloads.items():
            reached[topic] = await self.registry.broadcast_to_owner(owner_id, topic, payload)
        return reached

    async def trigger_update(self, owner_id: str, kind: str, data: Any) -> int:
        """
        Push an ad-hoc update of a known kind to one owner.

        Raises:
            MessageValidationError: If kind is not activity, metrics or status
        """
        topic = TRIGGER_TOPICS.get(kind)
        if topic is None:
            raise MessageValidationError("Invalid update type", field="type", raw_data=str(kind))
        return await self.registry.broadcast_to_owner(owner_id, topic, data)

    async def notify(self, owner_id: str, notification: dict[str, Any]) -> int:
        return await self.registry.broadcast_to_owner(owner_id, Topic.NOTIFICATION.value, notification)

    def stats(self) -> dict[str, Any]:
        return {
            "connections": self.registry.connected_clients(),
            "scheduler": self.scheduler.stats(),
            "caches": [
                self.aggregator.dashboard_cache.stats(),
                self.aggregator.report_cache.stats(),
            ],
        }
