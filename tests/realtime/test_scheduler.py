"""Tests for the broadcast scheduler."""

import asyncio
import random

import pytest

from airhost_rt.config.defaults import BroadcastParams
from airhost_rt.realtime.scheduler import BroadcastScheduler, LiveStatsProducer, SyntheticMetricsProducer


async def subscribed_client(registry, make_connection, *topics: str):
    conn = make_connection()
    await registry.authenticate(conn, "token-alice")
    await registry.subscribe(conn, list(topics))
    return conn


async def fixed_producer() -> dict:
    return {"dashboard_metrics": {"today_revenue": 1200}, "system_status": {"api_status": "online"}}


class TestRunOnce:
    """Test a single broadcast tick."""

    @pytest.mark.asyncio
    async def test_skips_when_no_connections(self, registry) -> None:
        calls = 0

        async def producer() -> dict:
            nonlocal calls
            calls += 1
            return {}

        scheduler = BroadcastScheduler(registry, producer=producer)

        assert await scheduler.run_once() == {}
        assert calls == 0
        assert scheduler.stats()["skipped"] == 1

    @pytest.mark.asyncio
    async def test_broadcasts_each_topic(self, registry, make_connection) -> None:
        conn = await subscribed_client(registry, make_connection, "dashboard_metrics")
        scheduler = BroadcastScheduler(registry, producer=fixed_producer)

        reached = await scheduler.run_once()

        assert reached == {"dashboard_metrics": 1, "system_status": 0}
        assert conn.transport.last["data"] == {"today_revenue": 1200}

    @pytest.mark.asyncio
    async def test_configured_topics_filter_payloads(self, registry, make_connection) -> None:
        await subscribed_client(registry, make_connection, "dashboard_metrics", "system_status")
        scheduler = BroadcastScheduler(
            registry,
            producer=fixed_producer,
            params=BroadcastParams(topics=("system_status",)),
        )

        assert await scheduler.run_once() == {"system_status": 1}

    @pytest.mark.asyncio
    async def test_synthetic_producer_topics(self) -> None:
        payloads = await SyntheticMetricsProducer(random.Random(3))()

        assert set(payloads) == {"dashboard_metrics", "system_status", "activity_feed", "dashboard_realtime"}
        assert 1000 <= payloads["dashboard_metrics"]["today_revenue"] <= 2999
        assert payloads["activity_feed"]["description"]

        realtime = payloads["dashboard_realtime"]
        assert 20 <= realtime["metrics"]["active_users"] <= 69
        assert 0.1 <= realtime["metrics"]["system_load"] <= 0.9
        assert realtime["activity"]["title"]
        assert isinstance(realtime["alerts"], list)

    @pytest.mark.asyncio
    async def test_live_stats_producer(self) -> None:
        producer = LiveStatsProducer(lambda: {"active_connections": 2})

        payloads = await producer()

        assert payloads["system_status"]["active_connections"] == 2
        assert "timestamp" in payloads["system_status"]
        assert "dashboard_realtime" not in payloads

    @pytest.mark.asyncio
    async def test_live_stats_producer_with_realtime_update(self) -> None:
        producer = LiveStatsProducer(
            lambda: {"active_connections": 2},
            lambda: {"metrics": {"active_connections": 2}, "alerts": [], "activity": None},
        )

        payloads = await producer()

        assert set(payloads) == {"system_status", "dashboard_realtime"}
        assert payloads["dashboard_realtime"]["alerts"] == []


class TestSchedulerLifecycle:
    """Test start, stop and failure handling of the loop."""

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, registry) -> None:
        scheduler = BroadcastScheduler(registry, producer=fixed_producer, interval_seconds=60)

        first = scheduler.start()
        second = scheduler.start()

        assert first is second
        assert scheduler.running
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, registry) -> None:
        scheduler = BroadcastScheduler(registry, producer=fixed_producer, interval_seconds=60)
        scheduler.start()

        await scheduler.stop()
        await scheduler.stop()

        assert not scheduler.running

    @pytest.mark.asyncio
    async def test_stop_before_start(self, registry) -> None:
        await BroadcastScheduler(registry).stop()

    @pytest.mark.asyncio
    async def test_ticks_deliver_updates(self, registry, make_connection) -> None:
        conn = await subscribed_client(registry, make_connection, "dashboard_metrics")
        scheduler = BroadcastScheduler(registry, producer=fixed_producer, interval_seconds=0.01)

        scheduler.start()
        await asyncio.sleep(0.05)
        await scheduler.stop()

        assert len(conn.transport.of_type("update")) >= 1
        assert scheduler.stats()["ticks"] >= 1

    @pytest.mark.asyncio
    async def test_failing_producer_keeps_loop_alive(self, registry, make_connection) -> None:
        await subscribed_client(registry, make_connection, "dashboard_metrics")

        async def broken() -> dict:
            raise RuntimeError("metrics backend down")

        scheduler = BroadcastScheduler(registry, producer=broken, interval_seconds=0.01)

        scheduler.start()
        await asyncio.sleep(0.05)

        assert scheduler.running
        assert scheduler.failures >= 1
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_no_broadcast_after_stop(self, registry, make_connection) -> None:
        conn = await subscribed_client(registry, make_connection, "dashboard_metrics")
        scheduler = BroadcastScheduler(registry, producer=fixed_producer, interval_seconds=0.01)

        scheduler.start()
        await asyncio.sleep(0.03)
        await scheduler.stop()
        delivered = len(conn.transport.of_type("update"))
        await asyncio.sleep(0.03)

        assert len(conn.transport.of_type("update")) == delivered
