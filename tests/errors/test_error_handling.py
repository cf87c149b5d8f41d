"""
Error handling tests for the realtime and pricing subsystems.

Tests cover the error classification and how each class of error is
contained: client errors answered on the connection, data-source errors
replaced with neutral values, and fatal errors propagated to the caller.
"""

from datetime import date

import pytest

from airhost_rt.errors import (
    AuthError,
    ClientError,
    ConfigurationError,
    DataQualityError,
    DataSourceUnavailableError,
    DeliveryError,
    FatalPricingError,
    MalformedSourceDataError,
    MessageValidationError,
    SystemFailureError,
    TransientDataError,
    ValidationError,
)
from airhost_rt.models.messages import parse_client_message
from airhost_rt.pricing import PricingEngine


class TestErrorClassification:
    """Test error classification system."""

    def test_client_errors_render_as_messages(self) -> None:
        error = MessageValidationError("Unknown message type", field="type", raw_data="shout")

        assert isinstance(error, ClientError)
        assert error.recoverable is True
        assert error.to_message() == {"type": "error", "message": "Unknown message type"}

    def test_auth_error_message_type(self) -> None:
        error = AuthError(reason="expired")

        assert error.to_message() == {"type": "auth_error", "message": "Authentication failed"}
        assert error.reason == "expired"

    def test_validation_error_alias(self) -> None:
        assert ValidationError is MessageValidationError

    def test_data_quality_hierarchy(self) -> None:
        unavailable = DataSourceUnavailableError("timeout", source="competition")
        malformed = MalformedSourceDataError("bad shape", raw_data="[]", expected_format="{status}")

        assert isinstance(unavailable, TransientDataError)
        assert isinstance(malformed, DataQualityError)
        assert unavailable.source == "competition"
        assert malformed.expected_format == "{status}"
        assert unavailable.recoverable is True
        assert unavailable.context == {}

    def test_system_failures_are_not_recoverable(self) -> None:
        errors = [
            FatalPricingError("no base price", property_id="p1"),
            DeliveryError("send failed", connection_id="c1", topic="system_status"),
            ConfigurationError("bad config", errors=["x"]),
        ]

        for error in errors:
            assert isinstance(error, SystemFailureError)
            assert error.recoverable is False

    def test_context_is_kept(self) -> None:
        error = FatalPricingError("no base price", property_id="p1", context={"error": "timeout"})
        assert error.context == {"error": "timeout"}


class TestMessageValidation:
    """Test inbound frame validation errors."""

    @pytest.mark.parametrize("raw", ["not json", "[1, 2]", "42", b"\xff\xfe"])
    def test_invalid_format(self, raw) -> None:
        with pytest.raises(MessageValidationError) as exc_info:
            parse_client_message(raw)
        assert exc_info.value.message == "Invalid message format"

    def test_unknown_type(self) -> None:
        with pytest.raises(MessageValidationError) as exc_info:
            parse_client_message('{"type": "shout"}')
        assert exc_info.value.field == "type"

    @pytest.mark.parametrize("frame", [
        '{"type": "subscribe"}',
        '{"type": "subscribe", "topics": []}',
        '{"type": "subscribe", "topics": [1, 2]}',
        '{"type": "unsubscribe", "topics": null}',
    ])
    def test_bad_topics(self, frame: str) -> None:
        with pytest.raises(MessageValidationError) as exc_info:
            parse_client_message(frame)
        assert exc_info.value.field == "topics"

    def test_non_string_token(self) -> None:
        with pytest.raises(MessageValidationError):
            parse_client_message('{"type": "authenticate", "token": 12}')


class TestErrorContainment:
    """Test where each class of error stops."""

    @pytest.mark.asyncio
    async def test_factor_source_errors_never_reach_caller(self, pricing_source_factory) -> None:
        source = pricing_source_factory(failing=("competition", "historical", "events"))
        engine = PricingEngine(source)

        rec = await engine.calculate_optimal_price("p1", date(2030, 1, 1))

        assert rec.factors.competition == 1.0
        assert rec.factors.historical == 1.0
        assert rec.factors.events == 1.0

    @pytest.mark.asyncio
    async def test_base_price_error_is_wrapped(self, pricing_source_factory) -> None:
        engine = PricingEngine(pricing_source_factory(failing=("base_price",)))

        with pytest.raises(FatalPricingError) as exc_info:
            await engine.calculate_optimal_price("p1", date(2030, 1, 1))

        assert isinstance(exc_info.value.__cause__, DataSourceUnavailableError)
        assert "error" in exc_info.value.context

    @pytest.mark.asyncio
    async def test_delivery_error_drops_connection(self, registry, make_connection) -> None:
        conn = make_connection(fail=True)

        assert await registry.send(conn, {"type": "connected"}) is False
        assert conn not in registry
