"""Configuration validation utilities."""

import math
from dataclasses import dataclass
from typing import Any

FACTOR_NAMES = ("seasonal", "demand", "competition", "historical", "events")

WEIGHT_SUM_TOLERANCE = 1e-6

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ConfigValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_weights(weights: dict[str, Any]) -> list[ConfigValidationError]:
        """Validate factor weights: known names, non-negative, summing to 1.0."""
        errors = []

        unknown = set(weights) - set(FACTOR_NAMES)
        for name in sorted(unknown):
            errors.append(ConfigValidationError(
                field=f"pricing.weights.{name}",
                message="Unknown pricing factor",
                value=weights[name]
            ))

        total = 0.0
        for name in FACTOR_NAMES:
            value = weights.get(name, 0.0)
            if not _is_number(value) or value < 0:
                errors.append(ConfigValidationError(
                    field=f"pricing.weights.{name}",
                    message="Must be a non-negative number",
                    value=value
                ))
                continue
            total += value

        if not errors and abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
            errors.append(ConfigValidationError(
                field="pricing.weights",
                message="Weights must sum to 1.0",
                value=round(total, 6)
            ))

        return errors

    @staticmethod
    def validate_pricing_params(params: dict[str, Any]) -> list[ConfigValidationError]:
        """Validate pricing parameters."""
        errors = []

        if "weights" in params:
            errors.extend(ConfigValidator.validate_weights(params["weights"]))

        # Validate clamp ratios
        min_ratio = params.get("min_price_ratio", 0.7)
        max_ratio = params.get("max_price_ratio", 2.0)
        if not _is_number(min_ratio) or min_ratio <= 0:
            errors.append(ConfigValidationError(
                field="pricing.min_price_ratio",
                message="Must be a positive number",
                value=min_ratio
            ))
        if not _is_number(max_ratio) or max_ratio <= 0:
            errors.append(ConfigValidationError(
                field="pricing.max_price_ratio",
                message="Must be a positive number",
                value=max_ratio
            ))
        elif _is_number(min_ratio) and min_ratio > max_ratio:
            errors.append(ConfigValidationError(
                field="pricing.max_price_ratio",
                message="Must be greater than or equal to min_price_ratio",
                value=max_ratio
            ))

        # Validate rounding step
        if "rounding_step" in params:
            value = params["rounding_step"]
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                errors.append(ConfigValidationError(
                    field="pricing.rounding_step",
                    message="Must be a positive integer",
                    value=value
                ))

        # Validate confidence bounds
        low = params.get("min_confidence", 0.1)
        high = params.get("max_confidence", 0.95)
        if not (_is_number(low) and _is_number(high) and 0 <= low <= high <= 1):
            errors.append(ConfigValidationError(
                field="pricing.max_confidence",
                message="Confidence bounds must satisfy 0 <= min <= max <= 1",
                value=(low, high)
            ))

        # Validate demand clamp
        demand = params.get("demand", {})
        if demand:
            low = demand.get("min_factor", 0.7)
            high = demand.get("max_factor", 1.5)
            if not (_is_number(low) and _is_number(high) and 0 < low <= high):
                errors.append(ConfigValidationError(
                    field="pricing.demand.max_factor",
                    message="Demand clamp must satisfy 0 < min_factor <= max_factor",
                    value=(low, high)
                ))

        # Validate season months
        season = params.get("season", {})
        for key in ("high_months", "medium_months"):
            months = season.get(key)
            if months is None:
                continue
            if not all(isinstance(m, int) and 1 <= m <= 12 for m in months):
                errors.append(ConfigValidationError(
                    field=f"pricing.season.{key}",
                    message="Months must be integers between 1 and 12",
                    value=months
                ))

        return errors

    @staticmethod
    def validate_cache_params(params: dict[str, Any]) -> list[ConfigValidationError]:
        """Validate cache parameters."""
        errors = []

        for key in ("dashboard_ttl_seconds", "report_ttl_seconds"):
            if key in params:
                value = params[key]
                if not _is_number(value) or value <= 0:
                    errors.append(ConfigValidationError(
                        field=f"cache.{key}",
                        message="Must be a positive number",
                        value=value
                    ))

        if params.get("max_entries") is not None:
            value = params["max_entries"]
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                errors.append(ConfigValidationError(
                    field="cache.max_entries",
                    message="Must be a positive integer or null",
                    value=value
                ))

        if "single_flight" in params and not isinstance(params["single_flight"], bool):
            errors.append(ConfigValidationError(
                field="cache.single_flight",
                message="Must be a boolean",
                value=params["single_flight"]
            ))

        return errors

    @staticmethod
    def validate_broadcast_params(params: dict[str, Any]) -> list[ConfigValidationError]:
        """Validate broadcast scheduler parameters."""
        errors = []

        if "interval_seconds" in params:
            value = params["interval_seconds"]
            if not _is_number(value) or value <= 0:
                errors.append(ConfigValidationError(
                    field="broadcast.interval_seconds",
                    message="Must be a positive number",
                    value=value
                ))

        if "producer" in params and params["producer"] not in ("synthetic", "aggregate"):
            errors.append(ConfigValidationError(
                field="broadcast.producer",
                message="Must be 'synthetic' or 'aggregate'",
                value=params["producer"]
            ))

        return errors

    @staticmethod
    def validate_connection_params(params: dict[str, Any]) -> list[ConfigValidationError]:
        """Validate connection parameters."""
        errors = []

        timeout = params.get("auth_timeout_seconds")
        if timeout is not None and (not _is_number(timeout) or timeout <= 0):
            errors.append(ConfigValidationError(
                field="connection.auth_timeout_seconds",
                message="Must be a positive number or null",
                value=timeout
            ))

        return errors

    @staticmethod
    def validate_server_params(params: dict[str, Any]) -> list[ConfigValidationError]:
        """Validate server parameters."""
        errors = []

        if "port" in params:
            value = params["port"]
            if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= 65535:
                errors.append(ConfigValidationError(
                    field="server.port",
                    message="Must be an integer between 0 and 65535",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_logging_params(params: dict[str, Any]) -> list[ConfigValidationError]:
        errors = []

        level = params.get("level", "INFO")
        if not isinstance(level, str) or level.upper() not in LOG_LEVELS:
            errors.append(ConfigValidationError(
                field="logging.level",
                message=f"Must be one of {', '.join(LOG_LEVELS)}",
                value=level
            ))

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ConfigValidationError]:
        """Validate complete configuration."""
        errors = []

        if "pricing" in config:
            errors.extend(ConfigValidator.validate_pricing_params(config["pricing"]))

        if "cache" in config:
            errors.extend(ConfigValidator.validate_cache_params(config["cache"]))

        if "broadcast" in config:
            errors.extend(ConfigValidator.validate_broadcast_params(config["broadcast"]))

        if "connection" in config:
            errors.extend(ConfigValidator.validate_connection_params(config["connection"]))

        if "server" in config:
            errors.extend(ConfigValidator.validate_server_params(config["server"]))

        if "logging" in config:
            errors.extend(ConfigValidator.validate_logging_params(config["logging"]))

        return errors
