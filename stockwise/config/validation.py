"""Configuration validation utilities."""

from dataclasses import dataclass
from typing import Any

KNOWN_PROVIDERS = ("twelve_data", "alpha_vantage")


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_polling_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate subscription polling parameters."""
        errors = []

        if "interval_seconds" in params:
            value = params["interval_seconds"]
            if not _is_number(value) or value <= 0:
                errors.append(ValidationError(
                    field="interval_seconds",
                    message="Must be a positive number",
                    value=value
                ))

        if "immediate_first_tick" in params:
            value = params["immediate_first_tick"]
            if not isinstance(value, bool):
                errors.append(ValidationError(
                    field="immediate_first_tick",
                    message="Must be a boolean",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_provider_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate provider ordering, timeouts and cooldown."""
        errors = []

        if "order" in params:
            value = params["order"]
            if not isinstance(value, (list, tuple)):
                errors.append(ValidationError(
                    field="order",
                    message="Must be a list of provider names",
                    value=value
                ))
            else:
                unknown = [name for name in value if name not in KNOWN_PROVIDERS]
                if unknown:
                    errors.append(ValidationError(
                        field="order",
                        message=f"Unknown providers: {', '.join(map(str, unknown))}",
                        value=value
                    ))
                if len(set(value)) != len(value):
                    errors.append(ValidationError(
                        field="order",
                        message="Providers must not repeat",
                        value=value
                    ))

        for name in ("timeout_seconds", "rate_limit_cooldown_seconds"):
            if name in params:
                value = params[name]
                if not _is_number(value) or value < 0:
                    errors.append(ValidationError(
                        field=name,
                        message="Must be a non-negative number",
                        value=value
                    ))

        return errors

    @staticmethod
    def validate_synthetic_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate synthetic generator parameters."""
        errors = []

        if "volatility" in params:
            value = params["volatility"]
            if not _is_number(value) or value < 0 or value >= 1:
                errors.append(ValidationError(
                    field="volatility",
                    message="Must be a number between 0 and 1",
                    value=value
                ))

        if "max_step_pct" in params:
            value = params["max_step_pct"]
            if not _is_number(value) or value <= 0 or value >= 1:
                errors.append(ValidationError(
                    field="max_step_pct",
                    message="Must be a number between 0 and 1 (exclusive)",
                    value=value
                ))

        if "trend_bias" in params:
            value = params["trend_bias"]
            if not _is_number(value) or abs(value) >= 1:
                errors.append(ValidationError(
                    field="trend_bias",
                    message="Must be a number with magnitude below 1",
                    value=value
                ))

        if "seed_prices" in params:
            value = params["seed_prices"]
            if not isinstance(value, dict):
                errors.append(ValidationError(
                    field="seed_prices",
                    message="Must be a mapping of symbol to price",
                    value=value
                ))
            else:
                for symbol, price in value.items():
                    if not _is_number(price) or price <= 0:
                        errors.append(ValidationError(
                            field=f"seed_prices.{symbol}",
                            message="Must be a positive number",
                            value=price
                        ))

        return errors

    @classmethod
    def validate_config(cls, config: dict[str, Any]) -> list[ValidationError]:
        """Validate every section of a merged configuration."""
        errors = []
        errors.extend(cls.validate_polling_params(config.get("polling", {})))
        errors.extend(cls.validate_provider_params(config.get("providers", {})))
        errors.extend(cls.validate_synthetic_params(config.get("synthetic", {})))
        return errors
