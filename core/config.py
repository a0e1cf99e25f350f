"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- Reporting thresholds are configuration, not code
"""

import os
from functools import lru_cache
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from .env file
load_dotenv()


class EngineConfig(BaseModel):
    """Resource policy for population evaluation."""

    max_concurrent_evaluations: int = Field(
        default=5, gt=0, description="Record evaluations in flight per aggregation"
    )
    max_concurrent_schools: int = Field(
        default=3, gt=0, description="School aggregations in flight per comparison"
    )
    aggregation_timeout_seconds: float | None = Field(
        default=None, gt=0.0, description="Overall deadline for one aggregation (None = no deadline)"
    )
    rule_table_path: str | None = Field(
        default=None, description="JSON rule table replacing the built-in one"
    )


class ThresholdConfig(BaseModel):
    """Percentages that drive priority areas and program recommendations."""

    priority_area_threshold: int = Field(
        default=10, ge=0, le=100, description="Minimum prevalence for a priority area"
    )
    high_severity_threshold: int = Field(
        default=25, ge=0, le=100, description="Prevalence at which an area is HIGH"
    )
    medium_severity_threshold: int = Field(
        default=15, ge=0, le=100, description="Prevalence at which an area is MEDIUM"
    )
    program_threshold: int = Field(
        default=15, ge=0, le=100, description="Prevalence at which a program is recommended"
    )
    high_risk_alert_threshold: int = Field(
        default=5, ge=0, le=100, description="HIGH-risk share above which intervention is urgent"
    )
    immunization_gap_threshold: int = Field(
        default=20, ge=0, le=100, description="Incomplete immunization share triggering a campaign"
    )
    deworming_gap_threshold: int = Field(
        default=15, ge=0, le=100, description="Not-dewormed share triggering a campaign"
    )

    @model_validator(mode="after")
    def severity_thresholds_ordered(self) -> "ThresholdConfig":
        if self.medium_severity_threshold > self.high_severity_threshold:
            raise ValueError("medium severity threshold cannot exceed high severity threshold")
        return self


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    engine: EngineConfig = Field(default_factory=EngineConfig)
    thresholds: ThresholdConfig = Field(default_factory=ThresholdConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    def _optional_float(val: str | None) -> float | None:
        if val is None or not val.strip():
            return None
        return float(val)

    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    engine_config = EngineConfig(
        max_concurrent_evaluations=int(os.getenv("DSS_MAX_CONCURRENT_EVALUATIONS", "5")),
        max_concurrent_schools=int(os.getenv("DSS_MAX_CONCURRENT_SCHOOLS", "3")),
        aggregation_timeout_seconds=_optional_float(os.getenv("DSS_AGGREGATION_TIMEOUT_SECONDS")),
        rule_table_path=os.getenv("DSS_RULE_TABLE_PATH") or None,
    )

    threshold_config = ThresholdConfig(
        priority_area_threshold=int(os.getenv("DSS_PRIORITY_AREA_THRESHOLD", "10")),
        high_risk_alert_threshold=int(os.getenv("DSS_HIGH_RISK_ALERT_THRESHOLD", "5")),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        engine=engine_config,
        thresholds=threshold_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def validate_config() -> None:
    """Validate configuration at startup."""
    try:
        config = get_config()
        print(f"Configuration loaded for {config.environment} environment")
        if config.engine.rule_table_path:
            if not os.path.exists(config.engine.rule_table_path):
                raise FileNotFoundError(
                    f"rule table not found: {config.engine.rule_table_path}"
                )
            print(f"Custom rule table: {config.engine.rule_table_path}")
    except Exception as e:
        print(f"Configuration validation failed: {e}")
        raise


def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\nCONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")

    print("\nENGINE")
    print(f"Concurrent Evaluations: {config.engine.max_concurrent_evaluations}")
    print(f"Concurrent Schools: {config.engine.max_concurrent_schools}")
    print(f"Aggregation Timeout: {config.engine.aggregation_timeout_seconds or 'none'}")

    print("\nTHRESHOLDS")
    print(f"Priority Area: {config.thresholds.priority_area_threshold}%")
    print(
        f"Severity: HIGH >= {config.thresholds.high_severity_threshold}%, "
        f"MEDIUM >= {config.thresholds.medium_severity_threshold}%"
    )
    print(f"High-Risk Alert: > {config.thresholds.high_risk_alert_threshold}%")


if __name__ == "__main__":
    validate_config()
    print_config_summary()
