"""Configuration models."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class PostgresConfig(BaseModel):
    """Postgres configuration."""

    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, description="Database port")
    database: str = Field("ecosort", description="Database name")
    user: str = Field("ecosort", description="Database user")
    password: Optional[str] = Field(None, description="Database password")
    password_env: Optional[str] = Field(None, description="Environment variable for password")
    dsn_env: Optional[str] = Field(None, description="Environment variable holding a full DSN")
    min_size: int = Field(1, description="Minimum pool size", ge=0, le=50)
    max_size: int = Field(10, description="Maximum pool size", ge=1, le=100)


class ValidatorConfig(BaseModel):
    """URL probing parameters."""

    timeout_seconds: float = Field(8.0, description="Per-attempt timeout", gt=0, le=60)
    rules_timeout_seconds: float = Field(
        3.0, description="Per-attempt timeout for location-rules sources", gt=0, le=60
    )
    user_agent: str = Field(
        "EcoSort-SourceValidator/1.0 (Municipal Waste Data Verification)",
        description="User-Agent header sent with every probe",
    )
    max_concurrent_probes: int = Field(4, description="Probe fan-out bound", ge=1, le=16)


class CacheConfig(BaseModel):
    """Source cache policy."""

    volatility_window_days: int = Field(60, description="Days either side of a deadline", ge=0)
    failure_lookback: int = Field(10, description="Log entries consulted for failures", ge=1, le=100)
    fallback_name: str = Field("Earth911 Recycling Search", description="Fallback label")
    fallback_url_template: str = Field(
        "https://search.earth911.com/?what=recycling&where={where}",
        description="Directory search URL, {where} is the url-encoded location",
    )

    @field_validator("fallback_url_template")
    @classmethod
    def validate_template(cls, v: str) -> str:
        """Require the {where} placeholder."""
        if "{where}" not in v:
            raise ValueError("fallback_url_template must contain '{where}'")
        return v


class ConfigModel(BaseModel):
    """Main configuration model."""

    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    validator: ValidatorConfig = Field(default_factory=ValidatorConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    log_level: str = Field("INFO", description="Root log level")
