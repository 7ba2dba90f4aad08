"""Central environment-driven settings for the rental payment service.

The process loads this once at startup. Behavior is controlled by environment
variables (see `.env.example`).
"""

from decimal import Decimal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "rentpay"
    log_level: str = "INFO"
    storage_backend: str = Field(default="sql", pattern="^(sql|memory)$")
    database_url: str = "sqlite+pysqlite:///./rentpay.db"
    auto_create_schema: bool = False
    catalog_backend: str = Field(default="http", pattern="^(http|memory)$")
    catalog_url: str = "http://catalog:8002"
    catalog_timeout_seconds: float = 3.0
    # Seed for CATALOG_BACKEND=memory, as a JSON list of catalog item payloads.
    catalog_items: list[dict] = Field(default_factory=list)
    gateway_url: str = "https://api.razorpay.com/v1"
    gateway_key_id: str = ""
    gateway_key_secret: str = ""
    gateway_timeout_seconds: float = 10.0
    settlement_currency: str = "INR"
    currency_minor_units: int = 100
    platform_fee_rate: Decimal = Decimal("0.15")
    safety_deposit: int = 200
    tracing_enabled: bool = False
    otel_exporter_otlp_endpoint: str = "http://otel-collector:4318/v1/traces"
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
