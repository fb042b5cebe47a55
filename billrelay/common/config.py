"""Central environment-driven settings for the relay process.

The process loads this once at startup and hands the same frozen snapshot to
every component. Missing required variables fail construction with a
`pydantic.ValidationError`, which stops the process before it serves traffic
(see `.env.example`).
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_ENVIRONMENT = "default"


class RelaySettings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "billrelay"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3000

    gateway_base_url: str
    gateway_username: str
    gateway_password: str
    gateway_token_path: str = "/token"
    gateway_push_path: str = "/api/push-billpay"
    gateway_timeout_seconds: float = Field(default=15.0, gt=0)
    # Off only where operations explicitly accept the gateway's certificate chain.
    gateway_verify_tls: bool = True
    gateway_identity_headers: dict[str, str] = Field(default_factory=dict)
    token_validity_seconds: int = Field(default=86400, gt=0)
    token_single_flight: bool = True

    internal_service_url: str
    internal_callback_path: str = "/callbacks/mixbyyas"
    internal_callback_paths: dict[str, str] = Field(default_factory=dict)
    internal_timeout_seconds: float = Field(default=15.0, gt=0)
    callback_environments: list[str] = Field(default_factory=lambda: ["prod"])

    tracing_enabled: bool = True
    otel_exporter_otlp_endpoint: str = "http://otel-collector:4318/v1/traces"
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    @property
    def token_url(self) -> str:
        return f"{self.gateway_base_url.rstrip('/')}{self.gateway_token_path}"

    @property
    def push_url(self) -> str:
        return f"{self.gateway_base_url.rstrip('/')}{self.gateway_push_path}"

    def internal_callback_url(self, environment: str = DEFAULT_ENVIRONMENT) -> str:
        """Resolve the internal endpoint for one callback environment tag.

        Tags without an entry in `internal_callback_paths` fall back to
        `internal_callback_path`.
        """

        path = self.internal_callback_paths.get(environment, self.internal_callback_path)
        return f"{self.internal_service_url.rstrip('/')}{path}"


settings = RelaySettings()
