"""Configuration for the PKCE client and the command gateway.

Values come from keyword arguments or from the environment. Entry points call
python-dotenv's load_dotenv() first, so a local .env file works as well.
"""

from __future__ import annotations

import os

from pydantic import BaseModel, Field, field_validator

DEFAULT_SCOPE = "openid profile email"
DEFAULT_PARAMETER_NAMESPACE = "/plc/secure"
DEFAULT_SECRET_KEYS = ("ip-address", "mqtt-topic", "gateway-id")
DEFAULT_LOG_GROUP_NAME = "/aws/lambda/plc-control-audit"


class ClientConfig(BaseModel):
    """Identity provider and API settings for the browser-side client."""

    client_id: str
    domain: str  # identity provider base URL, e.g. https://x.auth.region.amazoncognito.com
    redirect_uri: str
    logout_uri: str
    scope: str = DEFAULT_SCOPE
    api_endpoint: str | None = None
    timeout: float = 30.0

    @field_validator("domain", "api_endpoint")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        return v.rstrip("/") if v else v

    @property
    def authorization_endpoint(self) -> str:
        return f"{self.domain}/oauth2/authorize"

    @property
    def token_endpoint(self) -> str:
        return f"{self.domain}/oauth2/token"

    @property
    def userinfo_endpoint(self) -> str:
        return f"{self.domain}/oauth2/userInfo"

    @property
    def logout_endpoint(self) -> str:
        return f"{self.domain}/logout"

    @classmethod
    def from_env(cls) -> ClientConfig:
        return cls(
            client_id=os.environ["PKCEGATE_CLIENT_ID"],
            domain=os.environ["PKCEGATE_DOMAIN"],
            redirect_uri=os.environ["PKCEGATE_REDIRECT_URI"],
            logout_uri=os.environ["PKCEGATE_LOGOUT_URI"],
            scope=os.getenv("PKCEGATE_SCOPE", DEFAULT_SCOPE),
            api_endpoint=os.getenv("PKCEGATE_API_ENDPOINT"),
        )


class GatewayConfig(BaseModel):
    """Settings for the command gateway service."""

    parameter_namespace: str = DEFAULT_PARAMETER_NAMESPACE
    secret_keys: tuple[str, ...] = DEFAULT_SECRET_KEYS
    log_group_name: str = DEFAULT_LOG_GROUP_NAME
    allowed_origins: list[str] = Field(default_factory=lambda: ["*"])
    audit_backend: str = "cloudwatch"
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"

    @field_validator("parameter_namespace")
    @classmethod
    def normalize_namespace(cls, v: str) -> str:
        return "/" + v.strip("/")

    @field_validator("audit_backend")
    @classmethod
    def validate_audit_backend(cls, v: str) -> str:
        if v not in ("cloudwatch", "logging"):
            raise ValueError("audit_backend must be 'cloudwatch' or 'logging'")
        return v

    @classmethod
    def from_env(cls) -> GatewayConfig:
        origins = os.getenv("PKCEGATE_ALLOWED_ORIGINS", "*")
        return cls(
            parameter_namespace=os.getenv(
                "PKCEGATE_PARAMETER_NAMESPACE", DEFAULT_PARAMETER_NAMESPACE
            ),
            log_group_name=os.getenv("LOG_GROUP_NAME", DEFAULT_LOG_GROUP_NAME),
            allowed_origins=[o.strip() for o in origins.split(",") if o.strip()],
            audit_backend=os.getenv("PKCEGATE_AUDIT_BACKEND", "cloudwatch"),
            host=os.getenv("PKCEGATE_HOST", "127.0.0.1"),
            port=int(os.getenv("PKCEGATE_PORT", "8000")),
            log_level=os.getenv("PKCEGATE_LOG_LEVEL", "INFO"),
        )
