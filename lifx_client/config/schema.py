"""Configuration schema using Pydantic."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings

from lifx_client.lan.protocol import DEFAULT_PORT
from lifx_client.lan.throttle import DEFAULT_SEND_INTERVAL
from lifx_client.rest.client import DEFAULT_BASE_URL


class Base(BaseModel):
    """Base model that accepts both camelCase and snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LanConfig(Base):
    """LAN protocol client configuration."""

    port: int = Field(default=DEFAULT_PORT, ge=0, le=65535)  # Device UDP port
    bind_port: int = Field(default=0, ge=0, le=65535)  # Local port (0 = any free port)
    broadcast_address: str = "255.255.255.255"
    timeout: float = 1.0  # Seconds each discover/send listens for replies
    send_interval: float = DEFAULT_SEND_INTERVAL  # Minimum seconds between sends


class RestConfig(Base):
    """Cloud HTTP API configuration."""

    secret: str = ""  # Personal access token from cloud.lifx.com
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 10.0


class Config(BaseSettings):
    """Root configuration for lifx_client."""

    lan: LanConfig = Field(default_factory=LanConfig)
    rest: RestConfig = Field(default_factory=RestConfig)
    log_level: str = "INFO"

    model_config = ConfigDict(env_prefix="LIFX_", env_nested_delimiter="__")
