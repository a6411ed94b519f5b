"""Configuration schema using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from staffbot.utils.helpers import get_operational_data_path


class DiscordConfig(BaseModel):
    """Discord client configuration."""

    model_config = ConfigDict(extra="ignore")

    enabled: bool = False
    token: str = ""  # Bot token from Discord Developer Portal
    proxy_url: str | None = None  # HTTP proxy for the REST client


class ServersConfig(BaseModel):
    """Guild ids the bot operates in."""

    model_config = ConfigDict(extra="ignore")

    main: int = 0
    testing: int = 0
    staff: int = 0


class RolesConfig(BaseModel):
    """Main-server role ids read by the reconciliation job."""

    model_config = ConfigDict(extra="ignore")

    bug_hunters: int = 0


class ChannelsConfig(BaseModel):
    """Channel ids for side-channel notices."""

    model_config = ConfigDict(extra="ignore")

    mod_logs: int = 0


class DatabaseConfig(BaseModel):
    """Listing store location."""

    model_config = ConfigDict(extra="ignore")

    path: str = ""  # empty means ~/.staffbot/data/listing.db

    @property
    def resolved_path(self) -> Path:
        if self.path.strip():
            return Path(self.path).expanduser()
        return get_operational_data_path() / "listing.db"


class RPCConfig(BaseModel):
    """RPC dispatch settings."""

    model_config = ConfigDict(extra="ignore")

    interaction_timeout_seconds: int = Field(default=120, ge=1)
    extra_staff_ids: list[str] = Field(default_factory=list)

    @field_validator("extra_staff_ids", mode="before")
    @classmethod
    def _stringify_ids(cls, value: object) -> object:
        if isinstance(value, list):
            return [str(item).strip() for item in value if str(item).strip()]
        return value


class APIConfig(BaseModel):
    """Direct RPC HTTP surface."""

    model_config = ConfigDict(extra="ignore")

    enabled: bool = False
    host: str = "127.0.0.1"  # localhost only by default
    port: int = 8787
    auth_token: str | None = None  # Required for all endpoints except /health
    rate_limit_per_minute: int = Field(default=60, ge=1)


class TelemetryConfig(BaseModel):
    """Metrics backend selection."""

    model_config = ConfigDict(extra="ignore")

    prometheus_enabled: bool = False
    prometheus_host: str = "127.0.0.1"
    prometheus_port: int = 9108


class TasksConfig(BaseModel):
    """Background job cadence."""

    model_config = ConfigDict(extra="ignore")

    role_sync_interval_seconds: int = Field(default=600, ge=30)


class Config(BaseSettings):
    """Root configuration for staffbot."""

    model_config = SettingsConfigDict(
        extra="ignore",
        populate_by_name=True,
        env_prefix="STAFFBOT_",
        env_nested_delimiter="__",
    )

    discord: DiscordConfig = Field(default_factory=DiscordConfig)
    servers: ServersConfig = Field(default_factory=ServersConfig)
    roles: RolesConfig = Field(default_factory=RolesConfig)
    channels: ChannelsConfig = Field(default_factory=ChannelsConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    rpc: RPCConfig = Field(default_factory=RPCConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)
    tasks: TasksConfig = Field(default_factory=TasksConfig)
