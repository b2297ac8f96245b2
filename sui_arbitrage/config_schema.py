"""
Configuration schema validation using Pydantic
"""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

SuiNetwork = Literal["mainnet", "testnet", "devnet"]


class RpcSettings(BaseModel):
    """RPC endpoint configuration"""

    network: SuiNetwork = "mainnet"
    urls: List[str] = Field(min_length=1, description="Primary first, then fallbacks")
    rate_limit: Optional[float] = Field(
        default=None, gt=0, le=1000, description="Requests per second"
    )
    max_retries: int = Field(ge=1, le=10, default=3)
    retry_delay: float = Field(ge=0, le=60, default=1.0)
    timeout: float = Field(gt=0, le=300, default=30.0)

    @field_validator("urls")
    @classmethod
    def validate_urls(cls, v):
        cleaned = [url.strip() for url in v if url and url.strip()]
        if not cleaned:
            raise ValueError("at least one RPC URL is required")
        for url in cleaned:
            if not url.startswith(("http://", "https://")):
                raise ValueError(f"Invalid RPC URL format: {url}")
        return cleaned


class DexSettings(BaseModel):
    """Per-exchange deployment constants"""

    name: str
    enabled: bool = True
    package_id: str = Field(description="Package that emits the pool-creation event")
    event_type: Optional[str] = Field(
        default=None, description="Full Move event type; derived from package_id if unset"
    )
    page_size: int = Field(ge=1, le=50, default=50)
    max_events: int = Field(ge=1, le=100000, default=1000)
    default_fee_rate: float = Field(ge=0, lt=1, default=0.003)

    @field_validator("package_id")
    @classmethod
    def validate_package_id(cls, v):
        if not v.startswith("0x"):
            raise ValueError(f"package_id must be 0x-prefixed: {v}")
        return v


class MonitorSettings(BaseModel):
    """Spread monitor configuration"""

    min_spread: float = Field(ge=0, le=1000, default=0.5)
    check_interval: float = Field(gt=0, le=86400, default=30.0)
    history_size: int = Field(ge=1, le=100000, default=100)
    auto_refresh: bool = True


class OutputSettings(BaseModel):
    """Where snapshots are written"""

    directory: str = ".sui-arbitrage"
    pairs_file: str = "cross-dex-pairs.json"
    opportunities_file: str = "arbitrage-opportunities.json"


class MetricsSettings(BaseModel):
    """Prometheus exposition"""

    enabled: bool = False
    host: str = "0.0.0.0"
    port: int = Field(ge=1, le=65535, default=8000)


class AppConfig(BaseModel):
    """Top-level monitor configuration"""

    rpc: RpcSettings
    dexes: List[DexSettings] = Field(min_length=1)
    monitor: MonitorSettings = Field(default_factory=MonitorSettings)
    output: OutputSettings = Field(default_factory=OutputSettings)
    metrics: MetricsSettings = Field(default_factory=MetricsSettings)

    @model_validator(mode="after")
    def validate_unique_dexes(self):
        names = [dex.name for dex in self.dexes]
        duplicates = {name for name in names if names.count(name) > 1}
        if duplicates:
            raise ValueError(f"Duplicate DEX entries: {sorted(duplicates)}")
        return self

    @property
    def enabled_dexes(self) -> List[str]:
        return [dex.name for dex in self.dexes if dex.enabled]

    def dex_settings(self) -> Dict[str, DexSettings]:
        return {dex.name: dex for dex in self.dexes}
