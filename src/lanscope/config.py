"""Configuration management for Lanscope."""

import json
from pathlib import Path
from typing import Dict, List

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_FALLBACK_SERVICE_TYPES = [
    "_http._tcp.",
    "_https._tcp.",
    "_ipp._tcp.",
    "_printer._tcp.",
    "_raop._tcp.",
    "_airplay._tcp.",
    "_workstation._tcp.",
    "_smb._tcp.",
    "_afpovertcp._tcp.",
    "_ssh._tcp.",
    "_sftp-ssh._tcp.",
    "_rfb._tcp.",
    "_ftp._tcp.",
]

DEFAULT_FLAG_LABELS = {
    0: "Ready",
    1: "Supports Pairing",
    2: "Configured",
    3: "Supports Remote Access",
}


class DiscoveryConfig(BaseModel): # Nested under Config (BaseSettings)
    """Configuration for service browsing and resolution."""

    meta_service_type: str = Field(default="_services._dns-sd._udp.", description="Service type whose instances are themselves service types.")
    domain: str = Field(default="local.", description="Browse domain.")
    fallback_delay_seconds: float = Field(default=4.0, gt=0, le=120, description="Delay before well-known types are browsed if meta-discovery found nothing.")
    resolve_timeout_seconds: float = Field(default=10.0, gt=0, le=120, description="Timeout for resolving a single service instance.")
    fallback_service_types: List[str] = Field(default_factory=lambda: list(DEFAULT_FALLBACK_SERVICE_TYPES), description="Service types browsed directly when meta-discovery is unproductive.")
    clear_registry_on_stop: bool = Field(default=False, description="Drop all known devices when browsing stops.")

    @field_validator("meta_service_type", "domain")
    @classmethod
    def _require_trailing_dot(cls, value: str) -> str:
        if not value:
            raise ValueError("must not be empty")
        return value if value.endswith(".") else value + "."

class CorrelationConfig(BaseModel):
    """Configuration for hardware address correlation."""

    enabled: bool = Field(default=True, description="Correlate resolved addresses with the neighbor (ARP) table.")
    neighbor_command: List[str] = Field(default_factory=lambda: ["arp", "-an"], description="Command that prints the neighbor table.")
    command_timeout_seconds: float = Field(default=5.0, gt=0, le=60, description="Timeout for the neighbor table command.")
    proc_arp_path: Path = Field(default=Path("/proc/net/arp"), description="Kernel ARP table, read instead of the command when it exists.")

class InterpreterConfig(BaseModel):
    """Bit labels used when decoding hex flag records.

    Flag bit meanings differ between services, so they are configuration
    rather than fixed knowledge.
    """

    flag_keys: List[str] = Field(default_factory=lambda: ["sf", "flags"], description="Record keys whose values are hex bitmasks.")
    flag_labels: Dict[int, str] = Field(default_factory=lambda: dict(DEFAULT_FLAG_LABELS), description="Bit index to label.")

    @field_validator("flag_labels")
    @classmethod
    def _bits_in_range(cls, value: Dict[int, str]) -> Dict[int, str]:
        for bit in value:
            if bit < 0 or bit > 63:
                raise ValueError(f"flag bit {bit} out of range 0-63")
        return value

class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format ('json' or 'console')")


class Config(BaseSettings):
    """Main configuration for Lanscope. Loads from environment variables prefixed with LANSCOPE_."""

    model_config = SettingsConfigDict(
        env_prefix='LANSCOPE_',
        env_nested_delimiter='__', # e.g., LANSCOPE_DISCOVERY__RESOLVE_TIMEOUT_SECONDS
        extra='ignore',
        env_file='.env',
        env_file_encoding='utf-8'
    )

    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    correlation: CorrelationConfig = Field(default_factory=CorrelationConfig)
    interpreter: InterpreterConfig = Field(default_factory=InterpreterConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, file_path: Path) -> "Config":
        """Create configuration strictly from a JSON file.

        Environment variables are not layered on top of the file contents.
        """
        with open(file_path) as f:
            config_data = json.load(f)
        return cls.model_validate(config_data)
