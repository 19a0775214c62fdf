"""Configuration with environment variable support.

All settings can be configured via environment variables with the HOSTWARDEN_ prefix.
Example: HOSTWARDEN_CUSTOM_HOSTS_ENABLED=false forces managed hosts only.
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _parse_yaml(content: str) -> Any:
    try:
        return yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML: {e}") from e


def _parse_toml(content: str) -> Any:
    try:
        return tomllib.loads(content)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML: {e}") from e


_PARSERS = {
    ".yaml": _parse_yaml,
    ".yml": _parse_yaml,
    ".toml": _parse_toml,
}


def load_config_from_file(path: str | Path) -> dict[str, Any]:
    """Read a settings mapping from a ``.yaml``, ``.yml`` or ``.toml`` file.

    Raises FileNotFoundError for a missing file and ValueError for an unknown
    suffix, unreadable content or a document that is not a mapping.
    """
    path = Path(path)
    parse = _PARSERS.get(path.suffix.lower())
    if parse is None:
        raise ValueError(f"Unsupported config format: {path.suffix or path.name}")
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = parse(path.read_text(encoding="utf-8"))
    except UnicodeDecodeError as e:
        raise ValueError(f"Config file {path} is not valid UTF-8: {e}") from e
    except ValueError as e:
        raise ValueError(f"{e} ({path})") from e

    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


def flatten_config(config: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    """Join nested sections into ``section_key`` setting names."""
    flat: dict[str, Any] = {}
    for key, value in config.items():
        name = "_".join(filter(None, (prefix, str(key))))
        if isinstance(value, dict):
            flat |= flatten_config(value, name)
        else:
            flat[name] = value
    return flat


class HostwardenConfig(BaseSettings):
    """Host reconciliation settings.

    All settings can be overridden via environment variables:
    - HOSTWARDEN_MANAGED_DOMAIN: Suffix of generated hosts
    - HOSTWARDEN_CUSTOM_HOSTS_ENABLED: Allow user-supplied hosts
    - HOSTWARDEN_DOMAINS_STORAGE_PATH: Domain verification records file
    - HOSTWARDEN_ROUTES_STORAGE_PATH: Traffic route table file
    """

    model_config = SettingsConfigDict(
        env_prefix="HOSTWARDEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    managed_domain: str = Field(
        default="hc.example.com",
        min_length=1,
        description="Domain suffix of managed hosts, <unique-id>.<managed_domain>.",
    )
    custom_hosts_enabled: bool = Field(
        default=True,
        description="Allow custom hosts backed by verified domains. "
        "When disabled, custom hosts are replaced by the managed host.",
    )
    domains_storage_path: str = Field(
        default="domains.json",
        description="Path to the JSON file storing domain verification records.",
    )
    routes_storage_path: str = Field(
        default="routes.json",
        description="Path to the JSON file storing traffic routes.",
    )
    verification_prefix: str = Field(
        default="_hostwarden",
        description="Label prefixed to a domain to form its TXT verification record.",
    )
    log_level: str = Field(
        default="info",
        description="Log level (debug, info, warning, error).",
    )

    @classmethod
    def from_file(cls, path: str | Path, **overrides: Any) -> HostwardenConfig:
        """Build settings from a YAML or TOML file.

        Nested sections are flattened, so ``{"routes": {"storage_path": ...}}``
        sets ``routes_storage_path``. Keyword overrides win over the file.
        """
        values = flatten_config(load_config_from_file(path))
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def to_env_dict(self) -> dict[str, str]:
        """Export current configuration as environment variable dictionary."""
        return {
            "HOSTWARDEN_MANAGED_DOMAIN": self.managed_domain,
            "HOSTWARDEN_CUSTOM_HOSTS_ENABLED": str(self.custom_hosts_enabled).lower(),
            "HOSTWARDEN_DOMAINS_STORAGE_PATH": self.domains_storage_path,
            "HOSTWARDEN_ROUTES_STORAGE_PATH": self.routes_storage_path,
            "HOSTWARDEN_VERIFICATION_PREFIX": self.verification_prefix,
            "HOSTWARDEN_LOG_LEVEL": self.log_level,
        }


_config: HostwardenConfig | None = None


def get_config() -> HostwardenConfig:
    """Get the global configuration instance (cached)."""
    global _config
    if _config is None:
        _config = HostwardenConfig()
    return _config


def clear_config() -> None:
    """Clear the cached configuration (useful for testing)."""
    global _config
    _config = None
