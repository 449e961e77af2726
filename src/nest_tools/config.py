"""Configuration management."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml


@dataclass
class NestApiConfig:
    """Upstream OWASP Nest API settings."""
    base_url: str = "https://nest.owasp.org/api/v0"
    timeout: float = 10.0
    max_retries: int = 2
    retry_delay: float = 0.5


@dataclass
class PaginationConfig:
    """Page size limits applied by the aggregator."""
    default_page_size: int = 100
    # Per-resource caps, e.g. {"contributors": 50}
    page_size_caps: dict = field(default_factory=dict)


@dataclass
class EnrichmentConfig:
    """Web page enrichment settings."""
    enabled: bool = True
    timeout: float = 10.0
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    )
    max_content_chars: int = 5000
    max_links: int = 20


@dataclass
class CacheConfig:
    """Optional response cache."""
    enabled: bool = False
    ttl_seconds: float = 300.0


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    json_format: bool = False


@dataclass
class Settings:
    """Application settings."""

    # API key (from environment only)
    nest_api_key: Optional[str] = None

    # Config sections
    nest: NestApiConfig = field(default_factory=NestApiConfig)
    pagination: PaginationConfig = field(default_factory=PaginationConfig)
    enrichment: EnrichmentConfig = field(default_factory=EnrichmentConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def page_size_caps(self) -> dict[str, int]:
        return {str(key): int(value) for key, value in self.pagination.page_size_caps.items()}


def load_config(config_path: Path = Path("config.yaml")) -> dict:
    """Load configuration from YAML file."""
    if not config_path.exists():
        return {}

    with open(config_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def get_settings(config_path: Path = Path("config.yaml")) -> Settings:
    """Get application settings from YAML config and environment."""
    config = load_config(config_path)

    settings = Settings(nest_api_key=os.getenv("NEST_API_KEY") or None)

    # Apply YAML config section by section
    for section in ("nest", "pagination", "enrichment", "cache", "logging"):
        if section not in config:
            continue

        target = getattr(settings, section)
        for key, value in (config[section] or {}).items():
            if not hasattr(target, key):
                raise ValueError(f"Unknown config option: {section}.{key}")
            setattr(target, key, value)

    return settings
