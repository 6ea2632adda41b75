"""
MAPLEAD — Settings Package
YAML-backed run configuration for the maps and website email pipelines.
"""
from .loader import (
    ContentGate,
    EmailCrawlConfig,
    LocationConfig,
    MapsCrawlConfig,
    ScrollConfig,
    load_email_config,
    load_maps_config,
)

__all__ = [
    "ContentGate",
    "EmailCrawlConfig",
    "LocationConfig",
    "MapsCrawlConfig",
    "ScrollConfig",
    "load_email_config",
    "load_maps_config",
]
