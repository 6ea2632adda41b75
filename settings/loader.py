"""
Load and validate run configuration files.

Two YAML files drive a run:
- config/maps.yaml     — locations, search queries, batching and pacing
- config/websites.yaml — website email enrichment (input/output, workers, cache)

Environment variables (optionally from a .env file) override a few
operational values: MAPLEAD_HEADLESS, MAPLEAD_DATA_DIR, MAPLEAD_SPEED.
"""

import os
import yaml
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from pathlib import Path


CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"

MAX_PARALLEL_SCRAPERS = 8


@dataclass
class ContentGate:
    """A record is kept when at least one of `require_any` fields is non-empty."""
    require_any: List[str] = field(default_factory=lambda: ["name", "address"])

    def passes(self, record: dict) -> bool:
        if not self.require_any:
            return True
        return any((record.get(f) or "").strip() for f in self.require_any)


@dataclass
class ScrollConfig:
    """Pacing and stop conditions for draining an infinite-scroll feed."""
    max_iterations: int = 200
    stagnation_threshold: int = 5
    large_delta: int = 1000
    small_delta: int = 300
    large_every: int = 5
    load_more_every: int = 10
    load_more_offset: int = 7
    pause_s: float = 0.8
    pause_jitter_s: float = 0.4


@dataclass
class LocationConfig:
    """One target set: a named place with the search URLs that cover it."""
    name: str
    queries: List[str] = field(default_factory=list)
    enabled: bool = True


@dataclass
class MapsCrawlConfig:
    """Complete configuration for a listing discovery run."""
    adapter: str = "google_maps"
    base_name: str = "home_dec"
    batch_size: int = 10
    max_listings: int = 0
    headless: bool = True
    speed_factor: float = 1.0
    data_dir: str = "data"
    screenshot_dir: str = "data/screenshots"
    search_timeout_ms: int = 90000
    ready_timeout_ms: int = 30000
    detail_timeout_ms: int = 30000
    detail_ready_timeout_ms: int = 20000
    max_retries: int = 2
    retry_base_s: float = 2.0
    retry_jitter_s: float = 2.0
    batch_delay_s: float = 3.0
    batch_jitter_s: float = 2.0
    query_delay_s: float = 5.0
    query_jitter_s: float = 5.0
    location_delay_s: float = 10.0
    location_jitter_s: float = 5.0
    scroll: ScrollConfig = field(default_factory=ScrollConfig)
    persist_gate: ContentGate = field(default_factory=ContentGate)
    selectors: Dict[str, List[str]] = field(default_factory=dict)
    locations: List[LocationConfig] = field(default_factory=list)

    def validate(self):
        errors = []
        if self.batch_size < 1:
            errors.append(f"batch_size must be >= 1, got {self.batch_size}")
        if self.max_retries < 0:
            errors.append(f"max_retries must be non-negative, got {self.max_retries}")
        if self.max_listings < 0:
            errors.append(f"max_listings must be non-negative, got {self.max_listings}")
        if self.scroll.stagnation_threshold < 1:
            errors.append("scroll.stagnation_threshold must be >= 1")
        if errors:
            raise ValueError("Invalid maps config:\n" + "\n".join(f"  - {e}" for e in errors))


@dataclass
class EmailCrawlConfig:
    """Complete configuration for a website email enrichment run."""
    data_dir: str = "data"
    input_filename: str = "listings.csv"
    output_filename: str = "listings_emails.csv"
    navigation_timeout_ms: int = 8000
    probe_timeout_s: float = 2.0
    max_emails_per_site: int = 3
    parallel_scrapers: Optional[int] = None
    limit: int = 0
    remove_rows_without_emails: bool = True
    use_workers: bool = True
    cache_results: bool = True
    headless: bool = True
    debug: bool = False
    block_resources: bool = True
    contact_page_keywords: List[str] = field(default_factory=lambda: [
        "contact", "about", "reach", "connect", "email", "get in touch",
    ])
    contact_paths: List[str] = field(default_factory=lambda: [
        "/contact", "/contact-us", "/about", "/about-us",
    ])

    @property
    def input_path(self) -> Path:
        return Path(self.data_dir) / self.input_filename

    @property
    def output_path(self) -> Path:
        return Path(self.data_dir) / self.output_filename

    @property
    def worker_count(self) -> int:
        """Configured worker count, or cpu_count - 1; always within [1, 8]."""
        if not self.use_workers:
            return 1
        count = self.parallel_scrapers
        if count is None:
            count = (os.cpu_count() or 2) - 1
        return max(1, min(count, MAX_PARALLEL_SCRAPERS))


# ──────────────────────────────────────────────────
#  Loaders
# ──────────────────────────────────────────────────

def _read_yaml(path) -> dict:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off"}


def _pick(raw: dict, cls, skip=()) -> dict:
    """Keep only keys that are plain dataclass fields."""
    names = set(cls.__dataclass_fields__) - set(skip)
    return {k: v for k, v in raw.items() if k in names}


def load_maps_config(path=CONFIG_DIR / "maps.yaml") -> MapsCrawlConfig:
    """Load the listing discovery config from YAML, then apply env overrides."""
    raw = _read_yaml(path)
    defaults = raw.get("defaults", {}) or {}

    locations = []
    for name, loc in (raw.get("locations", {}) or {}).items():
        loc = loc or {}
        locations.append(LocationConfig(
            name=name,
            queries=list(loc.get("queries", [])),
            enabled=loc.get("enabled", True),
        ))

    config = MapsCrawlConfig(
        **_pick(defaults, MapsCrawlConfig, skip=("scroll", "persist_gate", "selectors", "locations")),
        scroll=ScrollConfig(**_pick(defaults.get("scroll", {}) or {}, ScrollConfig)),
        persist_gate=ContentGate(
            require_any=list((defaults.get("persist_gate", {}) or {}).get("require_any", ["name", "address"]))
        ),
        selectors=dict(raw.get("selectors", {}) or {}),
        locations=locations,
    )

    config.headless = _env_bool("MAPLEAD_HEADLESS", config.headless)
    config.data_dir = os.getenv("MAPLEAD_DATA_DIR", config.data_dir)
    if os.getenv("MAPLEAD_SPEED"):
        config.speed_factor = float(os.environ["MAPLEAD_SPEED"])

    config.validate()
    return config


def load_email_config(path=CONFIG_DIR / "websites.yaml") -> EmailCrawlConfig:
    """Load the website email enrichment config from YAML, then apply env overrides."""
    raw = _read_yaml(path)
    config = EmailCrawlConfig(**_pick(raw, EmailCrawlConfig))
    config.headless = _env_bool("MAPLEAD_HEADLESS", config.headless)
    config.data_dir = os.getenv("MAPLEAD_DATA_DIR", config.data_dir)
    if config.max_emails_per_site < 0:
        raise ValueError(f"max_emails_per_site must be >= 0, got {config.max_emails_per_site}")
    return config
