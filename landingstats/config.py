"""Configuration management for landingstats.

Handles loading, saving, and validating configuration from TOML files.
Configuration is stored at ~/.landingstats/config.toml by default.

Example configuration:
    [storage]
    directory = "~/.landingstats/data"
    namespace = "landing"
    subscribers_key = "subscribers"
    quota_bytes = 5242880

    [retention]
    max_events = 1000
    max_visitors = 0  # 0 = unbounded
    max_sessions = 0

    [tracking]
    scroll_milestones = [25, 50, 75, 90, 100]
    scroll_debounce_ms = 150
    scroll_position_threshold = 25

    [dashboard]
    recent_visitors = 5
    time_format = "%Y-%m-%d %H:%M:%S"

    [export]
    directory = "./exports"
"""

from __future__ import annotations

import sys
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# Python 3.11+ has tomllib in stdlib (read-only)
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from landingstats.storage.store import (
    DEFAULT_MAX_EVENTS,
    DEFAULT_NAMESPACE,
    DEFAULT_QUOTA_BYTES,
    DEFAULT_SUBSCRIBERS_KEY,
    JsonFileBackend,
    PersistenceStore,
    RetentionPolicy,
)


@dataclass
class StorageConfig:
    """Where and how collections are stored."""

    directory: str = "~/.landingstats/data"
    namespace: str = DEFAULT_NAMESPACE
    subscribers_key: str = DEFAULT_SUBSCRIBERS_KEY
    quota_bytes: int = DEFAULT_QUOTA_BYTES  # 0 disables the quota


@dataclass
class RetentionConfig:
    """Per-collection record caps (0 = unbounded)."""

    max_events: int = DEFAULT_MAX_EVENTS
    max_visitors: int = 0
    max_sessions: int = 0


@dataclass
class TrackingConfig:
    """Scroll tracking behaviour."""

    scroll_milestones: list[int] = field(default_factory=lambda: [25, 50, 75, 90, 100])
    scroll_debounce_ms: int = 150
    scroll_position_threshold: int = 25


@dataclass
class DashboardConfig:
    """Dashboard rendering options."""

    recent_visitors: int = 5
    time_format: str = "%Y-%m-%d %H:%M:%S"
    color_enabled: bool = True


@dataclass
class ExportConfig:
    """Export file location."""

    directory: str = "./exports"


@dataclass
class LandingStatsConfig:
    """Complete landingstats configuration."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    retention: RetentionConfig = field(default_factory=RetentionConfig)
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)
    export: ExportConfig = field(default_factory=ExportConfig)

    @classmethod
    def default(cls) -> LandingStatsConfig:
        """Create default configuration."""
        return cls()

    def create_store(self) -> PersistenceStore:
        """Build the persistence store described by this configuration."""
        backend = JsonFileBackend(
            Path(self.storage.directory).expanduser(),
            quota_bytes=self.storage.quota_bytes,
        )
        return PersistenceStore(
            backend,
            namespace=self.storage.namespace,
            retention=RetentionPolicy(
                max_events=self.retention.max_events,
                max_visitors=self.retention.max_visitors,
                max_sessions=self.retention.max_sessions,
            ),
            subscribers_key=self.storage.subscribers_key,
        )


# Default configuration file paths
DEFAULT_CONFIG_DIR = Path.home() / ".landingstats"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.toml"


def _int_setting(data: dict[str, Any], key: str, default: int, minimum: int = 0) -> int:
    """Read a non-negative integer, falling back to the default when invalid."""
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        warnings.warn(f"Invalid value for {key!r}: {value!r}, using {default}")
        return default
    return value


def _parse_storage_config(data: dict[str, Any]) -> StorageConfig:
    """Parse storage configuration from dict."""
    return StorageConfig(
        directory=data.get("directory", "~/.landingstats/data"),
        namespace=data.get("namespace", DEFAULT_NAMESPACE),
        subscribers_key=data.get("subscribers_key", DEFAULT_SUBSCRIBERS_KEY),
        quota_bytes=_int_setting(data, "quota_bytes", DEFAULT_QUOTA_BYTES),
    )


def _parse_retention_config(data: dict[str, Any]) -> RetentionConfig:
    """Parse retention configuration from dict."""
    return RetentionConfig(
        max_events=_int_setting(data, "max_events", DEFAULT_MAX_EVENTS, minimum=1),
        max_visitors=_int_setting(data, "max_visitors", 0),
        max_sessions=_int_setting(data, "max_sessions", 0),
    )


def _parse_tracking_config(data: dict[str, Any]) -> TrackingConfig:
    """Parse tracking configuration from dict."""
    milestones = data.get("scroll_milestones", [25, 50, 75, 90, 100])
    if not isinstance(milestones, list) or not all(
        isinstance(m, int) and 0 < m <= 100 for m in milestones
    ):
        warnings.warn(f"Invalid scroll_milestones: {milestones!r}, using defaults")
        milestones = [25, 50, 75, 90, 100]

    return TrackingConfig(
        scroll_milestones=sorted(set(milestones)),
        scroll_debounce_ms=_int_setting(data, "scroll_debounce_ms", 150),
        scroll_position_threshold=_int_setting(data, "scroll_position_threshold", 25),
    )


def _parse_dashboard_config(data: dict[str, Any]) -> DashboardConfig:
    """Parse dashboard configuration from dict."""
    return DashboardConfig(
        recent_visitors=_int_setting(data, "recent_visitors", 5),
        time_format=data.get("time_format", "%Y-%m-%d %H:%M:%S"),
        color_enabled=data.get("color_enabled", True),
    )


def _parse_export_config(data: dict[str, Any]) -> ExportConfig:
    """Parse export configuration from dict."""
    return ExportConfig(directory=data.get("directory", "./exports"))


def load_config(config_path: Path | None = None) -> LandingStatsConfig:
    """Load configuration from TOML file.

    Args:
        config_path: Path to config file. Uses default if not provided.

    Returns:
        Loaded configuration, or default if file doesn't exist.
    """
    path = config_path or DEFAULT_CONFIG_PATH

    if not path.exists():
        return LandingStatsConfig.default()

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as e:
        warnings.warn(f"Failed to load config from {path}: {e}")
        return LandingStatsConfig.default()

    return LandingStatsConfig(
        storage=_parse_storage_config(data.get("storage", {})),
        retention=_parse_retention_config(data.get("retention", {})),
        tracking=_parse_tracking_config(data.get("tracking", {})),
        dashboard=_parse_dashboard_config(data.get("dashboard", {})),
        export=_parse_export_config(data.get("export", {})),
    )


def _format_toml_value(value: Any) -> str:
    """Format a Python value as TOML."""
    if isinstance(value, bool):
        return "true" if value else "false"
    elif isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    elif isinstance(value, (int, float)):
        return str(value)
    elif isinstance(value, list):
        items = [_format_toml_value(item) for item in value]
        return "[" + ", ".join(items) + "]"
    else:
        return f'"{value}"'


def save_config(config: LandingStatsConfig, config_path: Path | None = None) -> None:
    """Save configuration to TOML file.

    Args:
        config: Configuration to save
        config_path: Path to config file. Uses default if not provided.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)

    lines = [
        "# landingstats configuration",
        "",
        "[storage]",
        f"directory = {_format_toml_value(config.storage.directory)}",
        f"namespace = {_format_toml_value(config.storage.namespace)}",
        f"subscribers_key = {_format_toml_value(config.storage.subscribers_key)}",
        f"quota_bytes = {config.storage.quota_bytes}",
        "",
        "[retention]",
        f"max_events = {config.retention.max_events}",
        f"max_visitors = {config.retention.max_visitors}",
        f"max_sessions = {config.retention.max_sessions}",
        "",
        "[tracking]",
        f"scroll_milestones = {_format_toml_value(config.tracking.scroll_milestones)}",
        f"scroll_debounce_ms = {config.tracking.scroll_debounce_ms}",
        f"scroll_position_threshold = {config.tracking.scroll_position_threshold}",
        "",
        "[dashboard]",
        f"recent_visitors = {config.dashboard.recent_visitors}",
        f"time_format = {_format_toml_value(config.dashboard.time_format)}",
        f"color_enabled = {_format_toml_value(config.dashboard.color_enabled)}",
        "",
        "[export]",
        f"directory = {_format_toml_value(config.export.directory)}",
        "",
    ]

    with open(path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines))


def generate_default_config() -> str:
    """Generate default configuration as TOML string."""
    return """# landingstats configuration
# Copy this file to ~/.landingstats/config.toml and customize

[storage]
# Directory holding one JSON file per collection
directory = "~/.landingstats/data"

# Prefix for the visitor, event and session collection keys
namespace = "landing"

# Collection written by the signup form (read-only here)
subscribers_key = "subscribers"

# Total bytes allowed across all collections (0 = no limit)
quota_bytes = 5242880

[retention]
# Most recent events kept; older ones are evicted first
max_events = 1000

# Visitor and session caps (0 = unbounded)
max_visitors = 0
max_sessions = 0

[tracking]
# Scroll depth percentages recorded once per page load
scroll_milestones = [25, 50, 75, 90, 100]

# Quiet period before the settled scroll position is recorded
scroll_debounce_ms = 150

# Settled positions below this percentage are not recorded
scroll_position_threshold = 25

[dashboard]
# Number of recent visitors to list
recent_visitors = 5

# strftime format for visitor times
time_format = "%Y-%m-%d %H:%M:%S"

color_enabled = true

[export]
# Where export files are written
directory = "./exports"
"""


# Global config instance (lazy loaded)
_config: LandingStatsConfig | None = None


def get_config() -> LandingStatsConfig:
    """Get the global configuration instance.

    Loads from file on first call, caches thereafter.
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> LandingStatsConfig:
    """Reload configuration from file."""
    global _config
    _config = load_config()
    return _config


def set_config(config: LandingStatsConfig | None) -> None:
    """Set the global configuration instance.

    Useful for testing or programmatic configuration. Passing None forces
    the next get_config() to reload from disk.
    """
    global _config
    _config = config
