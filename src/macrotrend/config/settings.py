"""Application settings and configuration management."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Optional

import yaml

from macrotrend.analytics.tuning import (
    AdherenceConfig,
    AnalyticsConfig,
    ConsistencyConfig,
    CorrelationConfig,
    EWMAConfig,
    InsightConfig,
    ProgressConfig,
)

OUTPUT_FORMATS = ("table", "json")


def _default_config_dir() -> Path:
    """Return the default configuration directory."""
    return Path.home() / ".macrotrend"


def _default_config_path() -> Path:
    return _default_config_dir() / "config.yaml"


@dataclass
class DefaultsConfig:
    """Default values for CLI commands."""

    window_days: int = 30
    output_format: str = "table"  # "table" or "json"

    def __post_init__(self) -> None:
        if self.window_days < 1:
            raise ValueError(f"window_days must be >= 1, got {self.window_days}")
        if self.output_format not in OUTPUT_FORMATS:
            raise ValueError(
                f"output_format must be one of {OUTPUT_FORMATS}, got {self.output_format!r}"
            )


def _parse_section(section: str, current: Any, data: Any) -> Any:
    """Overlay one YAML mapping onto a config dataclass.

    Values are coerced to the type of the existing default, so ``1`` in a
    float field becomes ``1.0``. Unknown keys raise ValueError.
    """
    if not isinstance(data, dict):
        raise ValueError(f"config section '{section}' must be a mapping")

    known = {f.name for f in fields(current)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"unknown keys in '{section}': {', '.join(unknown)}")

    updates: dict[str, Any] = {}
    for key, value in data.items():
        default = getattr(current, key)
        if isinstance(default, bool):
            updates[key] = bool(value)
        elif isinstance(default, float):
            updates[key] = float(value)
        elif isinstance(default, int):
            updates[key] = int(value)
        elif isinstance(default, list):
            updates[key] = [int(v) for v in value]
        else:
            updates[key] = value

    # replace() re-runs __post_init__ validation
    return replace(current, **updates)


@dataclass
class Settings:
    """Main application settings."""

    ewma: EWMAConfig = field(default_factory=EWMAConfig)
    consistency: ConsistencyConfig = field(default_factory=ConsistencyConfig)
    correlation: CorrelationConfig = field(default_factory=CorrelationConfig)
    adherence: AdherenceConfig = field(default_factory=AdherenceConfig)
    progress: ProgressConfig = field(default_factory=ProgressConfig)
    insights: InsightConfig = field(default_factory=InsightConfig)
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        """Load settings from YAML file or return defaults.

        Args:
            config_path: Path to config.yaml. If None, uses ~/.macrotrend/config.yaml

        Returns:
            Settings instance

        Raises:
            ValueError: If the file has unknown sections or keys, or a value
                fails validation
        """
        if config_path is None:
            config_path = _default_config_path()

        if not config_path.exists():
            return cls()

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"{config_path}: top level must be a mapping")

        settings = cls()
        known = {f.name for f in fields(settings)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"unknown config sections: {', '.join(unknown)}")

        for section, section_data in data.items():
            if section_data is None:
                continue
            current = getattr(settings, section)
            setattr(settings, section, _parse_section(section, current, section_data))

        return settings

    def save(self, config_path: Optional[Path] = None) -> None:
        """Save current settings to YAML file.

        Args:
            config_path: Path to save config.yaml. If None, uses ~/.macrotrend/config.yaml
        """
        if config_path is None:
            config_path = _default_config_path()

        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w") as f:
            yaml.dump(asdict(self), f, default_flow_style=False, sort_keys=False)

    def to_analytics_config(self) -> AnalyticsConfig:
        """Engine parameters, without the CLI defaults."""
        return AnalyticsConfig(
            ewma=self.ewma,
            consistency=self.consistency,
            correlation=self.correlation,
            adherence=self.adherence,
            progress=self.progress,
            insights=self.insights,
        )


# Global settings instance (lazy loaded)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance, loading from disk if needed."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reload_settings(config_path: Optional[Path] = None) -> Settings:
    """Force reload settings from disk."""
    global _settings
    _settings = Settings.load(config_path)
    return _settings
