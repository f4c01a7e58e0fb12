"""Application settings and configuration management."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from fastcomp.physiology.constants import PhysiologyConstants


def _default_config_dir() -> Path:
    """Return the default configuration directory."""
    return Path.home() / ".fastcomp"


def _default_db_path() -> Path:
    """Return the default database path."""
    return _default_config_dir() / "fastcomp.db"


@dataclass
class DatabaseConfig:
    """Database configuration."""

    path: Path = field(default_factory=_default_db_path)


@dataclass
class AnalyticsConfig:
    """Analytics window and aggregation settings."""

    default_days: int = 90
    limit_protocols: int = 3
    retention_window_hours: float = 48.0


@dataclass
class DefaultsConfig:
    """Default values for various operations."""

    user_id: int = 1
    output_format: str = "table"  # "table" or "json"

    # Body metrics used when a user has no stored profile
    height_cm: Optional[float] = None
    age: Optional[float] = None
    sex: Optional[str] = None
    activity: str = "sedentary"

    def profile_fields(self) -> dict:
        return {
            "height_cm": self.height_cm,
            "age": self.age,
            "sex": self.sex,
            "activity": self.activity,
        }


@dataclass
class Settings:
    """Main application settings."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    physiology: PhysiologyConstants = field(default_factory=PhysiologyConstants)
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        """Load settings from YAML file or return defaults.

        Args:
            config_path: Path to config.yaml. If None, uses ~/.fastcomp/config.yaml

        Returns:
            Settings instance
        """
        if config_path is None:
            config_path = _default_config_dir() / "config.yaml"

        if not config_path.exists():
            return cls()

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        settings = cls()

        # Parse database config
        if "database" in data:
            db_data = data["database"] or {}
            if "path" in db_data:
                settings.database.path = Path(db_data["path"]).expanduser()

        # Parse analytics config
        if "analytics" in data:
            an_data = data["analytics"] or {}
            if "default_days" in an_data:
                settings.analytics.default_days = int(an_data["default_days"])
            if "limit_protocols" in an_data:
                settings.analytics.limit_protocols = int(an_data["limit_protocols"])
            if "retention_window_hours" in an_data:
                settings.analytics.retention_window_hours = float(
                    an_data["retention_window_hours"]
                )

        # Parse physiology overrides
        if "physiology" in data:
            settings.physiology = PhysiologyConstants.from_dict(data["physiology"] or {})

        # Parse defaults
        if "defaults" in data:
            def_data = data["defaults"] or {}
            if "user_id" in def_data:
                settings.defaults.user_id = int(def_data["user_id"])
            if "output_format" in def_data:
                settings.defaults.output_format = def_data["output_format"]
            for key in ("height_cm", "age"):
                if def_data.get(key) is not None:
                    setattr(settings.defaults, key, float(def_data[key]))
            if "sex" in def_data:
                settings.defaults.sex = def_data["sex"]
            if "activity" in def_data:
                settings.defaults.activity = def_data["activity"]

        return settings

    def save(self, config_path: Optional[Path] = None) -> None:
        """Save current settings to YAML file.

        Args:
            config_path: Path to save config.yaml. If None, uses ~/.fastcomp/config.yaml
        """
        if config_path is None:
            config_path = _default_config_dir() / "config.yaml"

        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    def to_dict(self) -> dict:
        return {
            "database": {
                "path": str(self.database.path),
            },
            "analytics": {
                "default_days": self.analytics.default_days,
                "limit_protocols": self.analytics.limit_protocols,
                "retention_window_hours": self.analytics.retention_window_hours,
            },
            "physiology": self.physiology.to_dict(),
            "defaults": {
                "user_id": self.defaults.user_id,
                "output_format": self.defaults.output_format,
                **self.defaults.profile_fields(),
            },
        }


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
