### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Configuration Service -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Configuration Service

Read/write access to config.yaml that keeps comments and formatting intact
(ruamel.yaml). The owner portal uses it to inspect and tune the tenancy
section at runtime.
"""

from pathlib import Path
from typing import Any

from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap

from vetcore.config import DEFAULT_CONFIG, get_config_path
from vetcore.config_schema import TenancyConfig, validate_tenancy_update
from vetcore.utils import setup_logger

logger = setup_logger("vetcore.config", log_to_file=False)


class ConfigService:
    """
    Service for managing config.yaml with comment preservation.
    """

    def __init__(self, config_path: str | None = None):
        if config_path is None:
            self.config_path = get_config_path()
        else:
            self.config_path = Path(config_path)
        self.yaml = YAML()
        self.yaml.preserve_quotes = True
        self.yaml.indent(mapping=2, sequence=4, offset=2)
        self._config: CommentedMap | None = None

        self._ensure_config_exists()

    def _ensure_config_exists(self) -> None:
        """Create default config file if it doesn't exist"""
        if not self.config_path.exists():
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, "w", encoding="utf-8") as f:
                f.write(DEFAULT_CONFIG)
            logger.info(f"Created default configuration file: {self.config_path}")

    def _ensure_loaded(self) -> CommentedMap:
        if self._config is None:
            self.reload()
        return self._config

    def reload(self) -> CommentedMap:
        """Reload config from disk"""
        self._ensure_config_exists()

        with open(self.config_path, encoding="utf-8") as f:
            self._config = self.yaml.load(f) or CommentedMap()

        return self._config

    def save(self) -> None:
        """Save config to disk, preserving comments and formatting"""
        if self._config is None:
            raise ValueError("No config loaded to save")

        with open(self.config_path, "w", encoding="utf-8") as f:
            self.yaml.dump(self._config, f)

    def get(self, path: str, default: Any = None) -> Any:
        """
        Get a config value by dot-notation path.

        Example: get("tenancy.pool_size") -> 3
        """
        value = self._ensure_loaded()

        for key in path.split("."):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, path: str, value: Any) -> None:
        """
        Set a config value by dot-notation path.

        Example: set("tenancy.connect_timeout_seconds", 10)
        """
        current = self._ensure_loaded()
        keys = path.split(".")

        for key in keys[:-1]:
            if key not in current:
                current[key] = CommentedMap()
            current = current[key]

        current[keys[-1]] = value

    def get_tenancy(self) -> TenancyConfig:
        """Current tenancy section, with defaults for missing keys"""
        section = self.get("tenancy", {}) or {}
        return TenancyConfig.model_validate(_plain(section))

    def update_tenancy(self, updates: dict) -> list[str]:
        """
        Validate and apply a partial tenancy update.

        Returns:
            List of dot-paths that actually changed

        Raises:
            pydantic.ValidationError: If the merged section is invalid
        """
        merged = self.get_tenancy().model_dump()
        merged.update(updates)
        validated = validate_tenancy_update(merged)

        changed = []
        for key, value in validated.model_dump().items():
            path = f"tenancy.{key}"
            if _plain(self.get(path)) != value:
                self.set(path, value)
                changed.append(path)

        if changed:
            self.save()
            logger.info(f"Tenancy settings updated: {', '.join(changed)}")
        return changed

    def validation_errors(self, updates: dict) -> list[str]:
        """List validation errors for a tenancy update without applying it"""
        merged = self.get_tenancy().model_dump()
        merged.update(updates)
        try:
            validate_tenancy_update(merged)
            return []
        except ValidationError as e:
            return [
                f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}"
                for err in e.errors()
            ]


def _plain(value: Any) -> Any:
    """Convert ruamel containers to plain dicts/lists for comparison"""
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


# Singleton instance
_config_service: ConfigService | None = None


def get_config_service() -> ConfigService:
    """Get the singleton config service instance"""
    global _config_service
    if _config_service is None:
        _config_service = ConfigService()
    return _config_service


def clear_config_cache() -> None:
    """Drop the singleton (forces reload on next access)"""
    global _config_service
    _config_service = None
