### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Application Configuration -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Application Configuration Management

Uses Pydantic Settings for configuration with environment variable support.
Loads settings from .env file and data/config.yaml.

Config file location (in order of precedence):
1. VETCORE_CONFIG_PATH environment variable
2. data/config.yaml (default)
"""

import os
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic_settings import BaseSettings

from vetcore import __version__
from vetcore.config_schema import VetCoreConfig


def get_project_root() -> Path:
    """Get the project root directory"""
    return Path(__file__).parent.parent


def get_config_path() -> Path:
    """
    Get the path to config.yaml.

    Priority:
    1. VETCORE_CONFIG_PATH environment variable (if set)
    2. data/config.yaml (default location)
    """
    env_path = os.environ.get("VETCORE_CONFIG_PATH")
    if env_path:
        return Path(env_path)

    return get_project_root() / "data" / "config.yaml"


def get_version() -> str:
    """Read version from VERSION file, falling back to the package version"""
    version_file = get_project_root() / "VERSION"
    if version_file.exists():
        return version_file.read_text().strip()
    return __version__


class VetCoreSettings(BaseSettings):
    """API Server Settings"""

    # API Configuration
    api_title: str = "VetPractice Core API"
    api_version: str = get_version()
    api_prefix: str = "/api/v1"
    debug: bool = False

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8000

    # Owner/platform database (tenant registry, owner users and sessions)
    owner_database_url: str = "sqlite:///./data/vetcore_owner.db"

    # Connection used when a request carries no tenant (single-tenant/dev mode)
    default_database_url: str = "sqlite:///./data/vetcore_default.db"

    # Tenant connection descriptors are built from the stored tenant row
    tenant_url_template: str = "postgresql+psycopg2://{user}:{password}@{host}:{port}/{name}"

    # Security
    secret_key: str = "change-this-in-production"  # Used for owner JWT signing
    session_cookie_name: str = "session_id"
    session_cookie_secure: bool = False  # Enable behind HTTPS
    session_ttl_hours: int = 24
    owner_token_ttl_hours: int = 12
    tenant_header: str = "X-Tenant-Identifier"

    # Rate Limiting
    rate_limit_per_minute: int = 120

    # Logging
    log_level: str = "INFO"
    log_to_file: bool = True

    class Config:
        env_prefix = "VETCORE_"
        env_file = ".env"
        extra = "ignore"


DEFAULT_CONFIG = """# VetPractice Core Configuration
# Tenancy, logging and owner-portal settings

# Tenant Connection Settings
tenancy:
  # Seconds an idle tenant connection may sit in the cache before it is
  # health-checked again on next use
  connection_ttl_seconds: 300

  # Upper bound on opening a tenant connection (seconds)
  connect_timeout_seconds: 30

  # Wait before the single retry of a failed connection open (seconds)
  retry_backoff_seconds: 0.5

  # Pooled connections per tenant database
  pool_size: 3

  # Parent domains the app is served from (e.g. "app.example.com")
  base_domains: []

  # Alternative names mapped to canonical tenant subdomains
  aliases: {}

# Application Settings
application:
  logging:
    level: "INFO"             # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_to_file: true         # Enable file logging
    log_to_console: true      # Enable console logging

# Owner Portal Bootstrap
# Used only when the owner database has no owner users yet
owner:
  bootstrap_username: "owner"
  bootstrap_email: "owner@localhost"
  # bootstrap_password: "..."  # Leave unset to use the default 'owner' (change in production!)
"""


def load_yaml_config(config_path: str | None = None) -> dict:
    """Load configuration from YAML file, creating default if missing"""
    config_file = get_config_path() if config_path is None else Path(config_path)

    if not config_file.exists():
        config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(config_file, "w", encoding="utf-8") as f:
            f.write(DEFAULT_CONFIG)

    with open(config_file, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


@lru_cache
def get_settings() -> VetCoreSettings:
    """Get cached API settings instance"""
    config = load_yaml_config()
    log_config = config.get("application", {}).get("logging", {})

    overrides = {}
    if "level" in log_config and "VETCORE_LOG_LEVEL" not in os.environ:
        overrides["log_level"] = log_config["level"]

    return VetCoreSettings(**overrides)


def get_app_config() -> VetCoreConfig:
    """
    Get the validated YAML configuration.

    Not cached: tenancy settings can be edited through the owner portal
    and are re-read by the services that consume them.
    """
    return VetCoreConfig.model_validate(load_yaml_config())
