### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - FastAPI Dependencies -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
FastAPI Dependencies

Provides dependency injection for the process-wide services:
- Tenancy configuration (from config.yaml)
- Tenant connection manager
- Notifier

Tests replace these through app.dependency_overrides.
"""

from vetcore.config_schema import TenancyConfig
from vetcore.services.config_service import get_config_service
from vetcore.services.connection_manager import TenantConnectionManager, get_connection_manager
from vetcore.services.notifier import Notifier, get_notifier


def get_tenancy_config() -> TenancyConfig:
    """Tenancy section of config.yaml (aliases, base domains, timeouts)"""
    return get_config_service().get_tenancy()


def get_manager() -> TenantConnectionManager:
    """The process-wide tenant connection manager"""
    return get_connection_manager()


def get_app_notifier() -> Notifier:
    return get_notifier()
