### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Services Package -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Services Package

Contains business logic and data access services:
- tenant_resolver: Host/subdomain to tenant resolution
- connection_manager: Per-tenant connection cache and default connection
- permission_catalog: Resources, actions, static role grants
- permission_evaluator: Role/override permission decisions
- rbac_service: Role, override and category management
- provisioning: Tenant provisioning and owner bootstrap
- config_service: Round-trip editing of config.yaml
- notifier: Fire-and-forget change notifications

Modules are imported directly (vetcore.services.<module>) so that models
and schemas can depend on the catalog without loading the whole layer.
"""
