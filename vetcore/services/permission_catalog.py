### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Permission Catalog -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Permission Catalog

Enumerated resources and actions, the validated PermissionGrant type, the
system role tables and the single subsumption rule used everywhere:

    grant (r, a)          satisfies (r, a)
    grant (r, MANAGE)     satisfies (r, any action)
    grant (r, *)          satisfies (r, any action)
    grant (*, a)          satisfies (any resource, a)
    grant (*, MANAGE|*)   satisfies everything

Nothing else is implied: UPDATE does not imply READ, and a grant on one
resource never covers another.
"""

import re
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator


class Action(str, Enum):
    CREATE = "CREATE"
    READ = "READ"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    MANAGE = "MANAGE"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    ASSIGN = "ASSIGN"
    UNASSIGN = "UNASSIGN"
    EXPORT = "EXPORT"
    IMPORT = "IMPORT"
    ARCHIVE = "ARCHIVE"
    RESTORE = "RESTORE"
    SWITCH = "SWITCH"
    ALL = "*"


class Resource(str, Enum):
    # User management
    USERS = "users"
    ROLES = "roles"
    PERMISSIONS = "permissions"
    USER_SESSIONS = "user_sessions"
    # Patient care
    PATIENTS = "patients"
    PETS = "pets"
    APPOINTMENTS = "appointments"
    MEDICAL_RECORDS = "medical_records"
    SOAP_NOTES = "soap_notes"
    PRESCRIPTIONS = "prescriptions"
    TREATMENTS = "treatments"
    VACCINATIONS = "vaccinations"
    # Practice management
    PRACTICE_SETTINGS = "practice_settings"
    STAFF = "staff"
    SCHEDULES = "schedules"
    ROOMS = "rooms"
    EQUIPMENT = "equipment"
    PRACTICES = "practices"
    PRACTICE_SWITCHING = "practice_switching"
    # Financial
    BILLING = "billing"
    INVOICES = "invoices"
    PAYMENTS = "payments"
    INSURANCE = "insurance"
    PRICING = "pricing"
    # Inventory
    INVENTORY = "inventory"
    PRODUCTS = "products"
    SUPPLIERS = "suppliers"
    PURCHASE_ORDERS = "purchase_orders"
    STOCK_MOVEMENTS = "stock_movements"
    # Laboratory
    LAB_ORDERS = "lab_orders"
    LAB_RESULTS = "lab_results"
    LAB_PROVIDERS = "lab_providers"
    # Imaging
    IMAGING_ORDERS = "imaging_orders"
    IMAGING_RESULTS = "imaging_results"
    IMAGING_EQUIPMENT = "imaging_equipment"
    # Communication
    MESSAGES = "messages"
    NOTIFICATIONS = "notifications"
    EMAILS = "emails"
    SMS = "sms"
    REFERRALS = "referrals"
    # Reports
    REPORTS = "reports"
    ANALYTICS = "analytics"
    DASHBOARD = "dashboard"
    # System
    SYSTEM_SETTINGS = "system_settings"
    AUDIT_LOGS = "audit_logs"
    BACKUPS = "backups"
    INTEGRATIONS = "integrations"
    API_KEYS = "api_keys"
    ALL = "*"


class ResourceCategory(str, Enum):
    USER_MANAGEMENT = "user_management"
    PATIENT_CARE = "patient_care"
    PRACTICE_MANAGEMENT = "practice_management"
    FINANCIAL = "financial"
    INVENTORY = "inventory"
    LABORATORY = "laboratory"
    MEDICAL_IMAGING = "medical_imaging"
    COMMUNICATION = "communication"
    REPORTS = "reports"
    SYSTEM = "system"


_CATEGORY_MEMBERS: dict[ResourceCategory, tuple[Resource, ...]] = {
    ResourceCategory.USER_MANAGEMENT: (
        Resource.USERS, Resource.ROLES, Resource.PERMISSIONS, Resource.USER_SESSIONS,
    ),
    ResourceCategory.PATIENT_CARE: (
        Resource.PATIENTS, Resource.PETS, Resource.APPOINTMENTS, Resource.MEDICAL_RECORDS,
        Resource.SOAP_NOTES, Resource.PRESCRIPTIONS, Resource.TREATMENTS, Resource.VACCINATIONS,
    ),
    ResourceCategory.PRACTICE_MANAGEMENT: (
        Resource.PRACTICE_SETTINGS, Resource.STAFF, Resource.SCHEDULES, Resource.ROOMS,
        Resource.EQUIPMENT, Resource.PRACTICES, Resource.PRACTICE_SWITCHING,
    ),
    ResourceCategory.FINANCIAL: (
        Resource.BILLING, Resource.INVOICES, Resource.PAYMENTS, Resource.INSURANCE, Resource.PRICING,
    ),
    ResourceCategory.INVENTORY: (
        Resource.INVENTORY, Resource.PRODUCTS, Resource.SUPPLIERS, Resource.PURCHASE_ORDERS,
        Resource.STOCK_MOVEMENTS,
    ),
    ResourceCategory.LABORATORY: (Resource.LAB_ORDERS, Resource.LAB_RESULTS, Resource.LAB_PROVIDERS),
    ResourceCategory.MEDICAL_IMAGING: (
        Resource.IMAGING_ORDERS, Resource.IMAGING_RESULTS, Resource.IMAGING_EQUIPMENT,
    ),
    ResourceCategory.COMMUNICATION: (
        Resource.MESSAGES, Resource.NOTIFICATIONS, Resource.EMAILS, Resource.SMS, Resource.REFERRALS,
    ),
    ResourceCategory.REPORTS: (Resource.REPORTS, Resource.ANALYTICS, Resource.DASHBOARD),
    ResourceCategory.SYSTEM: (
        Resource.SYSTEM_SETTINGS, Resource.AUDIT_LOGS, Resource.BACKUPS, Resource.INTEGRATIONS,
        Resource.API_KEYS,
    ),
}

RESOURCE_CATEGORIES: dict[Resource, ResourceCategory] = {
    resource: category
    for category, members in _CATEGORY_MEMBERS.items()
    for resource in members
}

# Legacy resource names still used by older clients
RESOURCE_ALIASES: dict[str, str] = {
    "checklists": Resource.TREATMENTS.value,
}


def normalize_resource(value: "str | Resource") -> Resource:
    """
    Parse a resource name (case-insensitive, aliases applied).

    Raises:
        ValueError: unknown resource
    """
    if isinstance(value, Resource):
        return value
    name = str(value).strip().lower()
    return Resource(RESOURCE_ALIASES.get(name, name))


def normalize_action(value: "str | Action") -> Action:
    """
    Parse an action verb (case-insensitive).

    Raises:
        ValueError: unknown action
    """
    if isinstance(value, Action):
        return value
    return Action(str(value).strip().upper())


# ========================================
# Grants
# ========================================

_VARIABLE = re.compile(r"^\$\{(\w+)\}$")


class Condition(BaseModel):
    """Attribute condition on a grant, e.g. {"field": "clientId", "operator": "equals", "value": "${userId}"}"""

    model_config = ConfigDict(frozen=True)

    field: str
    operator: Literal["equals", "not_equals", "in", "not_in", "greater_than", "less_than"]
    value: Any

    def matches(self, context: dict[str, Any]) -> bool:
        expected = self.value
        if isinstance(expected, str):
            variable = _VARIABLE.match(expected)
            if variable:
                expected = context.get(variable.group(1))

        actual = context.get(self.field)

        if self.operator == "equals":
            return actual == expected
        if self.operator == "not_equals":
            return actual != expected
        if self.operator == "in":
            return isinstance(expected, (list, tuple, set)) and actual in expected
        if self.operator == "not_in":
            return isinstance(expected, (list, tuple, set)) and actual not in expected
        try:
            if self.operator == "greater_than":
                return actual > expected
            return actual < expected
        except TypeError:
            return False


class PermissionGrant(BaseModel):
    """
    One (resource, action) entry of a role.

    Entries with granted=False grant nothing; they exist because stored
    role blobs carry them.
    """

    model_config = ConfigDict(frozen=True)

    resource: Resource
    action: Action
    granted: bool = True
    conditions: tuple[Condition, ...] = ()

    @field_validator("resource", mode="before")
    @classmethod
    def parse_resource(cls, v: Any) -> Resource:
        return normalize_resource(v)

    @field_validator("action", mode="before")
    @classmethod
    def parse_action(cls, v: Any) -> Action:
        return normalize_action(v)

    def subsumes(self, resource: Resource, action: Action) -> bool:
        """Whether this grant covers (resource, action) under the subsumption table"""
        if not self.granted:
            return False
        resource_ok = self.resource is Resource.ALL or self.resource is resource
        action_ok = self.action in (Action.ALL, Action.MANAGE) or self.action is action
        return resource_ok and action_ok

    def conditions_met(self, context: dict[str, Any] | None) -> bool:
        """
        Conditions only narrow record-level checks; without a record
        context the grant applies at the (resource, action) level.
        """
        if not self.conditions or context is None:
            return True
        return all(condition.matches(context) for condition in self.conditions)

    def to_json(self) -> dict:
        data = {"resource": self.resource.value, "action": self.action.value, "granted": self.granted}
        if self.conditions:
            data["conditions"] = [condition.model_dump() for condition in self.conditions]
        return data


def parse_grants(raw: Any) -> list[PermissionGrant]:
    """
    Validate a stored JSON permission list.

    Raises:
        ValueError / pydantic.ValidationError: malformed blob or entry
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValueError(f"Role permissions must be a list, got {type(raw).__name__}")
    return [PermissionGrant.model_validate(entry) for entry in raw]


def _grants(*pairs: tuple[Resource, Action]) -> tuple[PermissionGrant, ...]:
    return tuple(PermissionGrant(resource=r, action=a) for r, a in pairs)


# ========================================
# Templates
# ========================================

R, A = Resource, Action

VETERINARIAN_BASIC = _grants(
    (R.PATIENTS, A.READ),
    (R.PETS, A.MANAGE),
    (R.APPOINTMENTS, A.MANAGE),
    (R.MEDICAL_RECORDS, A.MANAGE),
    (R.SOAP_NOTES, A.MANAGE),
    (R.PRESCRIPTIONS, A.MANAGE),
    (R.TREATMENTS, A.MANAGE),
    (R.VACCINATIONS, A.MANAGE),
    (R.LAB_ORDERS, A.MANAGE),
    (R.LAB_RESULTS, A.READ),
    (R.IMAGING_ORDERS, A.MANAGE),
    (R.IMAGING_RESULTS, A.READ),
    (R.INVENTORY, A.READ),
    (R.PRODUCTS, A.READ),
    (R.MESSAGES, A.MANAGE),
    (R.NOTIFICATIONS, A.READ),
    (R.REFERRALS, A.MANAGE),
)

TECHNICIAN_BASIC = _grants(
    (R.PATIENTS, A.READ),
    (R.PETS, A.READ),
    (R.APPOINTMENTS, A.READ),
    (R.MEDICAL_RECORDS, A.READ),
    (R.SOAP_NOTES, A.CREATE),
    (R.SOAP_NOTES, A.READ),
    (R.VACCINATIONS, A.UPDATE),
    (R.LAB_ORDERS, A.CREATE),
    (R.LAB_RESULTS, A.READ),
    (R.IMAGING_ORDERS, A.CREATE),
    (R.INVENTORY, A.READ),
    (R.STOCK_MOVEMENTS, A.CREATE),
    (R.MESSAGES, A.MANAGE),
    (R.NOTIFICATIONS, A.READ),
)

RECEPTIONIST_BASIC = _grants(
    (R.PATIENTS, A.MANAGE),
    (R.PETS, A.MANAGE),
    (R.APPOINTMENTS, A.MANAGE),
    (R.MEDICAL_RECORDS, A.READ),
    (R.BILLING, A.MANAGE),
    (R.INVOICES, A.MANAGE),
    (R.PAYMENTS, A.MANAGE),
    (R.INSURANCE, A.MANAGE),
    (R.MESSAGES, A.MANAGE),
    (R.NOTIFICATIONS, A.MANAGE),
    (R.EMAILS, A.CREATE),
    (R.SMS, A.CREATE),
    (R.INVENTORY, A.READ),
)

PRACTICE_ADMIN_FULL = _grants(
    (R.USERS, A.MANAGE),
    (R.ROLES, A.MANAGE),
    (R.STAFF, A.MANAGE),
    (R.PRACTICE_SETTINGS, A.MANAGE),
    (R.SCHEDULES, A.MANAGE),
    (R.ROOMS, A.MANAGE),
    (R.EQUIPMENT, A.MANAGE),
    (R.BILLING, A.MANAGE),
    (R.INVOICES, A.MANAGE),
    (R.PAYMENTS, A.MANAGE),
    (R.INSURANCE, A.MANAGE),
    (R.PRICING, A.MANAGE),
    (R.INVENTORY, A.MANAGE),
    (R.PRODUCTS, A.MANAGE),
    (R.SUPPLIERS, A.MANAGE),
    (R.PURCHASE_ORDERS, A.MANAGE),
    (R.REPORTS, A.MANAGE),
    (R.ANALYTICS, A.READ),
    (R.DASHBOARD, A.UPDATE),
    (R.MESSAGES, A.MANAGE),
    (R.NOTIFICATIONS, A.MANAGE),
    (R.EMAILS, A.MANAGE),
    (R.SMS, A.MANAGE),
)

SUPER_ADMIN_FULL = _grants(*((resource, A.MANAGE) for resource in Resource if resource is not R.ALL))


# ========================================
# System roles
# ========================================


class SystemRole(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    PRACTICE_ADMINISTRATOR = "PRACTICE_ADMINISTRATOR"
    ADMINISTRATOR = "ADMINISTRATOR"
    PRACTICE_ADMIN = "PRACTICE_ADMIN"
    PRACTICE_MANAGER = "PRACTICE_MANAGER"
    VETERINARIAN = "VETERINARIAN"
    TECHNICIAN = "TECHNICIAN"
    RECEPTIONIST = "RECEPTIONIST"
    ACCOUNTANT = "ACCOUNTANT"
    CASHIER = "CASHIER"
    OFFICE_MANAGER = "OFFICE_MANAGER"
    CLIENT = "CLIENT"
    COMPANY_ADMIN = "COMPANY_ADMIN"


_CLIENT_OWN = (Condition(field="clientId", operator="equals", value="${userId}"),)

STATIC_ROLE_GRANTS: dict[SystemRole, tuple[PermissionGrant, ...]] = {
    SystemRole.SUPER_ADMIN: SUPER_ADMIN_FULL,
    SystemRole.PRACTICE_ADMINISTRATOR: PRACTICE_ADMIN_FULL,
    # Multi-practice administrators may also switch between their practices
    SystemRole.ADMINISTRATOR: PRACTICE_ADMIN_FULL + _grants((R.PRACTICES, A.SWITCH)),
    SystemRole.PRACTICE_ADMIN: PRACTICE_ADMIN_FULL,
    SystemRole.COMPANY_ADMIN: PRACTICE_ADMIN_FULL,
    SystemRole.VETERINARIAN: VETERINARIAN_BASIC,
    SystemRole.TECHNICIAN: TECHNICIAN_BASIC,
    SystemRole.RECEPTIONIST: RECEPTIONIST_BASIC,
    SystemRole.PRACTICE_MANAGER: tuple(
        grant
        for grant in PRACTICE_ADMIN_FULL
        if grant.resource not in (R.USERS, R.ROLES, R.SYSTEM_SETTINGS)
    ),
    SystemRole.ACCOUNTANT: _grants(
        (R.BILLING, A.MANAGE),
        (R.INVOICES, A.MANAGE),
        (R.PAYMENTS, A.MANAGE),
        (R.INSURANCE, A.MANAGE),
        (R.PRICING, A.UPDATE),
        (R.REPORTS, A.READ),
        (R.ANALYTICS, A.READ),
        (R.PATIENTS, A.READ),
        (R.PETS, A.READ),
        (R.APPOINTMENTS, A.READ),
    ),
    SystemRole.CASHIER: _grants(
        (R.PAYMENTS, A.CREATE),
        (R.PAYMENTS, A.READ),
        (R.INVOICES, A.READ),
        (R.BILLING, A.READ),
        (R.PATIENTS, A.READ),
        (R.PETS, A.READ),
        (R.APPOINTMENTS, A.READ),
    ),
    SystemRole.OFFICE_MANAGER: _grants(
        (R.STAFF, A.READ),
        (R.SCHEDULES, A.MANAGE),
        (R.ROOMS, A.MANAGE),
        (R.EQUIPMENT, A.READ),
        (R.SUPPLIERS, A.MANAGE),
        (R.PURCHASE_ORDERS, A.CREATE),
        (R.REPORTS, A.READ),
    ),
    SystemRole.CLIENT: (
        PermissionGrant(
            resource=R.PETS,
            action=A.READ,
            conditions=(Condition(field="ownerId", operator="equals", value="${userId}"),),
        ),
        PermissionGrant(resource=R.APPOINTMENTS, action=A.READ, conditions=_CLIENT_OWN),
        PermissionGrant(resource=R.APPOINTMENTS, action=A.CREATE),
        PermissionGrant(resource=R.MEDICAL_RECORDS, action=A.READ, conditions=_CLIENT_OWN),
        PermissionGrant(resource=R.INVOICES, action=A.READ, conditions=_CLIENT_OWN),
        PermissionGrant(resource=R.PAYMENTS, action=A.CREATE),
        PermissionGrant(resource=R.MESSAGES, action=A.READ),
        PermissionGrant(resource=R.MESSAGES, action=A.CREATE),
        PermissionGrant(resource=R.NOTIFICATIONS, action=A.READ),
    ),
}

# Roles that also receive the grants of the listed roles
ROLE_HIERARCHY: dict[SystemRole, tuple[SystemRole, ...]] = {
    SystemRole.PRACTICE_MANAGER: (SystemRole.RECEPTIONIST,),
    SystemRole.OFFICE_MANAGER: (SystemRole.RECEPTIONIST,),
    SystemRole.ACCOUNTANT: (SystemRole.CASHIER,),
}

ROLE_DISPLAY_NAMES: dict[SystemRole, str] = {
    SystemRole.SUPER_ADMIN: "Super Administrator",
    SystemRole.PRACTICE_ADMINISTRATOR: "Practice Administrator",
    SystemRole.ADMINISTRATOR: "Multi-Practice Administrator",
    SystemRole.PRACTICE_ADMIN: "Practice Admin",
    SystemRole.PRACTICE_MANAGER: "Practice Manager",
    SystemRole.VETERINARIAN: "Veterinarian",
    SystemRole.TECHNICIAN: "Veterinary Technician",
    SystemRole.RECEPTIONIST: "Receptionist",
    SystemRole.ACCOUNTANT: "Accountant",
    SystemRole.CASHIER: "Cashier",
    SystemRole.OFFICE_MANAGER: "Office Manager",
    SystemRole.CLIENT: "Client",
    SystemRole.COMPANY_ADMIN: "Company Administrator",
}

# Roles allowed to manage overrides and roles for their practice
PRACTICE_ADMIN_ROLES = frozenset(
    {SystemRole.PRACTICE_ADMINISTRATOR, SystemRole.PRACTICE_ADMIN, SystemRole.ADMINISTRATOR}
)


def parse_system_role(name: str | None) -> SystemRole | None:
    """Map a stored role name to a SystemRole, None if it is not one"""
    if not name:
        return None
    try:
        return SystemRole(name.strip().upper())
    except ValueError:
        return None


def static_grants_for(role_name: str | None) -> tuple[PermissionGrant, ...]:
    """Grants of a system role including inherited roles; empty for unknown names"""
    role = parse_system_role(role_name)
    if role is None:
        return ()

    grants: list[PermissionGrant] = []
    seen: set[SystemRole] = set()
    stack = [role]
    while stack:
        current = stack.pop()
        if current in seen:
            continue
        seen.add(current)
        grants.extend(STATIC_ROLE_GRANTS.get(current, ()))
        stack.extend(ROLE_HIERARCHY.get(current, ()))
    return tuple(grants)


def role_permits(role_name: str | None, resource: "str | Resource", action: "str | Action") -> bool:
    """Static-table answer for a role, with no overrides or dynamic roles"""
    resource = normalize_resource(resource)
    action = normalize_action(action)
    return any(grant.subsumes(resource, action) for grant in static_grants_for(role_name))
