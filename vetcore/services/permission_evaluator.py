### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Permission Evaluator -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Permission Evaluator

Decides whether a user may perform an action on a resource.

Evaluation order (first match wins):
0. No user -> Denied. Super admin (primary role or an active assigned
   SUPER_ADMIN role) -> Allowed.
1. Most recently created active, non-expired override for exactly this
   (resource, action) in the practice -> its granted flag.
2. Primary system role (plus inherited roles) and active dynamic role
   assignments, under the catalog's subsumption rule -> Allowed.
3. Otherwise -> Denied.

evaluate() returns Allowed | Denied | EvaluationError. Anything that goes
wrong while loading role or override data becomes EvaluationError, and
has_permission() is only True for Allowed, so errors always deny.

Every call reads current rows; nothing is cached between calls.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import or_
from sqlalchemy.orm import Session

from vetcore.models import (
    AdministratorAccessiblePractice,
    OverrideStatus,
    PermissionCategory,
    PermissionOverride,
    Role,
    User,
    UserRole,
)
from vetcore.services.permission_catalog import (
    PRACTICE_ADMIN_ROLES,
    Action,
    PermissionGrant,
    Resource,
    SystemRole,
    normalize_action,
    normalize_resource,
    parse_grants,
    parse_system_role,
    static_grants_for,
)
from vetcore.utils import setup_logger

logger = setup_logger("vetcore.rbac", log_to_console=False)

ALL_PRACTICES = "*"


@dataclass(frozen=True)
class Allowed:
    reason: str


@dataclass(frozen=True)
class Denied:
    reason: str


@dataclass(frozen=True)
class EvaluationError:
    error: str


Decision = Allowed | Denied | EvaluationError


class PermissionEvaluator:
    """
    Permission checks against one tenant database session.

    Args:
        db: tenant database session
        clock: returns the current naive UTC time (injectable for tests)
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = datetime.utcnow):
        self.db = db
        self._clock = clock

    # ----------------------------------------
    # Data access
    # ----------------------------------------

    def _assigned_roles(self, user_id: int, practice_id: int | None) -> list[Role]:
        """Active roles actively assigned to the user, system-wide or for the practice"""
        query = (
            self.db.query(Role)
            .join(UserRole, UserRole.role_id == Role.id)
            .filter(UserRole.user_id == user_id, UserRole.is_active, Role.is_active)
        )
        if practice_id is not None:
            query = query.filter(or_(Role.practice_id.is_(None), Role.practice_id == practice_id))
        return query.all()

    def _effective_override(
        self,
        user_id: int,
        practice_id: int,
        resource: Resource,
        action: Action,
    ) -> PermissionOverride | None:
        candidates = (
            self.db.query(PermissionOverride)
            .filter(
                PermissionOverride.user_id == user_id,
                PermissionOverride.practice_id == practice_id,
                PermissionOverride.resource == resource.value,
                PermissionOverride.action == action.value,
                PermissionOverride.status == OverrideStatus.ACTIVE.value,
            )
            .order_by(PermissionOverride.created_at.desc(), PermissionOverride.id.desc())
            .all()
        )
        now = self._clock()
        for override in candidates:
            if override.is_effective(now):
                return override
        return None

    def _disabled_resources(self, practice_id: int | None) -> set[Resource]:
        """Resources listed only in inactive permission categories"""
        query = self.db.query(PermissionCategory)
        if practice_id is not None:
            query = query.filter(
                or_(PermissionCategory.practice_id.is_(None), PermissionCategory.practice_id == practice_id)
            )
        active: set[str] = set()
        inactive: set[str] = set()
        for category in query.all():
            (active if category.is_active else inactive).update(category.resource_names())

        disabled = set()
        for name in inactive - active:
            try:
                disabled.add(normalize_resource(name))
            except ValueError:
                logger.warning(f"Permission category lists unknown resource '{name}'")
        return disabled

    def _dynamic_grants(self, roles: list[Role], practice_id: int | None) -> list[PermissionGrant]:
        grants = [grant for role in roles for grant in parse_grants(role.permissions)]
        disabled = self._disabled_resources(practice_id)
        if not disabled:
            return grants
        return [grant for grant in grants if grant.resource not in disabled]

    @staticmethod
    def _practice_for(user: User, practice_id: int | None) -> int | None:
        if practice_id is not None:
            return practice_id
        return user.current_practice_id or user.practice_id

    # ----------------------------------------
    # Evaluation
    # ----------------------------------------

    def evaluate(
        self,
        user: User | None,
        resource: "str | Resource",
        action: "str | Action",
        practice_id: int | None = None,
        context: dict[str, Any] | None = None,
    ) -> Decision:
        """
        Evaluate a permission.

        Args:
            user: authenticated user, or None
            resource: resource name or Resource
            action: action verb or Action
            practice_id: practice the operation targets (defaults to the user's current practice)
            context: record attributes for conditional grants (e.g. {"clientId": 7, "userId": 7})
        """
        if user is None:
            return Denied("unauthenticated")

        try:
            resource = normalize_resource(resource)
            action = normalize_action(action)
            practice_id = self._practice_for(user, practice_id)

            roles = self._assigned_roles(user.id, practice_id)

            if parse_system_role(user.role) is SystemRole.SUPER_ADMIN or any(
                parse_system_role(role.name) is SystemRole.SUPER_ADMIN for role in roles
            ):
                return Allowed("super admin")

            if practice_id is not None:
                override = self._effective_override(user.id, practice_id, resource, action)
                if override is not None:
                    if override.granted:
                        return Allowed(f"override {override.id}")
                    return Denied(f"override {override.id}")

            grants = list(static_grants_for(user.role)) + self._dynamic_grants(roles, practice_id)

            context = dict(context) if context is not None else None
            if context is not None:
                context.setdefault("userId", user.id)

            for grant in grants:
                if grant.subsumes(resource, action) and grant.conditions_met(context):
                    return Allowed(f"role grant {grant.resource.value}:{grant.action.value}")

            return Denied(f"no grant for {resource.value}:{action.value}")

        except Exception as e:
            logger.error(
                f"Permission evaluation failed for user {getattr(user, 'id', None)} "
                f"on {resource}:{action}: {type(e).__name__}: {e!s}"
            )
            return EvaluationError(str(e))

    def has_permission(
        self,
        user: User | None,
        resource: "str | Resource",
        action: "str | Action",
        practice_id: int | None = None,
        context: dict[str, Any] | None = None,
    ) -> bool:
        """True only for Allowed; Denied and EvaluationError both deny"""
        return isinstance(self.evaluate(user, resource, action, practice_id, context), Allowed)

    # ----------------------------------------
    # Derived queries
    # ----------------------------------------

    def is_super_admin(self, user: User | None, practice_id: int | None = None) -> bool:
        if user is None:
            return False
        if parse_system_role(user.role) is SystemRole.SUPER_ADMIN:
            return True
        try:
            roles = self._assigned_roles(user.id, practice_id)
        except Exception as e:
            logger.error(f"Super admin lookup failed for user {user.id}: {e!s}")
            return False
        return any(parse_system_role(role.name) is SystemRole.SUPER_ADMIN for role in roles)

    def is_practice_admin(self, user: User | None, practice_id: int | None = None) -> bool:
        """Practice administrators and super admins may manage roles and overrides"""
        if user is None:
            return False
        if self.is_super_admin(user, practice_id):
            return True
        if parse_system_role(user.role) in PRACTICE_ADMIN_ROLES:
            return True
        try:
            roles = self._assigned_roles(user.id, self._practice_for(user, practice_id))
        except Exception as e:
            logger.error(f"Admin role lookup failed for user {user.id}: {e!s}")
            return False
        return any(parse_system_role(role.name) in PRACTICE_ADMIN_ROLES for role in roles)

    def can_switch_practices(self, user: User | None) -> bool:
        """Super admins, or anyone holding practice_switching:MANAGE or practices:SWITCH"""
        if user is None:
            return False
        if self.is_super_admin(user):
            return True
        try:
            roles = self._assigned_roles(user.id, None)
            grants = list(static_grants_for(user.role)) + [
                grant for role in roles for grant in parse_grants(role.permissions)
            ]
        except Exception as e:
            logger.error(f"Practice switching check failed for user {user.id}: {e!s}")
            return False
        return any(
            grant.subsumes(Resource.PRACTICE_SWITCHING, Action.MANAGE)
            or grant.subsumes(Resource.PRACTICES, Action.SWITCH)
            for grant in grants
        )

    def get_accessible_practices(self, user: User | None) -> list:
        """
        Practice ids the user may act in.

        Returns ["*"] for super admins. ADMINISTRATOR users get their home
        practice plus their accessible-practice rows; everyone else gets
        their home practice plus practices of their practice-scoped roles.
        """
        if user is None:
            return []
        if self.is_super_admin(user):
            return [ALL_PRACTICES]

        practices: set[int] = set()
        if user.practice_id is not None:
            practices.add(user.practice_id)

        try:
            if parse_system_role(user.role) is SystemRole.ADMINISTRATOR:
                rows = (
                    self.db.query(AdministratorAccessiblePractice.practice_id)
                    .filter(AdministratorAccessiblePractice.administrator_id == user.id)
                    .all()
                )
                practices.update(row.practice_id for row in rows)
            else:
                practices.update(
                    role.practice_id
                    for role in self._assigned_roles(user.id, None)
                    if role.practice_id is not None
                )
        except Exception as e:
            logger.error(f"Accessible practice lookup failed for user {user.id}: {e!s}")
            return sorted(p for p in [user.practice_id] if p is not None)

        return sorted(practices)
