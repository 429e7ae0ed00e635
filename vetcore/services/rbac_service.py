### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - RBAC Management Service -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
RBAC Management Service

Plain writes against the tenant's role, assignment, override and category
tables. Permission checks are the routers' job; nothing here caches, so the
evaluator sees every change on its next call.
"""

from datetime import datetime

from sqlalchemy.orm import Session

from vetcore.errors import PermissionDenied
from vetcore.models import (
    OverrideStatus,
    PermissionCategory,
    PermissionOverride,
    Role,
    User,
    UserRole,
)
from vetcore.services.permission_catalog import (
    RESOURCE_CATEGORIES,
    ROLE_DISPLAY_NAMES,
    PermissionGrant,
    ResourceCategory,
    SystemRole,
    normalize_action,
    normalize_resource,
    parse_system_role,
    static_grants_for,
)
from vetcore.utils import setup_logger

logger = setup_logger("vetcore.rbac", log_to_console=False)


# ========================================
# Seeding
# ========================================

_CATEGORY_TITLES: dict[ResourceCategory, str] = {
    ResourceCategory.USER_MANAGEMENT: "Users & Access",
    ResourceCategory.PATIENT_CARE: "Patients & Records",
    ResourceCategory.PRACTICE_MANAGEMENT: "Practice Management",
    ResourceCategory.FINANCIAL: "Billing & Finance",
    ResourceCategory.INVENTORY: "Inventory",
    ResourceCategory.LABORATORY: "Laboratory",
    ResourceCategory.MEDICAL_IMAGING: "Medical Imaging",
    ResourceCategory.COMMUNICATION: "Communication",
    ResourceCategory.REPORTS: "Reports & Analytics",
    ResourceCategory.SYSTEM: "System",
}


def seed_system_roles(db: Session) -> int:
    """Create missing system role rows (practice_id NULL). Returns how many were added."""
    existing = {
        name for (name,) in db.query(Role.name).filter(Role.is_system_defined, Role.practice_id.is_(None))
    }
    added = 0
    for role in SystemRole:
        if role.value in existing:
            continue
        db.add(
            Role(
                name=role.value,
                display_name=ROLE_DISPLAY_NAMES[role],
                description=f"System role: {ROLE_DISPLAY_NAMES[role]}",
                is_system_defined=True,
                practice_id=None,
                permissions=[grant.to_json() for grant in static_grants_for(role.value)],
                is_active=True,
            )
        )
        added += 1
    db.commit()
    return added


def seed_permission_categories(db: Session) -> int:
    """Create the system permission categories if none exist"""
    if db.query(PermissionCategory).filter(PermissionCategory.is_system_defined).count():
        return 0

    for order, category in enumerate(ResourceCategory, start=1):
        resources = [
            {"name": resource.value, "description": resource.name.replace("_", " ").title()}
            for resource, owner in RESOURCE_CATEGORIES.items()
            if owner is category
        ]
        db.add(
            PermissionCategory(
                name=_CATEGORY_TITLES[category],
                description=f"Permissions for {_CATEGORY_TITLES[category].lower()}",
                display_order=order,
                is_active=True,
                is_system_defined=True,
                practice_id=None,
                resources=resources,
            )
        )
    db.commit()
    return len(ResourceCategory)


# ========================================
# Roles
# ========================================


def list_roles(db: Session, practice_id: int | None) -> list[Role]:
    """System roles plus the practice's custom roles"""
    query = db.query(Role).filter(Role.is_system_defined | (Role.practice_id == practice_id))
    return query.order_by(Role.is_system_defined.desc(), Role.name).all()


def create_custom_role(
    db: Session,
    practice_id: int,
    name: str,
    display_name: str,
    permissions: list[PermissionGrant],
    description: str | None = None,
) -> Role:
    role = Role(
        name=name,
        display_name=display_name,
        description=description,
        is_system_defined=False,
        practice_id=practice_id,
        permissions=[grant.to_json() for grant in permissions],
        is_active=True,
    )
    db.add(role)
    db.commit()
    db.refresh(role)
    return role


def update_custom_role(
    db: Session,
    role: Role,
    display_name: str | None = None,
    description: str | None = None,
    permissions: list[PermissionGrant] | None = None,
    is_active: bool | None = None,
) -> Role:
    """Update a custom role; callers reject system-defined roles first"""
    if display_name is not None:
        role.display_name = display_name
    if description is not None:
        role.description = description
    if permissions is not None:
        role.permissions = [grant.to_json() for grant in permissions]
    if is_active is not None:
        role.is_active = is_active
    db.commit()
    db.refresh(role)
    return role


def deactivate_custom_role(db: Session, role: Role) -> None:
    """Soft-delete: the role stops granting anything but assignments keep their history"""
    role.is_active = False
    db.commit()


def assign_role(
    db: Session,
    user: User,
    role: Role,
    assigned_by: int | None,
    assigner_is_super_admin: bool = False,
) -> UserRole:
    """
    Assign a role; an existing active assignment is returned unchanged.

    Raises:
        PermissionDenied: the role is SUPER_ADMIN and the assigner is not one
    """
    if parse_system_role(role.name) is SystemRole.SUPER_ADMIN and not assigner_is_super_admin:
        raise PermissionDenied(f"User {assigned_by} may not grant SUPER_ADMIN to user {user.id}")

    existing = (
        db.query(UserRole)
        .filter(UserRole.user_id == user.id, UserRole.role_id == role.id, UserRole.is_active)
        .first()
    )
    if existing:
        return existing

    assignment = UserRole(user_id=user.id, role_id=role.id, assigned_by=assigned_by, is_active=True)
    db.add(assignment)
    db.commit()
    db.refresh(assignment)
    return assignment


def revoke_role(db: Session, user_id: int, role_id: int, revoked_by: int | None) -> int:
    """Deactivate active assignments; returns how many were revoked"""
    assignments = (
        db.query(UserRole)
        .filter(UserRole.user_id == user_id, UserRole.role_id == role_id, UserRole.is_active)
        .all()
    )
    now = datetime.utcnow()
    for assignment in assignments:
        assignment.is_active = False
        assignment.revoked_at = now
        assignment.revoked_by = revoked_by
    db.commit()
    return len(assignments)


# ========================================
# Overrides
# ========================================


def create_override(
    db: Session,
    user: User,
    resource: str,
    action: str,
    granted: bool,
    reason: str,
    practice_id: int,
    created_by: int | None,
    expires_at: datetime | None = None,
) -> PermissionOverride:
    """Create an active override; resource/action are stored in canonical form"""
    override = PermissionOverride(
        user_id=user.id,
        user_name=user.name,
        user_email=user.email,
        resource=normalize_resource(resource).value,
        action=normalize_action(action).value,
        granted=granted,
        reason=reason,
        expires_at=expires_at,
        practice_id=practice_id,
        status=OverrideStatus.ACTIVE.value,
        created_by=created_by,
    )
    db.add(override)
    db.commit()
    db.refresh(override)
    logger.info(
        f"Override {override.id} created for user {user.id}: "
        f"{override.resource}:{override.action} granted={granted}"
    )
    return override


def revoke_override(db: Session, override: PermissionOverride, revoked_by: int | None) -> bool:
    """
    Revoke an override. Revoked and expired overrides are terminal;
    returns False when there was nothing to revoke.
    """
    if override.effective_status() is not OverrideStatus.ACTIVE:
        return False
    override.status = OverrideStatus.REVOKED.value
    override.revoked_at = datetime.utcnow()
    override.revoked_by = revoked_by
    db.commit()
    logger.info(f"Override {override.id} revoked by {revoked_by}")
    return True


# ========================================
# Categories
# ========================================


def set_category_active(db: Session, category: PermissionCategory, is_active: bool) -> bool:
    """Set a category's active flag; returns whether anything changed"""
    if category.is_active == is_active:
        return False
    category.is_active = is_active
    db.commit()
    return True

# ========================================
# Lookups
# ========================================


def get_practice_user(db: Session, user_id: int, practice_id: int | None) -> User | None:
    """A user who belongs to (or is currently working in) the practice"""
    user = db.get(User, user_id)
    if user is None:
        return None
    if practice_id is not None and practice_id not in (user.practice_id, user.current_practice_id):
        return None
    return user


def get_visible_role(db: Session, role_id: int, practice_id: int | None) -> Role | None:
    """System roles, or custom roles of the practice"""
    role = db.get(Role, role_id)
    if role is None:
        return None
    if role.practice_id is not None and role.practice_id != practice_id:
        return None
    return role
