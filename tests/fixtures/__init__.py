"""
Test fixtures and factories for VetPractice Core tests.
"""

from tests.fixtures.factories import (
    create_invoice,
    create_override,
    create_owner_user,
    create_practice,
    create_role,
    create_session,
    create_tenant,
    create_user,
)

__all__ = [
    "create_invoice",
    "create_override",
    "create_owner_user",
    "create_practice",
    "create_role",
    "create_session",
    "create_tenant",
    "create_user",
]
