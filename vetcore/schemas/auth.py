### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Practice Auth Schemas -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Practice Auth Schemas

Login payloads and the current-user view for practice staff and clients.
"""

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Practice user login"""
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    """Authenticated user"""
    id: int
    email: str
    name: str
    role: str
    practice_id: int | None = None
    current_practice_id: int | None = None

    class Config:
        from_attributes = True


class CurrentUserResponse(BaseModel):
    """User plus what they may do across practices"""
    user: UserResponse
    accessible_practices: list[int | str] = Field(default_factory=list)
    can_switch_practices: bool = False
    is_super_admin: bool = False
