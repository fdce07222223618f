"""Pydantic schemas for role records and theatre role assignments."""

from __future__ import annotations

import uuid
from enum import Enum

from pydantic import BaseModel

from boxoffice.services.roles import RoleKind


class RoleRead(BaseModel):
    id: uuid.UUID
    name: str

    model_config = {"from_attributes": True}


class RoleAction(str, Enum):
    CREATE = "create"
    DELETE = "delete"


class UserRoleChange(BaseModel):
    action: RoleAction
    user_id: uuid.UUID
    role: RoleKind


class RoleAssignmentRead(BaseModel):
    user_id: uuid.UUID
    role: RoleKind
    theatre_id: uuid.UUID


class RoleUpdateResult(BaseModel):
    created: int
    deleted: int
