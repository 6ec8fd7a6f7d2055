from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from backoffice.core.rbac.permissions import is_valid_permission_name

from .common import CamelModel


class RoleOut(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class RoleCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=255)


class RoleUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=255)


class PermissionOut(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class PermissionCreate(CamelModel):
    name: str = Field(..., min_length=3, max_length=100)
    description: Optional[str] = Field(None, max_length=255)

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        if not is_valid_permission_name(value):
            raise ValueError("Permission name must look like 'resource:action'")
        return value


class PermissionUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=3, max_length=100)
    description: Optional[str] = Field(None, max_length=255)

    @field_validator("name")
    @classmethod
    def check_name(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not is_valid_permission_name(value):
            raise ValueError("Permission name must look like 'resource:action'")
        return value


class RolePermissionIn(CamelModel):
    role_id: int
    permission_id: int


class RolePermissionOut(CamelModel):
    id: int
    role_id: int
    permission_id: int
    created_at: Optional[datetime] = None
