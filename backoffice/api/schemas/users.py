from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .common import CamelModel


class UserOut(CamelModel):
    id: int
    name: str
    telegram_id: str
    role: str
    role_id: int
    status: bool
    group_ids: List[int] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    telegram_id: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)
    status: bool = True
    role_id: Optional[int] = None
    group_id: Optional[int] = None
    group_ids: Optional[List[int]] = None


class UserUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    telegram_id: Optional[str] = Field(None, min_length=1, max_length=255)
    password: Optional[str] = Field(None, min_length=1)
    status: Optional[bool] = None
    role_id: Optional[int] = None
    group_id: Optional[int] = None
    group_ids: Optional[List[int]] = None
