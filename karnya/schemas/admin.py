from typing import List, Optional

from karnya.core.permissions import UserRole
from .base import BaseSchema


class MenuNodeOut(BaseSchema):
    title: str
    icon: Optional[str] = None
    url: Optional[str] = None
    permission: Optional[str] = None
    children: Optional[List["MenuNodeOut"]] = None


class PermissionsOut(BaseSchema):
    role: str
    permissions: List[str]


class RoleIn(BaseSchema):
    role: UserRole
