import math
from typing import List

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from karnya.core.auth import get_current_identity, require_permission
from karnya.core.db import MAX_ROW_ID, get_db
from karnya.core.permissions import ADMIN_MENU, filter_tree, menu_to_dict, permissions_for
from karnya.core.security import Identity
from karnya.schemas.admin import MenuNodeOut, PermissionsOut, RoleIn
from karnya.schemas.auth import AccountOut
from karnya.schemas.common import Page
from karnya.services.accounts import AccountLifecycle, AccountStore
from karnya.routers.auth import get_lifecycle

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/navigation", response_model=List[MenuNodeOut])
def navigation(identity: Identity = Depends(get_current_identity)):
    visible = filter_tree(ADMIN_MENU, permissions_for(identity.role))
    return [menu_to_dict(node) for node in visible]


@router.get("/permissions", response_model=PermissionsOut)
def my_permissions(identity: Identity = Depends(get_current_identity)):
    return {"role": identity.role, "permissions": sorted(permissions_for(identity.role))}


@router.get("/users", response_model=Page[AccountOut])
def list_users(
    page: int = Query(1, ge=1, le=MAX_ROW_ID // 100),
    size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_permission("users.manage")),
):
    rows, total = AccountStore(db).page(page, size)
    return {
        "items": rows,
        "meta": {"page": page, "page_size": size, "total": total, "total_pages": math.ceil(total / size)},
    }


@router.patch("/users/{user_id}/role", response_model=AccountOut)
def change_role(
    body: RoleIn,
    user_id: int = Path(..., ge=1, le=MAX_ROW_ID),
    lifecycle: AccountLifecycle = Depends(get_lifecycle),
    identity: Identity = Depends(require_permission("roles.manage")),
):
    return lifecycle.change_role(identity, user_id, body.role.value)
