#karnya/services/entities.py

import logging
from typing import Any, Dict, Iterable, List

from sqlalchemy import update
from sqlalchemy.orm import Session

from karnya.core.db import utcnow
from karnya.core.errors import Forbidden, NotFound
from karnya.core.permissions import UserRole
from karnya.core.security import Identity
from karnya.models.hotel import Hotel, HotelCuisine
from karnya.models.ngo import Ngo, NgoFocusArea
from karnya.services.geo_search import EntityType

logger = logging.getLogger(__name__)

HOTELS = EntityType(
    name="Hotel",
    model=Hotel,
    tag_relationship=Hotel.cuisine_rows,
    tag_column=HotelCuisine.name,
    tag_attr="cuisine_types",
)

NGOS = EntityType(
    name="NGO",
    model=Ngo,
    tag_relationship=Ngo.focus_rows,
    tag_column=NgoFocusArea.name,
    tag_attr="focus_areas",
    requires_verification=True,
)

# never written through create/update
PROTECTED_FIELDS = {
    "id", "owner_id", "is_active", "is_verified", "rating", "total_ratings", "created_at", "updated_at",
}

MANAGER_ROLES = {UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value}


def _unique(values: Iterable[str]) -> List[str]:
    seen: List[str] = []
    for v in values:
        if v not in seen:
            seen.append(v)
    return seen


class EntityRepository:
    def __init__(self, db: Session, entity_type: EntityType):
        self.db = db
        self.type = entity_type
        self.model = entity_type.model

    def _set_tags(self, obj, names: Iterable[str]) -> None:
        # diff against existing rows; (owner, name) is unique per table
        wanted = _unique(names)
        rows = getattr(obj, self.type.tag_relationship.key)
        for row in list(rows):
            if row.name not in wanted:
                rows.remove(row)
        present = {row.name for row in rows}
        proxy = getattr(obj, self.type.tag_attr)
        for name in wanted:
            if name not in present:
                proxy.append(name)

    def create(self, data: Dict[str, Any], owner_id: int):
        data = {k: v for k, v in data.items() if k not in PROTECTED_FIELDS}
        tags = data.pop(self.type.tag_attr, None) or []
        obj = self.model(**data, owner_id=owner_id)
        self._set_tags(obj, tags)
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        logger.info("Created %s id=%s owner=%s", self.type.name, obj.id, owner_id)
        return obj

    def _load(self, entity_id: int, active_only: bool = True):
        q = self.db.query(self.model).filter(self.model.id == entity_id)
        if active_only:
            q = q.filter(self.model.is_active.is_(True))
        obj = q.first()
        if obj is None:
            raise NotFound(f"{self.type.name} not found")
        return obj

    def get(self, entity_id: int):
        return self._load(entity_id)

    def list_by_owner(self, owner_id: int) -> list:
        return (
            self.db.query(self.model)
            .filter(self.model.owner_id == owner_id, self.model.is_active.is_(True))
            .order_by(self.model.id)
            .all()
        )

    def ensure_can_modify(self, obj, identity: Identity) -> None:
        if obj.owner_id != identity.id and identity.role not in MANAGER_ROLES:
            raise Forbidden(f"Not authorized to modify this {self.type.name}")

    def update(self, entity_id: int, patch: Dict[str, Any], identity: Identity):
        obj = self._load(entity_id)
        self.ensure_can_modify(obj, identity)
        for key, value in patch.items():
            if key in PROTECTED_FIELDS:
                continue
            if key == self.type.tag_attr:
                self._set_tags(obj, value or [])
            elif hasattr(obj, key):
                setattr(obj, key, value)
        obj.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def soft_delete(self, entity_id: int, identity: Identity) -> int:
        obj = self._load(entity_id)
        self.ensure_can_modify(obj, identity)
        obj.is_active = False
        obj.updated_at = utcnow()
        self.db.commit()
        logger.info("Deactivated %s id=%s", self.type.name, entity_id)
        return entity_id

    def rate(self, entity_id: int, score: float):
        self._load(entity_id)
        model = self.model
        # running mean, computed in a single UPDATE
        self.db.execute(
            update(model)
            .where(model.id == entity_id)
            .values(
                rating=(model.rating * model.total_ratings + score) / (model.total_ratings + 1),
                total_ratings=model.total_ratings + 1,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return self._load(entity_id)

    def verify(self, entity_id: int):
        if not self.type.requires_verification:
            raise NotFound(f"{self.type.name} has no verification step")
        obj = self._load(entity_id)
        obj.is_verified = True
        obj.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(obj)
        logger.info("Verified %s id=%s", self.type.name, entity_id)
        return obj
