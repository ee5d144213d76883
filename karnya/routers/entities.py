from typing import List, Optional, Type

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from karnya.core.auth import get_current_identity, require_roles
from karnya.core.config import settings
from karnya.core.db import MAX_ROW_ID, get_db
from karnya.core.permissions import UserRole
from karnya.core.security import Identity
from karnya.schemas.base import BaseSchema
from karnya.schemas.common import Page
from karnya.schemas.entity import HotelIn, HotelOut, HotelPatch, NgoIn, NgoOut, NgoPatch, RatingIn
from karnya.services import geo_search
from karnya.services.entities import HOTELS, NGOS, EntityRepository
from karnya.services.geo_search import EntityType, SearchQuery


def make_router(
    entity_type: EntityType,
    prefix: str,
    tag_param: str,
    create_schema: Type[BaseSchema],
    patch_schema: Type[BaseSchema],
    out_schema: Type[BaseSchema],
) -> APIRouter:
    """CRUD + search routes for one entity type; both types share the handlers."""
    router = APIRouter(prefix=prefix, tags=[prefix.rsplit("/", 1)[-1]])

    def repo(db: Session = Depends(get_db)) -> EntityRepository:
        return EntityRepository(db, entity_type)

    @router.get("/search", response_model=Page[out_schema])
    def search(
        latitude: Optional[float] = Query(None, ge=-90, le=90),
        longitude: Optional[float] = Query(None, ge=-180, le=180),
        radius: float = Query(settings.DEFAULT_SEARCH_RADIUS, gt=0),
        tags: Optional[List[str]] = Query(None, alias=tag_param),
        min_rating: Optional[float] = Query(None, alias="minRating", ge=0),
        page: int = Query(1),
        limit: int = Query(settings.DEFAULT_PAGE_SIZE),
        db: Session = Depends(get_db),
        identity: Identity = Depends(get_current_identity),
    ):
        result = geo_search.search(
            db,
            entity_type,
            SearchQuery(
                longitude=longitude,
                latitude=latitude,
                radius=radius,
                tags=tags or [],
                min_rating=min_rating,
                page=page,
                page_size=limit,
            ),
        )
        return {
            "items": result.items,
            "meta": {
                "page": result.page,
                "page_size": result.page_size,
                "total": result.total,
                "total_pages": result.total_pages,
            },
        }

    @router.post("", response_model=out_schema, status_code=status.HTTP_201_CREATED)
    def create(
        body: create_schema,
        identity: Identity = Depends(get_current_identity),
        entities: EntityRepository = Depends(repo),
    ):
        return entities.create(body.model_dump(by_alias=False), owner_id=identity.id)

    @router.get("/mine", response_model=List[out_schema])
    def mine(
        identity: Identity = Depends(get_current_identity),
        entities: EntityRepository = Depends(repo),
    ):
        return entities.list_by_owner(identity.id)

    @router.get("/{entity_id}", response_model=out_schema)
    def get_one(
        entity_id: int = Path(..., ge=1, le=MAX_ROW_ID),
        identity: Identity = Depends(get_current_identity),
        entities: EntityRepository = Depends(repo),
    ):
        return entities.get(entity_id)

    @router.patch("/{entity_id}", response_model=out_schema)
    def update(
        body: patch_schema,
        entity_id: int = Path(..., ge=1, le=MAX_ROW_ID),
        identity: Identity = Depends(get_current_identity),
        entities: EntityRepository = Depends(repo),
    ):
        return entities.update(entity_id, body.model_dump(exclude_unset=True, by_alias=False), identity)

    @router.delete("/{entity_id}", status_code=200)
    def delete(
        entity_id: int = Path(..., ge=1, le=MAX_ROW_ID),
        identity: Identity = Depends(get_current_identity),
        entities: EntityRepository = Depends(repo),
    ):
        return {"id": entities.soft_delete(entity_id, identity), "message": f"{entity_type.name} removed"}

    @router.post("/{entity_id}/ratings", response_model=out_schema)
    def rate(
        body: RatingIn,
        entity_id: int = Path(..., ge=1, le=MAX_ROW_ID),
        identity: Identity = Depends(get_current_identity),
        entities: EntityRepository = Depends(repo),
    ):
        return entities.rate(entity_id, body.score)

    return router


hotels_router = make_router(HOTELS, "/api/hotels", "cuisineType", HotelIn, HotelPatch, HotelOut)
ngos_router = make_router(NGOS, "/api/ngos", "focusArea", NgoIn, NgoPatch, NgoOut)


@ngos_router.patch("/{entity_id}/verify", response_model=NgoOut)
def verify_ngo(
    entity_id: int = Path(..., ge=1, le=MAX_ROW_ID),
    identity: Identity = Depends(require_roles(UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value)),
    db: Session = Depends(get_db),
):
    return EntityRepository(db, NGOS).verify(entity_id)
