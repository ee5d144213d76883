#karnya/services/geo_search.py
"""Proximity search with filters and pagination, shared by hotels and NGOs.

One ``search`` function serves every entity type; what differs between
types (visibility rule, which tag set the type filter hits) is carried by
an ``EntityType`` descriptor.

Ordering is rating descending. When a location is given, ties are broken
nearest-first, and finally by id so that a row never shows up on two pages.
"""
import math
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from sqlalchemy import and_, asc, desc, func, select
from sqlalchemy.orm import Session

from karnya.core.config import settings
from karnya.core.db import EARTH_RADIUS_M, MAX_ROW_ID
from karnya.core.errors import ValidationError


@dataclass(frozen=True)
class EntityType:
    name: str
    model: Any
    tag_relationship: Any
    tag_column: Any
    tag_attr: str
    requires_verification: bool = False

    def visibility(self) -> list:
        clauses = [self.model.is_active.is_(True)]
        if self.requires_verification:
            clauses.append(self.model.is_verified.is_(True))
        return clauses

    def tags_match(self, values: Sequence[str]):
        return self.tag_relationship.any(self.tag_column.in_(list(values)))


@dataclass
class SearchQuery:
    longitude: Optional[float] = None
    latitude: Optional[float] = None
    radius: float = 10000
    tags: List[str] = field(default_factory=list)
    min_rating: Optional[float] = None
    page: int = 1
    page_size: int = 10

    @property
    def has_location(self) -> bool:
        return self.longitude is not None and self.latitude is not None


@dataclass
class SearchPage:
    items: list
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size)


def distance_expr(dialect: str, model, longitude: float, latitude: float):
    """SQL expression for the great-circle distance in metres from a point."""
    if dialect == "sqlite":
        # registered on connect, see karnya.core.db
        return func.geo_distance(model.longitude, model.latitude, longitude, latitude)

    lat1, lat2 = func.radians(model.latitude), math.radians(latitude)
    dlat = func.radians(latitude - model.latitude)
    dlon = func.radians(longitude - model.longitude)
    a = func.power(func.sin(dlat / 2), 2) + func.cos(lat1) * math.cos(lat2) * func.power(func.sin(dlon / 2), 2)
    return 2 * EARTH_RADIUS_M * func.asin(func.sqrt(a))


def normalize(query: SearchQuery) -> SearchQuery:
    errors = []
    if (query.longitude is None) != (query.latitude is None):
        errors.append({"field": "latitude", "message": "latitude and longitude must be given together"})
    if query.radius is not None and query.radius <= 0:
        errors.append({"field": "radius", "message": "radius must be positive"})
    if errors:
        raise ValidationError(errors)

    query.page = max(1, query.page or 1)
    query.page_size = min(max(1, query.page_size or 1), settings.MAX_PAGE_SIZE)
    # keep the OFFSET bindable
    query.page = min(query.page, MAX_ROW_ID // query.page_size)
    if query.radius is None:
        query.radius = settings.DEFAULT_SEARCH_RADIUS
    return query


def search(db: Session, entity_type: EntityType, query: SearchQuery) -> SearchPage:
    query = normalize(query)
    model = entity_type.model

    clauses = entity_type.visibility()
    order_by = [desc(model.rating)]

    if query.has_location:
        distance = distance_expr(db.get_bind().dialect.name, model, query.longitude, query.latitude)
        clauses.append(distance <= query.radius)
        order_by.append(asc(distance))

    if query.tags:
        clauses.append(entity_type.tags_match(query.tags))

    if query.min_rating is not None:
        clauses.append(model.rating >= query.min_rating)

    order_by.append(asc(model.id))
    where = and_(*clauses)

    # same predicate for the count and the page
    total = db.scalar(select(func.count(model.id)).where(where))
    rows = (
        db.execute(
            select(model)
            .where(where)
            .order_by(*order_by)
            .offset((query.page - 1) * query.page_size)
            .limit(query.page_size)
        )
        .scalars()
        .all()
    )
    return SearchPage(items=list(rows), total=total, page=query.page, page_size=query.page_size)
