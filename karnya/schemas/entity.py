# karnya/schemas/entity.py
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, field_validator

from .base import BaseSchema


class GeoPoint(BaseSchema):
    type: Literal["Point"] = "Point"
    # longitude first
    coordinates: List[float] = Field(..., min_length=2, max_length=2)


class EntityIn(BaseSchema):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    pincode: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    longitude: float = Field(0.0, ge=-180, le=180)
    latitude: float = Field(0.0, ge=-90, le=90)
    images: List[str] = Field(default_factory=list)
    documents: List[str] = Field(default_factory=list)


def reject_null(v):
    if v is None:
        raise ValueError("may not be null")
    return v


class EntityPatch(BaseSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    pincode: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    images: Optional[List[str]] = None
    documents: Optional[List[str]] = None

    # omitted means "leave alone"; explicit null is refused for NOT NULL columns
    @field_validator("name", "longitude", "latitude", "images", "documents")
    @classmethod
    def _not_null(cls, v):
        return reject_null(v)


class EntityOut(BaseSchema):
    id: int
    name: str
    description: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    pincode: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    owner_id: int
    location: GeoPoint
    is_active: bool
    rating: float
    total_ratings: int
    images: List[str] = Field(default_factory=list)
    documents: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


# ---------- hotels ----------
class HotelIn(EntityIn):
    cuisine_types: List[str] = Field(default_factory=list, alias="cuisineType")
    capacity: Optional[int] = Field(None, ge=0)
    opening_hours: Dict[str, Any] = Field(default_factory=dict)


class HotelPatch(EntityPatch):
    cuisine_types: Optional[List[str]] = Field(None, alias="cuisineType")
    capacity: Optional[int] = Field(None, ge=0)
    opening_hours: Optional[Dict[str, Any]] = None

    @field_validator("opening_hours")
    @classmethod
    def _hours_not_null(cls, v):
        return reject_null(v)


class HotelOut(EntityOut):
    cuisine_types: List[str] = Field(default_factory=list, alias="cuisineType")
    capacity: Optional[int] = None
    opening_hours: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("cuisine_types", mode="before")
    @classmethod
    def _as_list(cls, v):
        return list(v or [])


# ---------- ngos ----------
class NgoIn(EntityIn):
    registration_number: Optional[str] = None
    focus_areas: List[str] = Field(default_factory=list)
    beneficiaries: int = Field(0, ge=0)


class NgoPatch(EntityPatch):
    registration_number: Optional[str] = None
    focus_areas: Optional[List[str]] = None
    beneficiaries: Optional[int] = Field(None, ge=0)

    @field_validator("beneficiaries")
    @classmethod
    def _beneficiaries_not_null(cls, v):
        return reject_null(v)


class NgoOut(EntityOut):
    registration_number: Optional[str] = None
    focus_areas: List[str] = Field(default_factory=list)
    beneficiaries: int = 0
    is_verified: bool

    @field_validator("focus_areas", mode="before")
    @classmethod
    def _as_list(cls, v):
        return list(v or [])


class RatingIn(BaseSchema):
    score: float = Field(..., ge=1, le=5)
