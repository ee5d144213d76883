from sqlalchemy import Column, Integer, String, Text, Boolean, Float, DateTime, JSON

from karnya.core.db import utcnow


class GeoEntityMixin:
    """Columns shared by every location-bearing business record."""

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    address = Column(String(500), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    pincode = Column(String(20), nullable=True)

    phone = Column(String(30), nullable=True)
    email = Column(String(255), nullable=True)
    website = Column(String(500), nullable=True)

    longitude = Column(Float, nullable=False, default=0.0)
    latitude = Column(Float, nullable=False, default=0.0)

    is_active = Column(Boolean, nullable=False, default=True, index=True)

    rating = Column(Float, nullable=False, default=0.0, index=True)
    total_ratings = Column(Integer, nullable=False, default=0)

    images = Column(JSON, nullable=False, default=list)
    documents = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def location(self) -> dict:
        return {"type": "Point", "coordinates": [self.longitude, self.latitude]}
