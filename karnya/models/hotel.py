from sqlalchemy import Column, Integer, String, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.ext.associationproxy import association_proxy
from sqlalchemy.orm import relationship

from karnya.core.db import Base
from karnya.models.entity import GeoEntityMixin


class Hotel(GeoEntityMixin, Base):
    __tablename__ = "hotels"

    owner_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)

    capacity = Column(Integer, nullable=True)
    opening_hours = Column(JSON, nullable=False, default=dict)

    cuisine_rows = relationship(
        "HotelCuisine", cascade="all, delete-orphan", back_populates="hotel", lazy="selectin"
    )
    cuisine_types = association_proxy("cuisine_rows", "name", creator=lambda name: HotelCuisine(name=name))


class HotelCuisine(Base):
    __tablename__ = "hotel_cuisines"
    __table_args__ = (UniqueConstraint("hotel_id", "name", name="uq_hotel_cuisines_hotel_name"),)

    id = Column(Integer, primary_key=True)
    hotel_id = Column(Integer, ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False, index=True)

    hotel = relationship("Hotel", back_populates="cuisine_rows")
