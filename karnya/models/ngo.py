from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.ext.associationproxy import association_proxy
from sqlalchemy.orm import relationship

from karnya.core.db import Base
from karnya.models.entity import GeoEntityMixin


class Ngo(GeoEntityMixin, Base):
    __tablename__ = "ngos"

    owner_id = Column("admin_id", Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)

    registration_number = Column(String(100), nullable=True)
    beneficiaries = Column(Integer, nullable=False, default=0)
    # search only shows verified NGOs
    is_verified = Column(Boolean, nullable=False, default=False, index=True)

    focus_rows = relationship(
        "NgoFocusArea", cascade="all, delete-orphan", back_populates="ngo", lazy="selectin"
    )
    focus_areas = association_proxy("focus_rows", "name", creator=lambda name: NgoFocusArea(name=name))


class NgoFocusArea(Base):
    __tablename__ = "ngo_focus_areas"
    __table_args__ = (UniqueConstraint("ngo_id", "name", name="uq_ngo_focus_areas_ngo_name"),)

    id = Column(Integer, primary_key=True)
    ngo_id = Column(Integer, ForeignKey("ngos.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False, index=True)

    ngo = relationship("Ngo", back_populates="focus_rows")
