# backend/models/courier_model.py
from sqlalchemy import Column, Integer, Boolean, Float, ForeignKey, JSON
from sqlalchemy.types import Unicode
from sqlalchemy.orm import relationship
from database.session import Base

class IndependentCourier(Base):
    __tablename__ = "independent_couriers"
    id              = Column(Integer, primary_key=True, index=True)
    user_id         = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    full_name       = Column(Unicode(150), nullable=False)
    is_id_verified  = Column(Boolean, nullable=False, default=False)
    operating_areas = Column(JSON, nullable=False, default=list)  # ["Dhanmondi", "Mirpur", ...]
    rating          = Column(Float, nullable=False, default=0.0)

    user = relationship("User", foreign_keys=[user_id])
