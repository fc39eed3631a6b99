# backend/models/listing_model.py
from sqlalchemy import Column, Integer, Float, Boolean, DateTime, ForeignKey, CheckConstraint, func
from sqlalchemy.types import Unicode, UnicodeText
from sqlalchemy.orm import relationship
from database.session import Base

class FoodListing(Base):
    __tablename__ = "food_listings"
    id                  = Column(Integer, primary_key=True, index=True)
    owner_id            = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title               = Column(Unicode(150), nullable=False)
    description         = Column(UnicodeText, nullable=False, default="")
    food_type           = Column(Unicode(100), nullable=False, default="")
    cooked_at           = Column(DateTime(timezone=True), nullable=False)
    pickup_window_start = Column(DateTime(timezone=True), nullable=False)
    pickup_window_end   = Column(DateTime(timezone=True))
    pickup_location     = Column(Unicode(255))
    is_donation         = Column(Boolean, nullable=False, default=True)
    price               = Column(Float)  # NULL for donations
    quantity            = Column(Unicode(100))
    dietary_info        = Column(Unicode(255))
    status              = Column(Unicode(20), nullable=False, default="ACTIVE", index=True)
    image_path          = Column(Unicode(500))
    created_at          = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("status in ('ACTIVE','CLAIMED','SOLD','EXPIRED','REMOVED')"),
    )

    owner = relationship("User", foreign_keys=[owner_id])
