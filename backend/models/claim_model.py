# backend/models/claim_model.py
from sqlalchemy import Column, Integer, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.types import Unicode, UnicodeText
from sqlalchemy.orm import relationship
from database.session import Base

class DonationClaim(Base):
    __tablename__ = "donation_claims"
    id               = Column(Integer, primary_key=True, index=True)
    charity_id       = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    donor_id         = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    listing_id       = Column(Integer, ForeignKey("food_listings.id"), nullable=False, index=True)
    delivery_type    = Column(Unicode(20), nullable=False)
    delivery_address = Column(UnicodeText)
    pickup_code      = Column(Unicode(20), unique=True, nullable=False)
    status           = Column(Unicode(20), nullable=False, default="PENDING")
    notes            = Column(UnicodeText)
    created_at       = Column(DateTime(timezone=True))
    updated_at       = Column(DateTime(timezone=True))

    __table_args__ = (
        CheckConstraint("status in ('PENDING','APPROVED','REJECTED','COMPLETED','CANCELLED')"),
        CheckConstraint("delivery_type in ('SELF_PICKUP','HOME_DELIVERY')"),
    )

    charity = relationship("User", foreign_keys=[charity_id])
    donor   = relationship("User", foreign_keys=[donor_id])
    listing = relationship("FoodListing", foreign_keys=[listing_id])
