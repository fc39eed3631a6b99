# backend/models/order_model.py
from sqlalchemy import Column, Integer, Float, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.types import Unicode, UnicodeText
from sqlalchemy.orm import relationship
from database.session import Base

class Order(Base):
    __tablename__ = "orders"
    id               = Column(Integer, primary_key=True, index=True)
    buyer_id         = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    seller_id        = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    listing_id       = Column(Integer, ForeignKey("food_listings.id"), nullable=False)
    delivery_type    = Column(Unicode(20), nullable=False)
    delivery_address = Column(UnicodeText, nullable=False, default="")
    final_price      = Column(Float, nullable=False)
    delivery_fee     = Column(Float, nullable=False, default=0.0)
    pickup_code      = Column(Unicode(20), unique=True, nullable=False)
    status           = Column(Unicode(20), nullable=False, default="PENDING")
    payment_status   = Column(Unicode(20), nullable=False, default="PENDING")
    notes            = Column(UnicodeText)
    created_at       = Column(DateTime(timezone=True))
    updated_at       = Column(DateTime(timezone=True))

    __table_args__ = (
        CheckConstraint("status in ('PENDING','CONFIRMED','COMPLETED','CANCELLED')"),
        CheckConstraint("delivery_type in ('SELF_PICKUP','HOME_DELIVERY')"),
    )

    buyer   = relationship("User", foreign_keys=[buyer_id])
    seller  = relationship("User", foreign_keys=[seller_id])
    listing = relationship("FoodListing", foreign_keys=[listing_id])
