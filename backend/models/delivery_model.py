# backend/models/delivery_model.py
from sqlalchemy import Column, Integer, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.types import Unicode, UnicodeText
from sqlalchemy.orm import relationship
from database.session import Base

class Delivery(Base):
    __tablename__ = "deliveries"
    id             = Column(Integer, primary_key=True, index=True)
    order_id       = Column(Integer, ForeignKey("orders.id"), unique=True)
    claim_id       = Column(Integer, ForeignKey("donation_claims.id"), unique=True)
    personnel_type = Column(Unicode(20), nullable=False)  # INDEPENDENT / ORG_VOLUNTEER
    actor_id       = Column(Integer, ForeignKey("users.id"), index=True)
    status         = Column(Unicode(20), nullable=False, default="SCHEDULED")
    failure_reason = Column(UnicodeText)
    updated_at     = Column(DateTime(timezone=True))

    __table_args__ = (
        # attached to exactly one order or one claim, never both
        CheckConstraint(
            "(order_id IS NOT NULL AND claim_id IS NULL) OR (order_id IS NULL AND claim_id IS NOT NULL)"
        ),
        CheckConstraint("status in ('SCHEDULED','IN_TRANSIT','DELIVERED','FAILED')"),
    )

    order = relationship("Order", foreign_keys=[order_id])
    claim = relationship("DonationClaim", foreign_keys=[claim_id])
    actor = relationship("User", foreign_keys=[actor_id])
