# backend/models/notification_model.py
from sqlalchemy import Column, Integer, Boolean, DateTime, ForeignKey, JSON, func
from sqlalchemy.types import Unicode, UnicodeText
from sqlalchemy.orm import relationship
from database.session import Base

class Notification(Base):
    __tablename__ = "notifications"
    id           = Column(Integer, primary_key=True, index=True)
    recipient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    category     = Column(Unicode(30), nullable=False)  # ORDER_UPDATE / CLAIM_UPDATE / DELIVERY_UPDATE ...
    event_type   = Column(Unicode(50), nullable=False)
    message      = Column(UnicodeText, nullable=False)
    reference_id = Column(Integer)
    data         = Column(JSON)
    is_read      = Column(Boolean, nullable=False, default=False)
    created_at   = Column(DateTime(timezone=True), server_default=func.now())

    recipient = relationship("User", foreign_keys=[recipient_id])
