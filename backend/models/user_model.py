# backend/models/user_model.py
from sqlalchemy import Column, Integer, CheckConstraint
from sqlalchemy.types import Unicode
from database.session import Base

class User(Base):
    __tablename__ = "users"
    id             = Column(Integer, primary_key=True, index=True)
    username       = Column(Unicode(100), nullable=False)
    email          = Column(Unicode(255), unique=True)
    phone          = Column(Unicode(20))
    role           = Column(Unicode(20), nullable=False)  # UserRole
    account_status = Column(Unicode(20), nullable=False, default="ACTIVE")

    __table_args__ = (
        CheckConstraint(
            "role in ('DONOR_SELLER','CHARITY_ORG','BUYER','INDEP_DELIVERY','ORG_VOLUNTEER','ADMIN')"
        ),
    )
