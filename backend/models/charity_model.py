# backend/models/charity_model.py
from sqlalchemy import Column, Integer, Boolean, ForeignKey
from sqlalchemy.types import Unicode
from sqlalchemy.orm import relationship
from database.session import Base

class CharityOrganization(Base):
    __tablename__ = "charity_organizations"
    id                = Column(Integer, primary_key=True, index=True)
    user_id           = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    organization_name = Column(Unicode(150), nullable=False)
    is_doc_verified   = Column(Boolean, nullable=False, default=False)
    address           = Column(Unicode(200))

    user       = relationship("User", foreign_keys=[user_id])
    volunteers = relationship("OrganizationVolunteer", back_populates="organization")


class OrganizationVolunteer(Base):
    __tablename__ = "organization_volunteers"
    id              = Column(Integer, primary_key=True, index=True)
    user_id         = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    organization_id = Column(Integer, ForeignKey("charity_organizations.id"), nullable=False, index=True)
    volunteer_name  = Column(Unicode(150), nullable=False)
    contact_phone   = Column(Unicode(20))
    is_active       = Column(Boolean, nullable=False, default=True)

    user         = relationship("User", foreign_keys=[user_id])
    organization = relationship("CharityOrganization", back_populates="volunteers")
