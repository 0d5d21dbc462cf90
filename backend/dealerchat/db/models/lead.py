"""SQLAlchemy model for captured leads."""

import uuid

from sqlalchemy import Boolean, Column, ForeignKey, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import DateTime

from dealerchat.db.base import Base


class Lead(Base):
    __tablename__ = "leads"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    dealership_id = Column(String(36), ForeignKey("dealerships.id"), nullable=False, index=True)
    name = Column(String(255))
    email = Column(String(255))
    phone = Column(String(32))
    vehicle_interest = Column(Text)
    pushed_to_crm = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    dealership = relationship("Dealership", back_populates="leads")
    appointments = relationship("Appointment", back_populates="lead")
