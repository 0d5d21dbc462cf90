"""SQLAlchemy model for test drives and service appointments."""

import uuid

from sqlalchemy import Column, ForeignKey, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import DateTime

from dealerchat.db.base import Base


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    dealership_id = Column(String(36), ForeignKey("dealerships.id"), nullable=False, index=True)
    lead_id = Column(String(36), ForeignKey("leads.id"), nullable=False, index=True)
    vehicle_id = Column(String(36), ForeignKey("vehicles.id"))
    scheduled_at = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(32), nullable=False, default="scheduled")
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    dealership = relationship("Dealership")
    lead = relationship("Lead", back_populates="appointments")
    vehicle = relationship("Vehicle")
