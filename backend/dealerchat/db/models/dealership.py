"""SQLAlchemy model for dealership records."""

import uuid

from sqlalchemy import Column, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import DateTime

from dealerchat.db.base import Base


class Dealership(Base):
    __tablename__ = "dealerships"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    phone = Column(String(32))
    email = Column(String(255))
    address = Column(String(255))
    timezone = Column(String(64), nullable=False, default="America/New_York")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    leads = relationship("Lead", back_populates="dealership")
    vehicles = relationship("Vehicle", back_populates="dealership")
