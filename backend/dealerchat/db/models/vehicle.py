"""SQLAlchemy model for the per-dealership vehicle catalog."""

import enum
import uuid

from sqlalchemy import JSON, Boolean, Column, Enum, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import DateTime

from dealerchat.db.base import Base


class VehicleCondition(str, enum.Enum):
    NEW = "NEW"
    USED = "USED"
    CERTIFIED = "CERTIFIED"


class VehicleAvailability(str, enum.Enum):
    IN_STOCK = "IN_STOCK"
    PENDING = "PENDING"
    SOLD = "SOLD"


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    dealership_id = Column(String(36), ForeignKey("dealerships.id"), nullable=False)
    vin = Column(String(32), nullable=False, unique=True)
    stock_number = Column(String(64))
    year = Column(Integer)
    make = Column(String(64))
    model = Column(String(64))
    trim = Column(String(64))
    condition = Column(Enum(VehicleCondition, name="vehicle_condition"), nullable=False)
    price = Column(Numeric(12, 2))
    mileage = Column(Integer)
    exterior_color = Column(String(64))
    body_type = Column(String(64))
    images = Column(JSON, nullable=False, default=list)
    availability = Column(
        Enum(VehicleAvailability, name="vehicle_availability"),
        nullable=False,
        default=VehicleAvailability.IN_STOCK,
    )
    featured = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    dealership = relationship("Dealership", back_populates="vehicles")

    __table_args__ = (
        Index("ix_vehicles_dealership_availability", "dealership_id", "availability"),
    )
