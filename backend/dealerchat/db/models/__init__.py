"""Database models package."""
from dealerchat.db.models.appointment import Appointment
from dealerchat.db.models.dealership import Dealership
from dealerchat.db.models.lead import Lead
from dealerchat.db.models.vehicle import Vehicle, VehicleAvailability, VehicleCondition

__all__ = [
    "Appointment",
    "Dealership",
    "Lead",
    "Vehicle",
    "VehicleAvailability",
    "VehicleCondition",
]
