"""Model layer: patients, staff, stage assignment, clock and engine."""

from clinicflow.model.patient import InvalidTransitionError, Patient
from clinicflow.model.staff import Staff
from clinicflow.model.service import ServiceTimeModel, TieredServiceTimes
from clinicflow.model.engine import EngineSnapshot, SimulationEngine

__all__ = [
    "InvalidTransitionError",
    "Patient",
    "Staff",
    "ServiceTimeModel",
    "TieredServiceTimes",
    "EngineSnapshot",
    "SimulationEngine",
]
