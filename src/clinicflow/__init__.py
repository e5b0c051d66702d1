"""
ClinicFlow - live queueing simulation of an emergency department.

Patients move through registration, nursing and doctor treatment,
competing for receptionists, nurses and doctors under priority-based
scheduling. Built on NumPy and SimPy.
"""

__version__ = "0.1.0"

from clinicflow.core.entities import PatientPriority, PatientStatus, StaffRole
from clinicflow.core.scenario import EngineConfig
from clinicflow.model.engine import EngineSnapshot, SimulationEngine

__all__ = [
    "EngineConfig",
    "EngineSnapshot",
    "PatientPriority",
    "PatientStatus",
    "SimulationEngine",
    "StaffRole",
    "__version__",
]
