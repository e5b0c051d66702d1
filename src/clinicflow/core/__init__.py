"""Core foundation layer: entities, configuration, random process generators."""

from clinicflow.core.entities import (
    PIPELINE,
    PatientPriority,
    PatientStatus,
    Stage,
    StaffRole,
    WAITING_STATUSES,
)
from clinicflow.core.scenario import EngineConfig, load_config, save_config

__all__ = [
    "PIPELINE",
    "PatientPriority",
    "PatientStatus",
    "Stage",
    "StaffRole",
    "WAITING_STATUSES",
    "EngineConfig",
    "load_config",
    "save_config",
]
