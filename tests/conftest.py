"""Pytest fixtures for ClinicFlow tests."""

import pytest

from clinicflow.core.entities import PatientPriority, Stage, StaffRole
from clinicflow.core.scenario import EngineConfig
from clinicflow.model.engine import SimulationEngine


class FixedServiceTimes:
    """Service model returning a fixed number of minutes per stage."""

    def __init__(self, registration=3.0, nursing=10.0, treatment=20.0):
        self.minutes = {
            "registration": registration,
            "nursing": nursing,
            "treatment": treatment,
        }
        self.calls = []

    def sample(self, stage: Stage, priority: PatientPriority, rng) -> float:
        self.calls.append((stage.name, priority))
        return self.minutes[stage.name] * 60.0


@pytest.fixture
def default_seed() -> int:
    """Default random seed for reproducible tests."""
    return 42


@pytest.fixture
def fixed_service() -> FixedServiceTimes:
    return FixedServiceTimes()


@pytest.fixture
def quiet_config(default_seed) -> EngineConfig:
    """Config with random arrivals switched off."""
    return EngineConfig(arrival_rate=0.0, random_seed=default_seed)


@pytest.fixture
def engine(quiet_config, fixed_service) -> SimulationEngine:
    """Running engine, no staff, no random arrivals, fixed durations."""
    eng = SimulationEngine(quiet_config, service_times=fixed_service)
    eng.start()
    return eng


@pytest.fixture
def staffed_engine(engine) -> SimulationEngine:
    """Running engine with one receptionist, one nurse and one doctor."""
    engine.add_staff(StaffRole.RECEPTIONIST, 1)
    engine.add_staff(StaffRole.NURSE, 1)
    engine.add_staff(StaffRole.DOCTOR, 1)
    return engine


@pytest.fixture
def make_service():
    """Factory for fixed-duration service models."""
    return FixedServiceTimes
