"""Engine configuration dataclass and file loading."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np

from clinicflow.core.entities import PatientPriority, StaffRole


# Configuration surface limits
MIN_ARRIVAL_RATE = 0.0
MAX_ARRIVAL_RATE = 30.0
MIN_SIMULATION_SPEED = 0.5
MAX_SIMULATION_SPEED = 10.0

DEFAULT_PRIORITY_MIX: Dict[PatientPriority, float] = {
    PatientPriority.CRITICAL: 0.10,
    PatientPriority.URGENT: 0.30,
    PatientPriority.STANDARD: 0.60,
}

# Staffing the dashboard starts with; the engine itself assumes none
DASHBOARD_STAFF: Dict[StaffRole, int] = {
    StaffRole.DOCTOR: 2,
    StaffRole.NURSE: 3,
    StaffRole.RECEPTIONIST: 1,
}


def validate_arrival_rate(rate: float) -> float:
    """Check an arrival rate (patients per hour) against the allowed range."""
    rate = float(rate)
    if not MIN_ARRIVAL_RATE <= rate <= MAX_ARRIVAL_RATE:
        raise ValueError(
            f"arrival_rate must be within [{MIN_ARRIVAL_RATE}, {MAX_ARRIVAL_RATE}] "
            f"patients/hour, got {rate}"
        )
    return rate


def validate_simulation_speed(speed: float) -> float:
    """Check a speed multiplier against the allowed range."""
    speed = float(speed)
    if not MIN_SIMULATION_SPEED <= speed <= MAX_SIMULATION_SPEED:
        raise ValueError(
            f"simulation_speed must be within [{MIN_SIMULATION_SPEED}, "
            f"{MAX_SIMULATION_SPEED}], got {speed}"
        )
    return speed


@dataclass
class EngineConfig:
    """Configuration for a simulation engine.

    Attributes:
        arrival_rate: Patient arrivals per hour (0-30).
        simulation_speed: Multiplier applied to real elapsed time (0.5-10).
        tick_interval: Scheduler seconds between ticks at 1x speed.
        initial_staff: Headcount per role created with the engine.
        priority_mix: Categorical probabilities for random arrivals.
        treated_retention: Treated patients kept for inspection.
        realtime: Pace the scheduler against the wall clock.
        random_seed: Master seed for reproducibility.
    """

    arrival_rate: float = 10.0
    simulation_speed: float = 1.0
    tick_interval: float = 1.0

    initial_staff: Dict[StaffRole, int] = field(default_factory=dict)
    priority_mix: Dict[PatientPriority, float] = field(
        default_factory=lambda: dict(DEFAULT_PRIORITY_MIX)
    )
    treated_retention: int = 100
    realtime: bool = False

    # Reproducibility
    random_seed: int = 42

    # RNG streams (created in __post_init__)
    rng_arrivals: Optional[np.random.Generator] = field(default=None, repr=False)
    rng_priority: Optional[np.random.Generator] = field(default=None, repr=False)
    rng_service: Optional[np.random.Generator] = field(default=None, repr=False)
    rng_symptoms: Optional[np.random.Generator] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        """Validate, normalise keys and create one RNG stream per stochastic element."""
        self.arrival_rate = validate_arrival_rate(self.arrival_rate)
        self.simulation_speed = validate_simulation_speed(self.simulation_speed)
        if self.tick_interval <= 0:
            raise ValueError(f"tick_interval must be positive, got {self.tick_interval}")
        if self.treated_retention < 0:
            raise ValueError(
                f"treated_retention must be non-negative, got {self.treated_retention}"
            )

        self.initial_staff = {
            StaffRole.parse(role): int(count) for role, count in self.initial_staff.items()
        }
        if any(count < 0 for count in self.initial_staff.values()):
            raise ValueError("initial_staff counts must be non-negative")

        self.priority_mix = {
            PatientPriority.parse(p): float(prob) for p, prob in self.priority_mix.items()
        }
        if any(prob < 0 for prob in self.priority_mix.values()):
            raise ValueError("priority_mix probabilities must be non-negative")
        total = sum(self.priority_mix.values())
        if abs(total - 1.0) > 0.001:
            raise ValueError(f"priority_mix must sum to 1.0, got {total}")

        self.rng_arrivals = np.random.default_rng(self.random_seed)
        self.rng_priority = np.random.default_rng(self.random_seed + 1)
        self.rng_service = np.random.default_rng(self.random_seed + 2)
        self.rng_symptoms = np.random.default_rng(self.random_seed + 3)

    def clone_with_seed(self, new_seed: int) -> "EngineConfig":
        """Create a copy of this config with a different seed and fresh RNGs."""
        return EngineConfig(
            arrival_rate=self.arrival_rate,
            simulation_speed=self.simulation_speed,
            tick_interval=self.tick_interval,
            initial_staff=dict(self.initial_staff),
            priority_mix=dict(self.priority_mix),
            treated_retention=self.treated_retention,
            realtime=self.realtime,
            random_seed=new_seed,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data form suitable for YAML/JSON."""
        return {
            "arrival_rate": self.arrival_rate,
            "simulation_speed": self.simulation_speed,
            "tick_interval": self.tick_interval,
            "initial_staff": {role.name: count for role, count in self.initial_staff.items()},
            "priority_mix": {p.name: prob for p, prob in self.priority_mix.items()},
            "treated_retention": self.treated_retention,
            "realtime": self.realtime,
            "random_seed": self.random_seed,
        }


def load_config(config_path: Path) -> EngineConfig:
    """Load an engine configuration from a YAML or JSON file.

    Args:
        config_path: Path to configuration file (.yaml, .yml, or .json)

    Returns:
        EngineConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If file format is not supported or values are invalid
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        if config_path.suffix in (".yaml", ".yml"):
            import yaml

            data = yaml.safe_load(f) or {}
        elif config_path.suffix == ".json":
            data = json.load(f)
        else:
            raise ValueError(
                f"Unsupported config format: {config_path.suffix}. "
                "Use .yaml, .yml, or .json"
            )

    unknown = set(data) - set(EngineConfig().to_dict())
    if unknown:
        raise ValueError(f"Unknown config keys: {sorted(unknown)}")
    return EngineConfig(**data)


def save_config(config: EngineConfig, config_path: Path) -> None:
    """Save an engine configuration to a YAML or JSON file.

    Raises:
        ValueError: If file format is not supported
    """
    config_path = Path(config_path)
    if config_path.suffix not in (".yaml", ".yml", ".json"):
        raise ValueError(
            f"Unsupported config format: {config_path.suffix}. "
            "Use .yaml, .yml, or .json"
        )

    # Ensure parent directory exists
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        if config_path.suffix == ".json":
            json.dump(config.to_dict(), f, indent=2)
        else:
            import yaml

            yaml.safe_dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
