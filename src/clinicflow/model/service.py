"""Service duration models for each stage of the pipeline."""

import copy
from typing import Dict, Optional, Protocol, Tuple

import numpy as np

from clinicflow.core.distributions import sample_uniform
from clinicflow.core.entities import PatientPriority, Stage

# (low, high) minutes per stage and priority
DEFAULT_SERVICE_RANGES: Dict[str, Dict[PatientPriority, Tuple[float, float]]] = {
    "registration": {
        PatientPriority.CRITICAL: (2.0, 3.0),
        PatientPriority.URGENT: (3.0, 4.0),
        PatientPriority.STANDARD: (4.0, 5.0),
    },
    "nursing": {
        PatientPriority.CRITICAL: (5.0, 10.0),
        PatientPriority.URGENT: (7.0, 12.0),
        PatientPriority.STANDARD: (10.0, 15.0),
    },
    "treatment": {
        PatientPriority.CRITICAL: (20.0, 60.0),
        PatientPriority.URGENT: (15.0, 40.0),
        PatientPriority.STANDARD: (10.0, 30.0),
    },
}


class ServiceTimeModel(Protocol):
    """Anything that can produce a service duration in seconds."""

    def sample(
        self, stage: Stage, priority: PatientPriority, rng: np.random.Generator
    ) -> float:
        ...


class TieredServiceTimes:
    """Uniform service durations with a range per stage and priority tier.

    Attributes:
        ranges: Mapping of stage name -> priority -> (low, high) minutes.
    """

    def __init__(
        self,
        ranges: Optional[Dict[str, Dict[PatientPriority, Tuple[float, float]]]] = None,
    ) -> None:
        self.ranges = copy.deepcopy(
            ranges if ranges is not None else DEFAULT_SERVICE_RANGES
        )
        for stage_name, tiers in self.ranges.items():
            for priority, (low, high) in tiers.items():
                if low <= 0 or high < low:
                    raise ValueError(
                        f"Invalid {stage_name} range for {priority.name}: "
                        f"({low}, {high}) minutes"
                    )

    def sample(
        self, stage: Stage, priority: PatientPriority, rng: np.random.Generator
    ) -> float:
        """Sample a duration in seconds for a patient starting ``stage``."""
        try:
            low, high = self.ranges[stage.name][priority]
        except KeyError:
            raise ValueError(
                f"No service range configured for {stage.name}/{priority.name}"
            ) from None
        return sample_uniform(rng, low, high) * 60.0
