"""Patient entity definition."""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np

from clinicflow.core.entities import PatientPriority, PatientStatus


class InvalidTransitionError(RuntimeError):
    """Raised when a patient status change would skip or reverse a stage."""


SYMPTOMS: Dict[PatientPriority, Tuple[str, ...]] = {
    PatientPriority.CRITICAL: (
        "Severe chest pain",
        "Stroke symptoms",
        "Major trauma",
        "Difficulty breathing",
        "Unconscious",
        "Severe bleeding",
    ),
    PatientPriority.URGENT: (
        "Abdominal pain",
        "Moderate trauma",
        "High fever",
        "Dehydration",
        "Persistent vomiting",
        "Minor fractures",
    ),
    PatientPriority.STANDARD: (
        "Minor cuts",
        "Cold symptoms",
        "Sore throat",
        "Mild fever",
        "Sprain",
        "Earache",
    ),
}


def random_symptoms(priority: PatientPriority, rng: np.random.Generator) -> str:
    """Pick a presenting complaint consistent with the priority."""
    pool = SYMPTOMS[priority]
    return pool[int(rng.integers(len(pool)))]


@dataclass
class Patient:
    """Patient entity tracking the journey through the department.

    Attributes:
        id: Unique patient identifier, assigned in arrival order.
        priority: Triage priority (lower = more urgent).
        arrival_time: Simulation time of arrival (seconds).
        status: Current stage of the journey.
        completion_time: Simulation time treatment finished, set once.
        symptoms: Presenting complaint (descriptive only).
    """

    id: int
    priority: PatientPriority
    arrival_time: float
    status: PatientStatus = PatientStatus.WAITING
    completion_time: Optional[float] = None
    symptoms: str = ""

    def __post_init__(self) -> None:
        self.priority = PatientPriority.parse(self.priority)
        if self.arrival_time < 0:
            raise ValueError(f"arrival_time must be non-negative, got {self.arrival_time}")

    @property
    def is_treated(self) -> bool:
        return self.status is PatientStatus.TREATED

    @property
    def is_waiting(self) -> bool:
        return self.status.is_waiting

    @property
    def status_text(self) -> str:
        return self.status.label

    @property
    def priority_text(self) -> str:
        return self.priority.label

    @property
    def sort_key(self) -> Tuple[int, float]:
        """Queue ordering: priority first, then earliest arrival."""
        return (int(self.priority), self.arrival_time)

    def wait_time(self, current_time: float) -> float:
        """Time in the system, frozen at completion once treated."""
        if self.completion_time is not None:
            return self.completion_time - self.arrival_time
        return current_time - self.arrival_time

    def advance(self, to_status: PatientStatus) -> None:
        """Move to the next status in the journey.

        Raises:
            InvalidTransitionError: If ``to_status`` is not the immediate
                successor of the current status, or treatment would be
                recorded through this method.
        """
        if self.status is PatientStatus.TREATED:
            raise InvalidTransitionError(f"Patient {self.id} is already treated")
        expected = self.status.successor
        if to_status is not expected:
            raise InvalidTransitionError(
                f"Patient {self.id} cannot move from {self.status.name} to "
                f"{to_status.name}; next status is {expected.name}"
            )
        if to_status is PatientStatus.TREATED:
            raise InvalidTransitionError(
                f"Patient {self.id} must be completed with mark_treated()"
            )
        self.status = to_status

    def mark_treated(self, time: float) -> float:
        """Record treatment completion and return the total wait.

        Raises:
            InvalidTransitionError: If the patient is not with a doctor.
            ValueError: If ``time`` is before arrival.
        """
        if self.status is not PatientStatus.WITH_DOCTOR:
            raise InvalidTransitionError(
                f"Patient {self.id} cannot be treated from {self.status.name}"
            )
        if time < self.arrival_time:
            raise ValueError(
                f"Completion time {time} precedes arrival {self.arrival_time} "
                f"for patient {self.id}"
            )
        self.status = PatientStatus.TREATED
        self.completion_time = time
        return self.completion_time - self.arrival_time
