"""Core entity definitions for the simulation.

Enums and the stage pipeline used across the codebase, placed here to
avoid circular imports between the model and results layers.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Tuple, Union


class PatientPriority(IntEnum):
    """Triage priority levels. Lower value = more urgent."""
    CRITICAL = 0
    URGENT = 1
    STANDARD = 2

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def parse(cls, value: Union["PatientPriority", str, int]) -> "PatientPriority":
        """Coerce an enum member, name or ordinal into a PatientPriority.

        Raises:
            ValueError: If the value does not name a priority.
        """
        return _parse_enum(cls, value)


class PatientStatus(IntEnum):
    """Stages of the patient journey, in the only order they may occur."""
    WAITING = 0
    WITH_RECEPTIONIST = 1
    WAITING_FOR_NURSE = 2
    WITH_NURSE = 3
    WAITING_FOR_DOCTOR = 4
    WITH_DOCTOR = 5
    TREATED = 6

    @property
    def successor(self) -> "PatientStatus":
        """The single status allowed to follow this one."""
        if self is PatientStatus.TREATED:
            raise ValueError("TREATED is terminal and has no successor")
        return PatientStatus(self.value + 1)

    @property
    def is_waiting(self) -> bool:
        return self in WAITING_STATUSES

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]


class StaffRole(Enum):
    """Server types. Each stage of the pipeline needs exactly one role."""
    DOCTOR = "DOCTOR"
    NURSE = "NURSE"
    RECEPTIONIST = "RECEPTIONIST"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @classmethod
    def parse(cls, value: Union["StaffRole", str]) -> "StaffRole":
        """Coerce an enum member or (case-insensitive) name into a StaffRole.

        Raises:
            ValueError: If the value does not name a role.
        """
        return _parse_enum(cls, value)


WAITING_STATUSES = frozenset({
    PatientStatus.WAITING,
    PatientStatus.WAITING_FOR_NURSE,
    PatientStatus.WAITING_FOR_DOCTOR,
})

STATUS_LABELS = {
    PatientStatus.WAITING: "Waiting for Registration",
    PatientStatus.WITH_RECEPTIONIST: "Being Registered",
    PatientStatus.WAITING_FOR_NURSE: "Waiting for Nurse",
    PatientStatus.WITH_NURSE: "With Nurse",
    PatientStatus.WAITING_FOR_DOCTOR: "Waiting for Doctor",
    PatientStatus.WITH_DOCTOR: "With Doctor",
    PatientStatus.TREATED: "Treated",
}


@dataclass(frozen=True)
class Stage:
    """One service stage: a waiting status, the role that serves it,
    and the status a patient holds while being served.

    Attributes:
        name: Stage identifier used in service-time tables and logs.
        role: Staff role required to serve the stage.
        waiting_status: Status of patients queuing for this stage.
        active_status: Status of patients currently being served.
    """
    name: str
    role: StaffRole
    waiting_status: PatientStatus
    active_status: PatientStatus

    def __post_init__(self) -> None:
        if self.waiting_status.successor is not self.active_status:
            raise ValueError(
                f"Stage {self.name}: {self.active_status.name} must directly "
                f"follow {self.waiting_status.name}"
            )

    @property
    def completed_status(self) -> PatientStatus:
        """Status a patient moves to when service ends."""
        return self.active_status.successor


REGISTRATION = Stage(
    "registration", StaffRole.RECEPTIONIST,
    PatientStatus.WAITING, PatientStatus.WITH_RECEPTIONIST,
)
NURSING = Stage(
    "nursing", StaffRole.NURSE,
    PatientStatus.WAITING_FOR_NURSE, PatientStatus.WITH_NURSE,
)
TREATMENT = Stage(
    "treatment", StaffRole.DOCTOR,
    PatientStatus.WAITING_FOR_DOCTOR, PatientStatus.WITH_DOCTOR,
)

# Fixed processing order within a tick
PIPELINE: Tuple[Stage, ...] = (REGISTRATION, NURSING, TREATMENT)


def _parse_enum(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls[value.strip().upper()]
        except KeyError:
            pass
    elif isinstance(value, int) and not isinstance(value, bool) and issubclass(enum_cls, IntEnum):
        try:
            return enum_cls(value)
        except ValueError:
            pass
    valid = ", ".join(member.name for member in enum_cls)
    raise ValueError(f"Unknown {enum_cls.__name__} {value!r}; expected one of {valid}")
