"""Staff entity definition."""

from dataclasses import dataclass
from typing import Optional

from clinicflow.core.entities import StaffRole


@dataclass
class Staff:
    """A member of staff serving one stage of the pipeline.

    Staff refer to their patient by id only; the engine's patient
    collection stays the single owner of patient records.

    Attributes:
        id: Unique staff identifier within the engine.
        role: Fixed role (decides which stage this person serves).
        current_patient_id: Patient being served, or None when idle.
        busy_until: Simulation time service ends. Only meaningful while
            ``current_patient_id`` is set.
    """

    id: int
    role: StaffRole
    current_patient_id: Optional[int] = None
    busy_until: float = 0.0

    def __post_init__(self) -> None:
        self.role = StaffRole.parse(self.role)

    @property
    def is_idle(self) -> bool:
        return self.current_patient_id is None

    @property
    def role_name(self) -> str:
        return self.role.label

    def is_done(self, current_time: float) -> bool:
        """Whether the current service has reached its deadline."""
        return self.current_patient_id is not None and current_time >= self.busy_until

    def assign(self, patient_id: int, busy_until: float) -> None:
        """Start serving a patient until ``busy_until``."""
        if self.current_patient_id is not None:
            raise RuntimeError(
                f"Staff {self.id} ({self.role.name}) is already serving "
                f"patient {self.current_patient_id}"
            )
        self.current_patient_id = patient_id
        self.busy_until = busy_until

    def release(self) -> Optional[int]:
        """Stop serving and return the id of the patient released."""
        patient_id = self.current_patient_id
        self.current_patient_id = None
        return patient_id
