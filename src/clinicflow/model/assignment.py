"""Stage assignment: release finished staff and pair waiting patients
with idle staff, one stage at a time.

For each stage, in pipeline order:

1. Release staff of the stage's role whose deadline has passed, moving
   their patients on to the next status (or to TREATED after the doctor).
2. Collect patients in the stage's waiting status and sort them by
   (priority, arrival time). The sort is stable so remaining ties keep
   arrival order.
3. Collect idle staff of the role in staff-list order.
4. Pair the two lists greedily; each pair gets a fresh service duration.

Because a stage's release happens before its own matching, staff freed
this tick can take a new patient in the same tick, and patients released
from an earlier stage are eligible for the next stage immediately.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Sequence

import numpy as np

from clinicflow.core.entities import PIPELINE, PatientStatus, Stage
from clinicflow.model.patient import Patient
from clinicflow.model.service import ServiceTimeModel
from clinicflow.model.staff import Staff

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Assignment:
    """Record of one patient/staff pairing made during a tick."""
    stage: str
    patient_id: int
    staff_id: int
    start_time: float
    busy_until: float

    @property
    def duration(self) -> float:
        return self.busy_until - self.start_time


@dataclass(frozen=True)
class Release:
    """Record of one staff member finishing with a patient."""
    stage: str
    patient_id: int
    staff_id: int
    time: float
    new_status: PatientStatus


@dataclass
class PipelineResult:
    """Everything one pass over the pipeline did, in stage order."""
    releases: List[Release] = field(default_factory=list)
    assignments: List[Assignment] = field(default_factory=list)


def order_candidates(patients: Sequence[Patient]) -> List[Patient]:
    """Sort waiting patients: most urgent first, then earliest arrival."""
    return sorted(patients, key=lambda p: p.sort_key)


def release_finished_staff(
    stage: Stage,
    patients: Dict[int, Patient],
    staff: Sequence[Staff],
    current_time: float,
    on_treated: Callable[[Patient, float], None],
) -> List[Release]:
    """Free every staff member of the stage's role whose service has ended.

    Args:
        stage: Stage being processed.
        patients: Patient lookup by id.
        staff: Staff in list order.
        current_time: Simulation time of this tick.
        on_treated: Called with (patient, wait_time) when a patient
            completes the final stage.

    Returns:
        One Release per staff member freed.
    """
    released = []
    for member in staff:
        if member.role is not stage.role or not member.is_done(current_time):
            continue

        patient_id = member.release()
        patient = patients.get(patient_id)
        if patient is None:
            logger.warning(
                f"Staff {member.id} ({member.role.name}) held unknown patient {patient_id}"
            )
            continue

        if patient.status is not stage.active_status:
            raise RuntimeError(
                f"Patient {patient.id} is {patient.status.name} but staff "
                f"{member.id} was serving them for {stage.name}"
            )

        if stage.completed_status is PatientStatus.TREATED:
            wait = patient.mark_treated(current_time)
            on_treated(patient, wait)
        else:
            patient.advance(stage.completed_status)

        logger.debug(
            f"Staff {member.id} ({member.role.name}) finished with patient "
            f"{patient.id}, now {patient.status.name}"
        )
        released.append(Release(
            stage=stage.name,
            patient_id=patient.id,
            staff_id=member.id,
            time=current_time,
            new_status=patient.status,
        ))
    return released


def assign_stage(
    stage: Stage,
    patients: Dict[int, Patient],
    staff: Sequence[Staff],
    current_time: float,
    service_times: ServiceTimeModel,
    rng: np.random.Generator,
) -> List[Assignment]:
    """Pair waiting patients with idle staff for one stage.

    Returns:
        One Assignment per pairing, in queue order.
    """
    candidates = order_candidates(
        [p for p in patients.values() if p.status is stage.waiting_status]
    )
    if not candidates:
        return []

    idle = [s for s in staff if s.role is stage.role and s.is_idle]
    if not idle:
        logger.debug(
            f"{len(candidates)} patients waiting for {stage.name}, no idle "
            f"{stage.role.name.lower()}"
        )
        return []

    assignments = []
    for patient, member in zip(candidates, idle):
        duration = service_times.sample(stage, patient.priority, rng)
        if not duration > 0:
            raise ValueError(
                f"Service duration for {stage.name} must be positive, got {duration}"
            )
        busy_until = current_time + duration

        patient.advance(stage.active_status)
        member.assign(patient.id, busy_until)

        logger.debug(
            f"Assigned patient {patient.id} ({patient.priority.name}) to "
            f"{member.role.name.lower()} {member.id} for {duration / 60:.1f} min"
        )
        assignments.append(Assignment(
            stage=stage.name,
            patient_id=patient.id,
            staff_id=member.id,
            start_time=current_time,
            busy_until=busy_until,
        ))
    return assignments


def process_pipeline(
    patients: Dict[int, Patient],
    staff: Sequence[Staff],
    current_time: float,
    service_times: ServiceTimeModel,
    rng: np.random.Generator,
    on_treated: Callable[[Patient, float], None],
    stages: Sequence[Stage] = PIPELINE,
) -> PipelineResult:
    """Run release then assignment for every stage in order."""
    result = PipelineResult()
    for stage in stages:
        result.releases.extend(
            release_finished_staff(stage, patients, staff, current_time, on_treated)
        )
        result.assignments.extend(
            assign_stage(stage, patients, staff, current_time, service_times, rng)
        )
    return result
