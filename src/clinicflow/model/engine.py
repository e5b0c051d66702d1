"""Simulation engine: world state, control surface and observers.

The engine is an ordinary object. The consuming layer constructs it,
holds the only reference and passes it around itself; nothing here is
module-level state.

Each tick runs to completion before anything else can touch the world:

1. Advance the clock by real elapsed time x speed.
2. Draw a Poisson number of new arrivals.
3. Release finished staff and assign waiting patients, stage by stage.
4. Evict the oldest treated patients beyond the retention window.
5. Recompute statistics.
6. Notify observers with a detached snapshot.

Command and tick entry points share one re-entrant lock, so a host that
calls the engine from several threads never sees a half-applied tick.
"""

import copy
import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, Union

import numpy as np

from clinicflow.core.distributions import sample_arrival_count, sample_priority
from clinicflow.core.entities import PIPELINE, PatientPriority, StaffRole
from clinicflow.core.scenario import (
    EngineConfig,
    validate_arrival_rate,
    validate_simulation_speed,
)
from clinicflow.model.assignment import Assignment, Release, process_pipeline
from clinicflow.model.clock import SimulationClock, TickScheduler
from clinicflow.model.patient import Patient, random_symptoms
from clinicflow.model.service import ServiceTimeModel, TieredServiceTimes
from clinicflow.model.staff import Staff
from clinicflow.results.collector import SimulationStats, StatsAggregator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineSnapshot:
    """Detached view of the world after a tick or command.

    Attributes:
        time: Simulation time (seconds).
        is_running: Whether ticks are being scheduled.
        patients: Copies of patients in arrival order.
        staff: Copies of staff in list order.
        stats: Copy of the statistics.
    """
    time: float
    is_running: bool
    patients: Tuple[Patient, ...]
    staff: Tuple[Staff, ...]
    stats: SimulationStats


Observer = Callable[[EngineSnapshot], None]


class SimulationEngine:
    """Discrete-time queueing model of an emergency department.

    Attributes:
        config: Configuration the engine was built from.
        last_assignments: Pairings made by the most recent tick.
        last_releases: Staff freed by the most recent tick.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        service_times: Optional[ServiceTimeModel] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        """
        Args:
            config: Engine configuration. Uses defaults if None.
            service_times: Service duration model. Uses the tiered
                uniform ranges if None.
            rng: Single generator for every random draw. If None, the
                config's per-element streams are used.
        """
        self.config = config or EngineConfig()
        self._service_times = service_times or TieredServiceTimes()

        if rng is not None:
            self._rng_arrivals = self._rng_priority = rng
            self._rng_service = self._rng_symptoms = rng
        else:
            self._rng_arrivals = self.config.rng_arrivals
            self._rng_priority = self.config.rng_priority
            self._rng_service = self.config.rng_service
            self._rng_symptoms = self.config.rng_symptoms

        self._arrival_rate = self.config.arrival_rate
        self._speed = self.config.simulation_speed
        self._running = False
        self._lock = threading.RLock()

        self._clock = SimulationClock()
        self._scheduler = TickScheduler(
            on_tick=self.tick,
            speed=lambda: self._speed,
            tick_interval=self.config.tick_interval,
            realtime=self.config.realtime,
        )

        # Insertion order is arrival order
        self._patients: Dict[int, Patient] = {}
        self._staff: List[Staff] = []
        self._last_patient_id = 0
        self._last_staff_id = 0
        self._stats = StatsAggregator()
        self.last_assignments: List[Assignment] = []
        self.last_releases: List[Release] = []

        self._observers: Dict[int, Observer] = {}
        self._observer_ids = itertools.count(1)

        for role, count in self.config.initial_staff.items():
            self._create_staff(role, count)
        self._refresh_stats()

    # ------------------------------------------------------------------
    # Properties

    @property
    def current_time(self) -> float:
        return self._clock.current_time

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def arrival_rate(self) -> float:
        return self._arrival_rate

    @property
    def simulation_speed(self) -> float:
        return self._speed

    @property
    def scheduler(self) -> TickScheduler:
        return self._scheduler

    # ------------------------------------------------------------------
    # Commands

    def start(self) -> None:
        """Begin scheduling ticks. Idempotent."""
        with self._lock:
            if self._running:
                return
            self._running = True
            self._scheduler.start()
            logger.info(f"Simulation started at t={self.current_time:.1f}s")
            self._notify()

    def pause(self) -> None:
        """Stop scheduling ticks. Idempotent; a running tick completes."""
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._scheduler.stop()
            logger.info(f"Simulation paused at t={self.current_time:.1f}s")
            self._notify()

    def reset(self) -> None:
        """Pause and clear all patients, staff, time and statistics.

        Arrival rate and speed are kept. Staff must be added again by the
        caller.
        """
        with self._lock:
            self._running = False
            self._scheduler.reset()
            self._clock.reset()
            self._patients = {}
            self._staff = []
            self._last_patient_id = 0
            self._last_staff_id = 0
            self._stats.reset()
            self.last_assignments = []
            self.last_releases = []
            self._refresh_stats()
            logger.info("Simulation reset")
            self._notify()

    def set_arrival_rate(self, per_hour: float) -> None:
        """Set the random arrival rate (patients per hour, 0-30)."""
        with self._lock:
            self._arrival_rate = validate_arrival_rate(per_hour)
            logger.info(f"Arrival rate set to {self._arrival_rate:.1f}/hour")
            self._notify()

    def set_simulation_speed(self, multiplier: float) -> None:
        """Set the speed multiplier (0.5-10), applied from the next tick.

        Staff deadlines are in simulation time and are not touched.
        """
        with self._lock:
            self._speed = validate_simulation_speed(multiplier)
            logger.info(f"Simulation speed set to {self._speed:.1f}x")
            self._notify()

    def add_staff(self, role: Union[StaffRole, str], count: int = 1) -> List[int]:
        """Add ``count`` idle staff of ``role``.

        Returns:
            Ids of the new staff.
        """
        with self._lock:
            role = StaffRole.parse(role)
            if isinstance(count, bool) or not isinstance(count, int) or count < 1:
                raise ValueError(f"count must be a positive integer, got {count!r}")
            ids = self._create_staff(role, count)
            logger.info(f"Added {count} {role.name.lower()}(s): {ids}")
            self._refresh_stats()
            self._notify()
            return ids

    def remove_staff(self, role: Union[StaffRole, str]) -> bool:
        """Remove the first idle staff member of ``role``.

        Returns:
            False if every member of the role is busy or none exist.
        """
        with self._lock:
            role = StaffRole.parse(role)
            for index, member in enumerate(self._staff):
                if member.role is role and member.is_idle:
                    del self._staff[index]
                    logger.info(f"Removed {role.name.lower()} {member.id}")
                    self._refresh_stats()
                    self._notify()
                    return True
            logger.info(f"No idle {role.name.lower()} to remove")
            return False

    def manually_add_patient(self, priority: Union[PatientPriority, str, int]) -> int:
        """Admit a patient with the given priority at the current time.

        The patient starts WAITING; assignment happens on the next tick.

        Returns:
            The new patient's id.
        """
        with self._lock:
            patient = self._admit(PatientPriority.parse(priority))
            logger.info(f"Manually added patient {patient.id} ({patient.priority.name})")
            self._refresh_stats()
            self._notify()
            return patient.id

    def run_for(self, real_seconds: float) -> None:
        """Let the scheduler run for ``real_seconds`` of scheduler time.

        With a realtime config this blocks for about that long; otherwise
        it returns as soon as the due ticks have been processed. Nothing
        happens while paused.
        """
        self._scheduler.run_for(real_seconds)

    # ------------------------------------------------------------------
    # Queries

    def get_patients(self) -> List[Patient]:
        """Copies of all retained patients, in arrival order."""
        with self._lock:
            return [copy.copy(p) for p in self._patients.values()]

    def get_patient(self, patient_id: int) -> Optional[Patient]:
        with self._lock:
            patient = self._patients.get(patient_id)
            return copy.copy(patient) if patient is not None else None

    def get_staff(self) -> List[Staff]:
        """Copies of all staff, in list order."""
        with self._lock:
            return [copy.copy(s) for s in self._staff]

    def get_stats(self) -> SimulationStats:
        with self._lock:
            return self._stats.stats.copy()

    def staff_count(self, role: Union[StaffRole, str]) -> int:
        role = StaffRole.parse(role)
        with self._lock:
            return sum(1 for s in self._staff if s.role is role)

    def snapshot(self) -> EngineSnapshot:
        with self._lock:
            return EngineSnapshot(
                time=self.current_time,
                is_running=self._running,
                patients=tuple(copy.copy(p) for p in self._patients.values()),
                staff=tuple(copy.copy(s) for s in self._staff),
                stats=self._stats.stats.copy(),
            )

    # ------------------------------------------------------------------
    # Observers

    def subscribe(self, callback: Observer) -> int:
        """Register an observer, called with a snapshot after each update.

        Returns:
            Handle for :meth:`unsubscribe`.
        """
        with self._lock:
            handle = next(self._observer_ids)
            self._observers[handle] = callback
            return handle

    def unsubscribe(self, handle: int) -> bool:
        """Remove an observer. Returns False if the handle is unknown."""
        with self._lock:
            return self._observers.pop(handle, None) is not None

    # ------------------------------------------------------------------
    # Tick

    def tick(self, real_elapsed: float) -> bool:
        """Advance the simulation by one tick.

        Args:
            real_elapsed: Real (scheduler) seconds since the previous tick.

        Returns:
            False if the engine is paused and nothing happened.
        """
        if real_elapsed < 0:
            raise ValueError(f"Elapsed time cannot be negative, got {real_elapsed}")

        with self._lock:
            if not self._running:
                logger.debug("Tick ignored while paused")
                return False

            sim_elapsed = self._clock.advance(real_elapsed, self._speed)
            now = self.current_time

            arrivals = sample_arrival_count(self._rng_arrivals, self._arrival_rate, sim_elapsed)
            for _ in range(arrivals):
                self._admit(sample_priority(self._rng_priority, self.config.priority_mix))
            if arrivals:
                logger.debug(f"{arrivals} new arrival(s) at t={now:.1f}s")

            result = process_pipeline(
                self._patients,
                self._staff,
                now,
                self._service_times,
                self._rng_service,
                on_treated=self._on_treated,
                stages=PIPELINE,
            )
            self.last_releases = result.releases
            self.last_assignments = result.assignments
            self._evict_treated()
            self._refresh_stats()

            logger.debug(
                f"Tick t={now:.1f}s: +{sim_elapsed:.2f}s, "
                f"{len(self.last_releases)} release(s), "
                f"{len(self.last_assignments)} assignment(s), "
                f"queue={self._stats.stats.queue_length}"
            )
            self._notify()
            return True

    # ------------------------------------------------------------------
    # Internals

    def _create_staff(self, role: StaffRole, count: int) -> List[int]:
        ids = []
        for _ in range(count):
            self._last_staff_id += 1
            self._staff.append(Staff(id=self._last_staff_id, role=role))
            ids.append(self._last_staff_id)
        return ids

    def _admit(self, priority: PatientPriority) -> Patient:
        self._last_patient_id += 1
        patient = Patient(
            id=self._last_patient_id,
            priority=priority,
            arrival_time=self.current_time,
            symptoms=random_symptoms(priority, self._rng_symptoms),
        )
        self._patients[patient.id] = patient
        self._stats.record_arrival()
        return patient

    def _on_treated(self, patient: Patient, wait_time: float) -> None:
        self._stats.record_treatment(wait_time)
        logger.debug(
            f"Patient {patient.id} treated after {wait_time / 60:.1f} min "
            f"(treated={self._stats.stats.treated_patients})"
        )

    def _evict_treated(self) -> None:
        """Drop the earliest-completed treated patients beyond the window."""
        treated = [p for p in self._patients.values() if p.is_treated]
        excess = len(treated) - self.config.treated_retention
        if excess <= 0:
            return
        treated.sort(key=lambda p: p.completion_time)
        for patient in treated[:excess]:
            del self._patients[patient.id]
        logger.debug(f"Evicted {excess} treated patient(s)")

    def _refresh_stats(self) -> None:
        self._stats.recompute(self._patients.values(), self._staff, self.current_time)

    def _notify(self) -> None:
        if not self._observers:
            return
        for handle, callback in list(self._observers.items()):
            # Each observer gets its own copies
            snapshot = self.snapshot()
            try:
                callback(snapshot)
            except Exception as e:
                logger.warning(f"Observer {handle} failed: {e}")
