"""Running statistics for a live simulation."""

from dataclasses import dataclass, field
from typing import Dict, Iterable

from clinicflow.core.entities import StaffRole


def _zero_utilization() -> Dict[StaffRole, float]:
    return {role: 0.0 for role in StaffRole}


@dataclass
class SimulationStats:
    """Aggregate counters exposed to observers.

    Attributes:
        total_patients: Patients that have arrived since the last reset.
        treated_patients: Patients that completed treatment.
        average_wait_time: Mean arrival-to-completion time (seconds) over
            treated patients.
        max_wait_time: Longest arrival-to-completion time (seconds).
        queue_length: Patients currently in any waiting status.
        throughput: Treated patients per simulated hour.
        staff_utilization: Busy fraction per role at this instant.
    """

    total_patients: int = 0
    treated_patients: int = 0
    average_wait_time: float = 0.0
    max_wait_time: float = 0.0
    queue_length: int = 0
    throughput: float = 0.0
    staff_utilization: Dict[StaffRole, float] = field(default_factory=_zero_utilization)

    def copy(self) -> "SimulationStats":
        """Detached copy, safe to hand to consumers."""
        return SimulationStats(
            total_patients=self.total_patients,
            treated_patients=self.treated_patients,
            average_wait_time=self.average_wait_time,
            max_wait_time=self.max_wait_time,
            queue_length=self.queue_length,
            throughput=self.throughput,
            staff_utilization=dict(self.staff_utilization),
        )

    def to_dict(self) -> Dict:
        """Flat dictionary of metrics (utilisation keyed ``util_<role>``)."""
        metrics = {
            "total_patients": self.total_patients,
            "treated_patients": self.treated_patients,
            "average_wait_time": self.average_wait_time,
            "max_wait_time": self.max_wait_time,
            "queue_length": self.queue_length,
            "throughput": self.throughput,
        }
        for role, value in self.staff_utilization.items():
            metrics[f"util_{role.name.lower()}"] = value
        return metrics


class StatsAggregator:
    """Maintain SimulationStats across ticks.

    Wait time uses a running mean so treated patients can be evicted
    from the world state without losing their contribution. Everything
    else is recomputed from the current snapshot on each call to
    :meth:`recompute`.
    """

    def __init__(self) -> None:
        self._stats = SimulationStats()

    @property
    def stats(self) -> SimulationStats:
        return self._stats

    def reset(self) -> None:
        self._stats = SimulationStats()

    def record_arrival(self) -> None:
        """Record a patient arrival."""
        self._stats.total_patients += 1

    def record_treatment(self, wait_time: float) -> None:
        """Fold a completed patient's wait into the running figures.

        Args:
            wait_time: Arrival-to-completion time in seconds.
        """
        if wait_time < 0:
            raise ValueError(f"Wait time cannot be negative, got {wait_time}")
        stats = self._stats
        n = stats.treated_patients
        stats.average_wait_time = (stats.average_wait_time * n + wait_time) / (n + 1)
        stats.max_wait_time = max(stats.max_wait_time, wait_time)
        stats.treated_patients = n + 1

    def recompute(
        self,
        patients: Iterable,
        staff: Iterable,
        elapsed_seconds: float,
    ) -> SimulationStats:
        """Refresh queue length, throughput and utilisation.

        Args:
            patients: Current patient collection.
            staff: Current staff collection.
            elapsed_seconds: Simulated time since the engine (re)started.

        Returns:
            The updated stats object (owned by the aggregator).
        """
        stats = self._stats
        stats.queue_length = sum(1 for p in patients if p.is_waiting)

        elapsed_hours = elapsed_seconds / 3600.0
        stats.throughput = stats.treated_patients / elapsed_hours if elapsed_hours > 0 else 0.0

        stats.staff_utilization = compute_staff_utilization(staff)
        return stats


def compute_staff_utilization(staff: Iterable) -> Dict[StaffRole, float]:
    """Instantaneous busy fraction per role (0.0 for a role with no staff)."""
    totals = {role: 0 for role in StaffRole}
    busy = {role: 0 for role in StaffRole}
    for member in staff:
        totals[member.role] += 1
        if not member.is_idle:
            busy[member.role] += 1
    return {
        role: (busy[role] / totals[role]) if totals[role] > 0 else 0.0
        for role in StaffRole
    }
