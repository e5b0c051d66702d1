"""Per-tick history recorder for charts and post-run summaries."""

from dataclasses import dataclass, field
from typing import Dict, List

import pandas as pd

from clinicflow.core.entities import StaffRole
from clinicflow.results.statistics import (
    calculate_mean,
    calculate_median,
    calculate_percentile,
)


@dataclass
class TickHistory:
    """Observer that keeps one row per engine notification.

    Subscribe the instance itself::

        history = TickHistory()
        engine.subscribe(history)

    Attributes:
        rows: Recorded metrics, oldest first.
        wait_times: Arrival-to-completion times (seconds) of the treated
            patients in the latest snapshot, keyed by patient id.
        max_rows: Oldest rows are dropped beyond this many (0 = unbounded).
    """

    rows: List[Dict] = field(default_factory=list)
    wait_times: Dict[int, float] = field(default_factory=dict)
    max_rows: int = 0

    def __call__(self, snapshot) -> None:
        stats = snapshot.stats
        row = {
            "time": snapshot.time,
            "queue_length": stats.queue_length,
            "total_patients": stats.total_patients,
            "treated_patients": stats.treated_patients,
            "average_wait_time": stats.average_wait_time,
            "throughput": stats.throughput,
        }
        for role in StaffRole:
            row[f"util_{role.name.lower()}"] = stats.staff_utilization.get(role, 0.0)
        self.rows.append(row)
        if self.max_rows and len(self.rows) > self.max_rows:
            del self.rows[: len(self.rows) - self.max_rows]

        # Mirrors the engine's retention window
        self.wait_times = {
            p.id: p.completion_time - p.arrival_time
            for p in snapshot.patients
            if p.completion_time is not None
        }

    def clear(self) -> None:
        self.rows.clear()
        self.wait_times.clear()

    def to_dataframe(self) -> pd.DataFrame:
        """History as a DataFrame with time in minutes as an extra column."""
        df = pd.DataFrame(self.rows)
        if not df.empty:
            df["time_min"] = df["time"] / 60.0
        return df

    def wait_time_summary(self) -> Dict[str, float]:
        """Summary of treated-patient waits, in minutes."""
        waits = [w / 60.0 for w in self.wait_times.values()]
        return {
            "n": len(waits),
            "mean": calculate_mean(waits),
            "median": calculate_median(waits),
            "p95": calculate_percentile(waits, 95),
            "max": max(waits) if waits else 0.0,
        }
