"""Results layer: running statistics, history and descriptive helpers."""

from clinicflow.results.collector import SimulationStats, StatsAggregator
from clinicflow.results.history import TickHistory

__all__ = ["SimulationStats", "StatsAggregator", "TickHistory"]
