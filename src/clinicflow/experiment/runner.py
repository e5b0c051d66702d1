"""Headless single and batch runs of the live engine."""

from typing import Any, Callable, Dict, List, Optional

from clinicflow.core.scenario import EngineConfig
from clinicflow.model.engine import SimulationEngine
from clinicflow.model.service import ServiceTimeModel
from clinicflow.results.history import TickHistory

DEFAULT_METRICS = [
    "total_patients",
    "treated_patients",
    "average_wait_time",
    "max_wait_time",
    "queue_length",
    "throughput",
    "util_doctor",
    "util_nurse",
    "util_receptionist",
]


def run_headless(
    config: EngineConfig,
    duration_hours: float,
    service_times: Optional[ServiceTimeModel] = None,
) -> Dict[str, Any]:
    """Run one engine on virtual time for ``duration_hours`` of simulated time.

    Staff come from ``config.initial_staff``. ``config.realtime`` is
    ignored: the run always uses a virtual-time scheduler.

    Args:
        config: Engine configuration.
        duration_hours: Simulated hours to run.
        service_times: Optional service duration model.

    Returns:
        Dictionary of final statistics (see ``SimulationStats.to_dict``)
        plus ``sim_hours`` and ``wait_summary`` (minutes).
    """
    if duration_hours <= 0:
        raise ValueError(f"duration_hours must be positive, got {duration_hours}")

    if config.realtime:
        config = config.clone_with_seed(config.random_seed)
        config.realtime = False
    engine = SimulationEngine(config, service_times=service_times)
    history = TickHistory()
    engine.subscribe(history)

    # Scheduler seconds needed to cover the requested simulated time
    engine.start()
    engine.run_for(duration_hours * 3600.0 / engine.simulation_speed)
    engine.pause()

    results = engine.get_stats().to_dict()
    results["sim_hours"] = engine.current_time / 3600.0
    results["wait_summary"] = history.wait_time_summary()
    return results


def multiple_replications(
    config: EngineConfig,
    duration_hours: float,
    n_reps: int = 30,
    metric_names: Optional[List[str]] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> Dict[str, List[float]]:
    """Run several replications and collect the chosen metrics.

    Each replication uses seed ``config.random_seed + rep``.

    Returns:
        Dictionary mapping metric names to lists of values across replications.
    """
    if n_reps < 1:
        raise ValueError(f"n_reps must be at least 1, got {n_reps}")
    metric_names = metric_names or DEFAULT_METRICS
    results: Dict[str, List[float]] = {name: [] for name in metric_names}

    for rep in range(n_reps):
        rep_config = config.clone_with_seed(config.random_seed + rep)
        run_results = run_headless(rep_config, duration_hours)

        for name in metric_names:
            if name in run_results:
                results[name].append(run_results[name])

        if progress_callback is not None:
            progress_callback(rep + 1, n_reps)

    return results
