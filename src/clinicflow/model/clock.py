"""Simulation clock and the SimPy process that drives ticks.

The scheduler owns a SimPy environment whose time stands for real
(scheduler) seconds. A ticker process waits ``tick_interval / speed``
between ticks and hands the elapsed scheduler time to a tick handler,
which scales it by the speed multiplier to advance simulation time.

Interactive sessions use ``simpy.rt.RealtimeEnvironment`` so ticks are
paced against the wall clock; tests and headless runs use a plain
``simpy.Environment`` and run as fast as possible.
"""

import logging
from typing import Callable, Generator, Optional

import simpy
import simpy.rt

logger = logging.getLogger(__name__)


class SimulationClock:
    """Monotonic simulation time in seconds.

    Attributes:
        current_time: Seconds of simulated time since start or reset.
    """

    def __init__(self) -> None:
        self.current_time = 0.0

    def advance(self, real_elapsed: float, speed: float) -> float:
        """Move time forward by ``real_elapsed * speed``.

        Returns:
            Simulated seconds added.
        """
        if real_elapsed < 0:
            raise ValueError(f"Elapsed time cannot be negative, got {real_elapsed}")
        sim_elapsed = real_elapsed * speed
        self.current_time += sim_elapsed
        return sim_elapsed

    def reset(self) -> None:
        self.current_time = 0.0


class TickScheduler:
    """Fixed-interval ticker running inside a SimPy environment.

    The ticker only exists while started. ``stop()`` interrupts it, so no
    further ticks are scheduled; a tick already running is never cut short
    because SimPy only interrupts at a yield.

    Attributes:
        env: SimPy environment providing scheduler time.
        tick_interval: Scheduler seconds between ticks at 1x speed.
    """

    def __init__(
        self,
        on_tick: Callable[[float], object],
        speed: Callable[[], float],
        tick_interval: float = 1.0,
        realtime: bool = False,
    ) -> None:
        """
        Args:
            on_tick: Tick handler, called with the scheduler time elapsed
                since the previous tick.
            speed: Returns the current speed multiplier; read before each
                wait so a speed change applies from the next tick.
            tick_interval: Scheduler seconds between ticks at 1x speed.
            realtime: Pace against the wall clock.
        """
        if tick_interval <= 0:
            raise ValueError(f"tick_interval must be positive, got {tick_interval}")
        self._on_tick = on_tick
        self._speed = speed
        self.tick_interval = tick_interval
        self.realtime = realtime
        self.env = self._make_env()
        self._process: Optional[simpy.Process] = None
        self.ticks = 0

    def _make_env(self) -> simpy.Environment:
        if self.realtime:
            return simpy.rt.RealtimeEnvironment(factor=1.0, strict=False)
        return simpy.Environment()

    @property
    def is_active(self) -> bool:
        return self._process is not None

    def start(self) -> None:
        """Begin scheduling ticks (no-op if already started)."""
        if self._process is not None:
            return
        self._process = self.env.process(self._ticker())

    def stop(self) -> None:
        """Stop scheduling ticks (no-op if already stopped).

        Safe to call from inside a tick handler: the running ticker sees it
        has been replaced and exits once the handler returns.
        """
        process, self._process = self._process, None
        if (
            process is not None
            and process.is_alive
            and process is not self.env.active_process
        ):
            process.interrupt("stopped")

    def reset(self) -> None:
        """Stop and start over with a fresh environment at time zero."""
        self.stop()
        self.env = self._make_env()
        self.ticks = 0

    def run_for(self, duration: float) -> None:
        """Advance scheduler time by ``duration`` seconds, firing due ticks.

        Ticks due exactly at the end of the window fire too, so
        ``run_for(3600)`` with a 600 s interval gives six ticks.
        """
        if duration < 0:
            raise ValueError(f"duration cannot be negative, got {duration}")
        if duration == 0:
            return
        if self.realtime:
            # Wall time spent outside run_for is not owed to the ticker
            self.env.sync()
        horizon = self.env.now + duration
        self.env.run(until=horizon)
        # run(until=...) stops before same-time events
        while self.env.peek() <= horizon:
            self.env.step()

    def _ticker(self) -> Generator[simpy.Event, None, None]:
        me = self.env.active_process
        last = self.env.now
        try:
            while self._process is me:
                yield self.env.timeout(self.tick_interval / self._speed())
                if self._process is not me:
                    break
                elapsed = self.env.now - last
                last = self.env.now
                self.ticks += 1
                self._on_tick(elapsed)
        except simpy.Interrupt:
            logger.debug(f"Ticker stopped at scheduler time {self.env.now:.2f}s")
