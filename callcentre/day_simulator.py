"""
Day simulator: one business day of a single-queue, multi-agent call centre.
Arrivals are pre-generated and walked in order against a tracker of the
time each agent next becomes free.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple
import numpy as np
import pandas as pd
import config
from callcentre.call_log import Call, CallLog

logger = logging.getLogger(__name__)

END_OF_DAY_POLICIES = ("complete", "truncate")


class ConfigurationError(ValueError):
    """Raised for parameters no simulation can run with."""


def validate_parameters(
    arrival_rate: float,
    agents: int,
    service_mean: float,
    day_length: float,
    max_calls: int,
    end_of_day: str = config.END_OF_DAY_POLICY,
    seed: Optional[int] = None,
):
    """Check day parameters before anything is sampled.

    `seed` may be None (fresh entropy) or an integer >= 0.

    Raises:
        ConfigurationError: on the first invalid parameter
    """
    if isinstance(agents, bool) or not isinstance(agents, (int, np.integer)) or agents < 1:
        raise ConfigurationError(f"agents must be an integer >= 1, got {agents!r}")

    for name, value in (
        ("arrival_rate", arrival_rate),
        ("service_mean", service_mean),
        ("day_length", day_length),
    ):
        if not np.isfinite(value) or value <= 0:
            raise ConfigurationError(f"{name} must be a positive number, got {value!r}")

    if isinstance(max_calls, bool) or not isinstance(max_calls, (int, np.integer)) or max_calls < 0:
        raise ConfigurationError(f"max_calls must be an integer >= 0, got {max_calls!r}")

    if end_of_day not in END_OF_DAY_POLICIES:
        raise ConfigurationError(
            f"end_of_day must be one of {END_OF_DAY_POLICIES}, got {end_of_day!r}"
        )

    if seed is not None and (
        isinstance(seed, bool) or not isinstance(seed, (int, np.integer)) or seed < 0
    ):
        raise ConfigurationError(f"seed must be an integer >= 0, got {seed!r}")


def generate_arrivals(
    rng: np.random.Generator,
    arrival_rate: float,
    day_length: float,
    max_calls: int,
) -> Tuple[np.ndarray, bool]:
    """Draw arrival times as a running sum of exponential gaps.

    Stops at `max_calls` arrivals or at the first arrival at or past
    `day_length`, which is discarded.

    Returns:
        (arrival_times, saturated) where saturated means the cap was hit
    """
    times = []
    t = 0.0
    while len(times) < max_calls:
        t += rng.exponential(1.0 / arrival_rate)
        if t >= day_length:
            return np.array(times, dtype=float), False
        times.append(t)

    return np.array(times, dtype=float), max_calls > 0


def draw_service_time(rng: np.random.Generator, service_mean: float) -> float:
    """Exponential service time; non-positive draws are resampled."""
    while True:
        service_time = rng.exponential(service_mean)
        if service_time > 0:
            return float(service_time)


class ServerPool:
    """Next-free timestamp of each agent."""

    def __init__(self, agents: int):
        self.free_at = np.zeros(agents, dtype=float)

    def assign(self, arrival_time: float) -> Tuple[int, float]:
        """Pick the agent for a call arriving at `arrival_time`.

        The agent freeing earliest wins, lowest index on ties. The call
        starts on arrival if that agent is already free, else when it frees.

        Returns:
            (server_id, start_time)
        """
        server_id = int(np.argmin(self.free_at))
        return server_id, max(arrival_time, float(self.free_at[server_id]))

    def release_at(self, server_id: int, time: float):
        self.free_at[server_id] = time

    def busy_count(self, time: float) -> int:
        """Number of agents still serving at `time`."""
        return int(np.count_nonzero(self.free_at > time))


@dataclass
class DayResult:
    """Outcome of one simulated day."""
    log: CallLog
    arrival_rate: float
    agents: int
    service_mean: float
    day_length: float
    max_calls: int
    end_of_day: str
    saturated: bool
    seed: Optional[int] = None
    busy_at_close: int = 0  # agents still serving when the window closes

    def to_dataframe(
        self,
        threshold: float = config.TARGET_THRESHOLD,
        date=None,
        replication: int = 1,
    ) -> pd.DataFrame:
        """Dataset rows for this day, with the end-of-day policy applied."""
        cutoff = self.day_length if self.end_of_day == "truncate" else None
        return self.log.to_dataframe(
            threshold=threshold, date=date, replication=replication, cutoff=cutoff
        )


def simulate_day(
    arrival_rate: float = config.BASE_ARRIVAL_RATE,
    agents: int = config.AGENTS,
    service_mean: float = config.SERVICE_MEAN,
    day_length: float = config.DAY_LENGTH,
    max_calls: int = config.MAX_CALLS_PER_DAY,
    end_of_day: str = config.END_OF_DAY_POLICY,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
) -> DayResult:
    """Simulate one day and return its call log.

    Args:
        arrival_rate: Poisson arrival rate (calls per minute)
        agents: Number of agents
        service_mean: Mean service time (minutes)
        day_length: Length of the arrival window (minutes)
        max_calls: Cap on arrivals for the day
        end_of_day: "complete" or "truncate"
        seed: Seed for a fresh generator, ignored if `rng` is given
        rng: Generator to draw from

    Returns:
        DayResult with calls in arrival order
    """
    validate_parameters(
        arrival_rate, agents, service_mean, day_length, max_calls, end_of_day, seed
    )
    if rng is None:
        rng = np.random.default_rng(seed)

    arrival_times, saturated = generate_arrivals(rng, arrival_rate, day_length, max_calls)
    if saturated:
        logger.warning(
            "Arrival cap of %d calls reached at t=%.1f of %.1f min (rate %.3f/min)",
            max_calls, arrival_times[-1], day_length, arrival_rate,
        )

    pool = ServerPool(agents)
    log = CallLog()
    for call_id, arrival_time in enumerate(arrival_times):
        call = Call(call_id=call_id, arrival_time=float(arrival_time))
        server_id, start_time = pool.assign(call.arrival_time)
        call.begin_service(start_time, draw_service_time(rng, service_mean), server_id)
        pool.release_at(server_id, call.end_time)
        log.add(call)

    busy_at_close = pool.busy_count(day_length)
    logger.debug(
        "Simulated day: %d calls, rate %.3f/min, %d agents, %d busy at close",
        len(log), arrival_rate, agents, busy_at_close,
    )

    return DayResult(
        log=log,
        arrival_rate=arrival_rate,
        agents=agents,
        service_mean=service_mean,
        day_length=day_length,
        max_calls=max_calls,
        end_of_day=end_of_day,
        saturated=saturated,
        seed=seed,
        busy_at_close=busy_at_close,
    )
