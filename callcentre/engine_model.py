"""
SimPy formulation of the day simulator.
Runs the same day on SimPy's event queue and Resource so the server
tracker in day_simulator can be checked against an event engine.
"""

import simpy
import numpy as np
from typing import Optional
import config
from callcentre.call_log import Call, CallLog
from callcentre.day_simulator import (
    DayResult,
    draw_service_time,
    generate_arrivals,
    validate_parameters,
)


class EngineDay:
    """One day of the call centre as SimPy processes."""

    def __init__(
        self,
        env: simpy.Environment,
        rng: np.random.Generator,
        arrival_times: np.ndarray,
        agents: int = config.AGENTS,
        service_mean: float = config.SERVICE_MEAN,
    ):
        """Initialize engine model.

        Args:
            env: SimPy environment
            rng: Generator for service times
            arrival_times: Pre-generated arrival times, increasing
            agents: Resource capacity
            service_mean: Mean service time
        """
        self.env = env
        self.rng = rng
        self.arrival_times = arrival_times
        self.service_mean = service_mean

        # FIFO resource
        self.agents = simpy.Resource(env, capacity=agents)

        self.log = CallLog()
        self.completed_calls = 0

    def call_process(self, call_id: int, arrival_time: float):
        """SimPy process: one call from arrival to completion.

        Started at t=0 and delayed by the absolute arrival time, so the
        clock lands exactly on the pre-generated value.
        """
        yield self.env.timeout(arrival_time)

        call = Call(call_id=call_id, arrival_time=float(arrival_time))
        self.log.add(call)

        with self.agents.request() as req:
            yield req

            # Sampled when service begins
            service_time = draw_service_time(self.rng, self.service_mean)
            call.begin_service(self.env.now, service_time)

            yield self.env.timeout(service_time)
            self.completed_calls += 1

    def run(self):
        """Start every call process and run until all calls complete."""
        for call_id, arrival_time in enumerate(self.arrival_times):
            self.env.process(self.call_process(call_id, float(arrival_time)))
        self.env.run()


def simulate_day_engine(
    arrival_rate: float = config.BASE_ARRIVAL_RATE,
    agents: int = config.AGENTS,
    service_mean: float = config.SERVICE_MEAN,
    day_length: float = config.DAY_LENGTH,
    max_calls: int = config.MAX_CALLS_PER_DAY,
    end_of_day: str = config.END_OF_DAY_POLICY,
    seed: Optional[int] = None,
) -> DayResult:
    """Simulate one day with SimPy; same arguments as `simulate_day`.

    Agent indices are not tracked, so `server_id` stays None.
    """
    validate_parameters(
        arrival_rate, agents, service_mean, day_length, max_calls, end_of_day, seed
    )
    rng = np.random.default_rng(seed)

    arrival_times, saturated = generate_arrivals(rng, arrival_rate, day_length, max_calls)

    model = EngineDay(
        env=simpy.Environment(),
        rng=rng,
        arrival_times=arrival_times,
        agents=agents,
        service_mean=service_mean,
    )
    model.run()

    return DayResult(
        log=model.log,
        arrival_rate=arrival_rate,
        agents=agents,
        service_mean=service_mean,
        day_length=day_length,
        max_calls=max_calls,
        end_of_day=end_of_day,
        saturated=saturated,
        seed=seed,
        busy_at_close=sum(
            1 for c in model.log if c.start_time <= day_length < c.end_time
        ),
    )
