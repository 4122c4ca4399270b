"""
Parameter recovery from a generated log.
Rolling-window MLE of the arrival rate and the service-time distribution,
used to check that a dataset reflects the parameters it was built from.
"""

from collections import deque
from typing import Iterable, Optional, Tuple
import numpy as np
import pandas as pd


class RollingEstimator:
    """Rolling window mean/stdev of observed durations."""

    def __init__(self, window_size: Optional[int] = None):
        """Initialize rolling estimator.

        Args:
            window_size: Size of rolling window, None keeps every observation
        """
        self.window_size = window_size
        self.data_window = deque(maxlen=window_size)

    def add_observation(self, value: float):
        """Add a new observation.

        Args:
            value: Observation value
        """
        self.data_window.append(value)

    def add_observations(self, values: Iterable[float]):
        self.data_window.extend(values)

    def get_estimate(self) -> Tuple[float, float]:
        """Get MLE over the current window.

        Returns:
            (mean, stdev), NaN for an empty window
        """
        if len(self.data_window) < 1:
            return np.nan, np.nan

        return float(np.mean(self.data_window)), float(np.std(self.data_window))


class ArrivalRateEstimator:
    """Estimate arrival rate from interarrival times."""

    def __init__(self, window_size: Optional[int] = None, origin: Optional[float] = None):
        """Initialize arrival rate estimator.

        Args:
            window_size: Size of rolling window, None keeps every gap
            origin: Time the observation window opened; the first arrival
                then contributes a gap measured from it
        """
        self.window_size = window_size
        self.interarrival_window = deque(maxlen=window_size)
        self.last_arrival_time: Optional[float] = origin

    def observe_arrival(self, timestamp: float) -> bool:
        """Observe an arrival event.

        Args:
            timestamp: Arrival timestamp

        Returns:
            True if interarrival time was recorded
        """
        recorded = False
        if self.last_arrival_time is not None:
            if timestamp < self.last_arrival_time:
                raise ValueError("arrivals must be observed in time order")
            self.interarrival_window.append(timestamp - self.last_arrival_time)
            recorded = True

        self.last_arrival_time = timestamp
        return recorded

    def get_estimate(self) -> float:
        """Get estimated arrival rate (calls per time unit).

        Returns:
            Estimated lambda, NaN before any gap is seen
        """
        if len(self.interarrival_window) == 0:
            return np.nan

        mean_interarrival = np.mean(self.interarrival_window)
        return 1.0 / mean_interarrival if mean_interarrival > 0 else np.nan


def recover_day_parameters(day_frame: pd.DataFrame) -> Tuple[float, float]:
    """Estimate (arrival_rate, service_mean) from one day/replication of rows."""
    arrivals = ArrivalRateEstimator(origin=0.0)
    for timestamp in np.sort(day_frame["arrival_time"].to_numpy(dtype=float)):
        arrivals.observe_arrival(timestamp)

    services = RollingEstimator()
    services.add_observations(day_frame["activity_time"].dropna().to_numpy(dtype=float))
    service_mean, _ = services.get_estimate()

    return arrivals.get_estimate(), service_mean
