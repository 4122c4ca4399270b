"""
Call records and the per-day call log.
Holds calls in arrival order and renders them as dataset rows.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator, List, Optional
import numpy as np
import pandas as pd
import config


class CallState(Enum):
    """Lifecycle of a call: Arrived -> Waiting -> InService -> Completed."""
    ARRIVED = "arrived"
    WAITING = "waiting"
    IN_SERVICE = "in_service"
    COMPLETED = "completed"


@dataclass
class Call:
    """A single arrival into the system. Times are minutes since day start."""
    call_id: int
    arrival_time: float
    start_time: Optional[float] = None
    service_time: Optional[float] = None
    end_time: Optional[float] = None
    server_id: Optional[int] = None

    @property
    def served(self) -> bool:
        return self.start_time is not None

    @property
    def waiting_time(self) -> Optional[float]:
        if self.start_time is None:
            return None
        return self.start_time - self.arrival_time

    def begin_service(self, start_time: float, service_time: float,
                      server_id: Optional[int] = None):
        """Record service start; allowed once per call.

        Args:
            start_time: Time an agent picks the call up
            service_time: Sampled handling duration
            server_id: Index of the agent, if tracked
        """
        if self.served:
            raise ValueError(f"call {self.call_id} is already in service")
        if start_time < self.arrival_time:
            raise ValueError(
                f"call {self.call_id} cannot start at {start_time} "
                f"before arriving at {self.arrival_time}"
            )
        if service_time <= 0:
            raise ValueError(f"call {self.call_id}: service time must be positive")

        self.start_time = start_time
        self.service_time = service_time
        self.end_time = start_time + service_time
        self.server_id = server_id

    def is_within_target(self, threshold: float = config.TARGET_THRESHOLD) -> bool:
        waiting = self.waiting_time
        return waiting is not None and waiting <= threshold

    def state_at(self, time: float) -> CallState:
        """State of the call at simulated time `time` (at or after arrival)."""
        if time < self.arrival_time:
            raise ValueError(f"call {self.call_id} has not arrived at t={time}")
        if self.start_time is None or time < self.start_time:
            return CallState.WAITING if time > self.arrival_time else CallState.ARRIVED
        if time < self.end_time:
            return CallState.IN_SERVICE
        return CallState.COMPLETED


class CallLog:
    """Append-only log of the calls of one simulated day."""

    def __init__(self, calls: Optional[List[Call]] = None):
        self._calls: List[Call] = []
        for call in calls or []:
            self.add(call)

    def add(self, call: Call):
        """Append a call; arrivals must come in non-decreasing time order."""
        if self._calls and call.arrival_time < self._calls[-1].arrival_time:
            raise ValueError("calls must be added in arrival order")
        self._calls.append(call)

    @property
    def calls(self) -> List[Call]:
        return list(self._calls)

    def __len__(self) -> int:
        return len(self._calls)

    def __iter__(self) -> Iterator[Call]:
        return iter(self._calls)

    def to_dataframe(
        self,
        threshold: float = config.TARGET_THRESHOLD,
        date=None,
        replication: int = 1,
        cutoff: Optional[float] = None,
    ) -> pd.DataFrame:
        """Render the log as dataset rows.

        Args:
            threshold: Waiting-time target for `within_target`
            date: Calendar date attached to every row
            replication: Replication number attached to every row
            cutoff: If set, calls not completed by this time are reported
                unfinished, and calls not started by it have no start

        Returns:
            DataFrame with config.CALL_LOG_COLUMNS
        """
        if not self._calls:
            return pd.DataFrame(columns=config.CALL_LOG_COLUMNS)

        arrival = np.array([c.arrival_time for c in self._calls], dtype=float)
        start = np.array([np.nan if c.start_time is None else c.start_time
                          for c in self._calls], dtype=float)
        end = np.array([np.nan if c.end_time is None else c.end_time
                        for c in self._calls], dtype=float)
        activity = np.array([np.nan if c.service_time is None else c.service_time
                             for c in self._calls], dtype=float)

        finished = ~np.isnan(end)
        if cutoff is not None:
            finished &= end <= cutoff
            start = np.where(start > cutoff, np.nan, start)
            end = np.where(finished, end, np.nan)
            activity = np.where(finished, activity, np.nan)

        waiting = start - arrival
        frame = pd.DataFrame({
            "customer": [f"call{c.call_id}" for c in self._calls],
            "arrival_time": arrival,
            "start_time": start,
            "end_time": end,
            "activity_time": activity,
            "finished": finished,
            "replication": replication,
            "waiting_time": waiting,
            "within_target": waiting <= threshold,
            "date": pd.Timestamp(date) if date is not None else pd.NaT,
        })
        return frame[config.CALL_LOG_COLUMNS]

    def save_csv(self, path, **kwargs) -> str:
        """Write the log to CSV and return the path.

        Keyword arguments are passed through to `to_dataframe`.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.to_dataframe(**kwargs).to_csv(path, index=False)
        return str(path)
