"""Synthetic call-centre event log generator."""

from callcentre.call_log import Call, CallLog, CallState
from callcentre.day_simulator import ConfigurationError, DayResult, simulate_day
from callcentre.calendar_driver import GenerationSettings, YearResult, generate_year

__all__ = [
    "Call",
    "CallLog",
    "CallState",
    "ConfigurationError",
    "DayResult",
    "simulate_day",
    "GenerationSettings",
    "YearResult",
    "generate_year",
]
