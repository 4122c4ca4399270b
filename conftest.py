"""
Shared fixtures. Living at the repository root also puts the root on
sys.path, so tests can import config and callcentre without installing.
"""

import pytest
from callcentre.calendar_driver import GenerationSettings
from callcentre.day_simulator import simulate_day


@pytest.fixture
def small_settings():
    """A short, lightly loaded run: five business days of one hour."""
    return GenerationSettings(
        agents=5,
        base_arrival_rate=0.5,
        service_mean=4.0,
        day_length=60.0,
        max_calls=500,
        year=2021,
        seed=7,
        limit_days=5,
    )


@pytest.fixture
def busy_day():
    """Three agents, offered load above capacity, so queues form."""
    return simulate_day(
        arrival_rate=1.0,
        agents=3,
        service_mean=5.0,
        day_length=240.0,
        max_calls=1000,
        seed=11,
    )
