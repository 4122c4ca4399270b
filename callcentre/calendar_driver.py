"""
Calendar driver: one simulated day per business day of a year.
Derives each day's arrival rate from calendar coefficients plus noise,
runs the day simulator and folds the per-day logs into one table.
"""

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple
import numpy as np
import pandas as pd
import config
from callcentre.day_simulator import ConfigurationError, simulate_day, validate_parameters

logger = logging.getLogger(__name__)


@dataclass
class GenerationSettings:
    """Every knob of a dataset run, defaulting to config."""
    agents: int = config.AGENTS
    base_arrival_rate: float = config.BASE_ARRIVAL_RATE
    service_mean: float = config.SERVICE_MEAN
    day_length: float = config.DAY_LENGTH
    max_calls: int = config.MAX_CALLS_PER_DAY
    end_of_day: str = config.END_OF_DAY_POLICY
    target_threshold: float = config.TARGET_THRESHOLD
    year: int = config.YEAR
    seed: int = config.RANDOM_SEED_BASE
    replications: int = config.REPLICATIONS
    noise_stdev: float = config.NOISE_STDEV
    min_arrival_rate: float = config.MIN_ARRIVAL_RATE
    month_coefficients: List[float] = field(
        default_factory=lambda: list(config.MONTH_COEFFICIENTS))
    weekday_coefficients: List[float] = field(
        default_factory=lambda: list(config.WEEKDAY_COEFFICIENTS))
    week_of_month_offsets: List[float] = field(
        default_factory=lambda: list(config.WEEK_OF_MONTH_OFFSETS))
    limit_days: Optional[int] = None

    def validate(self):
        """Fail fast on anything that would make every day invalid.

        Raises:
            ConfigurationError: on the first invalid setting
        """
        validate_parameters(
            self.base_arrival_rate,
            self.agents,
            self.service_mean,
            self.day_length,
            self.max_calls,
            self.end_of_day,
            self.seed,
        )
        if self.seed is None:
            raise ConfigurationError("seed is required to derive the per-day streams")
        if not isinstance(self.replications, int) or self.replications < 1:
            raise ConfigurationError(f"replications must be >= 1, got {self.replications!r}")
        if self.noise_stdev < 0:
            raise ConfigurationError(f"noise_stdev must be >= 0, got {self.noise_stdev!r}")
        if self.min_arrival_rate <= 0:
            raise ConfigurationError(
                f"min_arrival_rate must be positive, got {self.min_arrival_rate!r}")
        if self.target_threshold < 0:
            raise ConfigurationError(
                f"target_threshold must be >= 0, got {self.target_threshold!r}")
        if self.limit_days is not None and self.limit_days < 0:
            raise ConfigurationError(f"limit_days must be >= 0, got {self.limit_days!r}")

        for name, values, size in (
            ("month_coefficients", self.month_coefficients, 12),
            ("weekday_coefficients", self.weekday_coefficients, 5),
            ("week_of_month_offsets", self.week_of_month_offsets, 5),
        ):
            if len(values) != size:
                raise ConfigurationError(f"{name} needs {size} values, got {len(values)}")


@dataclass
class YearResult:
    """Cumulative export plus per-day bookkeeping."""
    table: pd.DataFrame
    rates: pd.DataFrame
    failed_days: List[pd.Timestamp]
    saturated_days: List[pd.Timestamp]
    settings: GenerationSettings

    def save_csv(self, path=None) -> str:
        """Write the table; defaults to config.DATA_DIR/config.DATASET_FILENAME."""
        path = Path(path) if path is not None else Path(config.DATA_DIR) / config.DATASET_FILENAME
        path.parent.mkdir(parents=True, exist_ok=True)
        self.table.to_csv(path, index=False, date_format="%Y-%m-%d")
        return str(path)


def business_days(year: int = config.YEAR) -> pd.DatetimeIndex:
    """All Monday-Friday dates of `year`, public holidays included."""
    return pd.bdate_range(start=f"{year}-01-01", end=f"{year}-12-31")


def calendar_coefficients(
    dates: Sequence,
    month_coefficients: Sequence[float] = config.MONTH_COEFFICIENTS,
    weekday_coefficients: Sequence[float] = config.WEEKDAY_COEFFICIENTS,
    week_of_month_offsets: Sequence[float] = config.WEEK_OF_MONTH_OFFSETS,
) -> pd.DataFrame:
    """Month, weekday and week-of-month coefficients per date.

    Raises:
        ConfigurationError: if a date falls on a weekend
    """
    dates = pd.DatetimeIndex(dates)
    if (dates.dayofweek > 4).any():
        raise ConfigurationError("calendar coefficients are defined for Monday-Friday only")

    week_of_month = (dates.day.to_numpy() - 1) // 7
    return pd.DataFrame({
        "date": dates,
        "month_coef": np.asarray(month_coefficients, dtype=float)[dates.month.to_numpy() - 1],
        "weekday_coef": np.asarray(weekday_coefficients, dtype=float)[dates.dayofweek.to_numpy()],
        "week_offset": np.asarray(week_of_month_offsets, dtype=float)[week_of_month],
    })


def daily_arrival_rates(
    dates: Sequence,
    base_rate: float = config.BASE_ARRIVAL_RATE,
    noise_stdev: float = config.NOISE_STDEV,
    seed: int = config.RANDOM_SEED_BASE,
    min_rate: float = config.MIN_ARRIVAL_RATE,
    month_coefficients: Sequence[float] = config.MONTH_COEFFICIENTS,
    weekday_coefficients: Sequence[float] = config.WEEKDAY_COEFFICIENTS,
    week_of_month_offsets: Sequence[float] = config.WEEK_OF_MONTH_OFFSETS,
) -> pd.DataFrame:
    """Arrival rate per date.

    rate = base_rate * month_coef * weekday_coef + week_offset + noise,
    floored at `min_rate`. Noise comes from its own stream so the rates
    do not depend on how the days are later executed.

    Returns:
        DataFrame with date, coefficients, noise and arrival_rate
    """
    rates = calendar_coefficients(
        dates, month_coefficients, weekday_coefficients, week_of_month_offsets
    )
    rng = np.random.default_rng(seed + config.NOISE_SEED_OFFSET)
    rates["noise"] = rng.normal(0.0, noise_stdev, size=len(rates))

    raw = (
        base_rate * rates["month_coef"] * rates["weekday_coef"]
        + rates["week_offset"]
        + rates["noise"]
    )
    floored = int((raw < min_rate).sum())
    if floored:
        logger.info("%d day(s) floored to the minimum arrival rate %.3f", floored, min_rate)
    rates["arrival_rate"] = np.maximum(raw, min_rate)

    return rates


def day_seed(base_seed: int, day_index: int, replication: int = 1, replications: int = 1) -> int:
    """Seed of one (day, replication) stream; base_seed + day_index for one replication."""
    return base_seed + day_index * replications + (replication - 1)


def _concat(frames: List[pd.DataFrame]) -> pd.DataFrame:
    frames = [f for f in frames if not f.empty]
    if not frames:
        return pd.DataFrame(columns=config.CALL_LOG_COLUMNS)
    return pd.concat(frames, ignore_index=True)


def run_day(
    day_index: int,
    date,
    arrival_rate: float,
    settings: GenerationSettings,
) -> Tuple[pd.DataFrame, bool]:
    """Simulate every replication of one business day.

    Returns:
        (rows for the day, whether any replication hit the arrival cap)
    """
    frames = []
    saturated = False
    for replication in range(1, settings.replications + 1):
        result = simulate_day(
            arrival_rate=arrival_rate,
            agents=settings.agents,
            service_mean=settings.service_mean,
            day_length=settings.day_length,
            max_calls=settings.max_calls,
            end_of_day=settings.end_of_day,
            seed=day_seed(settings.seed, day_index, replication, settings.replications),
        )
        saturated = saturated or result.saturated
        frames.append(result.to_dataframe(
            threshold=settings.target_threshold, date=date, replication=replication
        ))

    return _concat(frames), saturated


def _day_outcomes(jobs, settings: GenerationSettings, workers: int):
    """Yield (date, outcome) in day order; outcome is the exception on failure."""
    if workers > 1:
        with ProcessPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(run_day, day_index, date, rate, settings)
                for day_index, date, rate in jobs
            ]
            for (_, date, _), future in zip(jobs, futures):
                try:
                    outcome = future.result()
                except Exception as exc:
                    outcome = exc
                yield date, outcome
        return

    for day_index, date, rate in jobs:
        try:
            outcome = run_day(day_index, date, rate, settings)
        except Exception as exc:
            outcome = exc
        yield date, outcome


def generate_year(
    settings: Optional[GenerationSettings] = None,
    workers: int = config.WORKERS,
) -> YearResult:
    """Run every business day and fold the logs into one table.

    A day that raises is logged and skipped; rows of other days are kept.

    Args:
        settings: Run settings (config defaults if None)
        workers: Process count; 1 runs the days in this process

    Returns:
        YearResult
    """
    settings = settings or GenerationSettings()
    settings.validate()
    if workers < 1:
        raise ConfigurationError(f"workers must be >= 1, got {workers!r}")

    dates = business_days(settings.year)
    if settings.limit_days is not None:
        dates = dates[:settings.limit_days]

    rates = daily_arrival_rates(
        dates,
        base_rate=settings.base_arrival_rate,
        noise_stdev=settings.noise_stdev,
        seed=settings.seed,
        min_rate=settings.min_arrival_rate,
        month_coefficients=settings.month_coefficients,
        weekday_coefficients=settings.weekday_coefficients,
        week_of_month_offsets=settings.week_of_month_offsets,
    )
    jobs = [
        (day_index, date, float(rate))
        for day_index, (date, rate) in enumerate(zip(rates["date"], rates["arrival_rate"]))
    ]
    logger.info("Simulating %d business days of %d with %d worker(s)",
                len(jobs), settings.year, workers)

    frames, failed_days, saturated_days = [], [], []
    for date, outcome in _day_outcomes(jobs, settings, workers):
        if isinstance(outcome, Exception):
            logger.error("Day %s failed, skipped: %s", date.date(), outcome, exc_info=outcome)
            failed_days.append(date)
            continue

        frame, saturated = outcome
        if saturated:
            saturated_days.append(date)
        frames.append(frame)

    table = _concat(frames)
    logger.info("Generated %d calls over %d days (%d failed, %d saturated)",
                len(table), len(jobs) - len(failed_days), len(failed_days), len(saturated_days))

    return YearResult(
        table=table,
        rates=rates,
        failed_days=failed_days,
        saturated_days=saturated_days,
        settings=settings,
    )
