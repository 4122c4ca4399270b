"""
Metrics computation and reporting for generated call logs.
Service level against the waiting-time target, utilisation, concurrency,
parameter recovery, JSON reports and plots.
"""

import json
from pathlib import Path
from typing import Dict, Optional
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import config
from callcentre.calendar_driver import YearResult
from callcentre.estimator import recover_day_parameters


def service_level(waiting_times, threshold: float = config.TARGET_THRESHOLD) -> float:
    """Fraction of answered calls waiting at most `threshold`.

    Unanswered calls (NaN waiting time) are left out. NaN when no call
    was answered.
    """
    waiting = np.asarray(waiting_times, dtype=float)
    waiting = waiting[~np.isnan(waiting)]
    if waiting.size == 0:
        return np.nan
    return float(np.mean(waiting <= threshold))


def max_concurrent_in_service(start_times, end_times) -> int:
    """Peak number of calls in service at once.

    A call ending at t frees its agent for a call starting at t. Calls
    never started are ignored; calls never finished stay in service.
    """
    start = np.asarray(start_times, dtype=float)
    end = np.asarray(end_times, dtype=float)
    started = ~np.isnan(start)
    start, end = start[started], end[started]
    if start.size == 0:
        return 0
    end = np.where(np.isnan(end), np.inf, end)

    times = np.concatenate([start, end])
    deltas = np.concatenate([np.ones(start.size), -np.ones(end.size)])
    order = np.lexsort((deltas, times))  # ends before starts at equal times
    return int(np.max(np.cumsum(deltas[order])))


def summarize_day(
    frame: pd.DataFrame,
    agents: int = config.AGENTS,
    day_length: float = config.DAY_LENGTH,
    threshold: float = config.TARGET_THRESHOLD,
) -> Dict[str, float]:
    """Summary statistics of one day (one replication) of rows."""
    waiting = frame["waiting_time"].to_numpy(dtype=float)
    start = frame["start_time"].to_numpy(dtype=float)
    end = frame["end_time"].to_numpy(dtype=float)

    # Busy minutes inside the opening window
    busy_end = np.where(np.isnan(end), day_length, end)
    busy = np.clip(busy_end, 0, day_length) - np.clip(start, 0, day_length)
    busy_minutes = float(np.nansum(busy))

    answered = waiting[~np.isnan(waiting)]
    return {
        "calls": int(len(frame)),
        "answered": int(answered.size),
        "finished": int(frame["finished"].astype(bool).sum()),
        "mean_wait": float(np.mean(answered)) if answered.size else np.nan,
        "max_wait": float(np.max(answered)) if answered.size else np.nan,
        "service_level": service_level(waiting, threshold),
        "utilization": busy_minutes / (agents * day_length),
        "max_concurrent": max_concurrent_in_service(start, end),
    }


def daily_summary(
    table: pd.DataFrame,
    agents: int = config.AGENTS,
    day_length: float = config.DAY_LENGTH,
    threshold: float = config.TARGET_THRESHOLD,
) -> pd.DataFrame:
    """One summary row per (date, replication)."""
    rows = []
    if not table.empty:
        for (date, replication), frame in table.groupby(["date", "replication"], sort=True):
            row = {"date": date, "replication": replication}
            row.update(summarize_day(frame, agents, day_length, threshold))
            rows.append(row)

    columns = ["date", "replication", "calls", "answered", "finished", "mean_wait",
               "max_wait", "service_level", "utilization", "max_concurrent"]
    return pd.DataFrame(rows, columns=columns)


class DatasetReport:
    """Compute dataset metrics and generate reports."""

    def __init__(
        self,
        result: YearResult,
        output_dir: str = config.REPORT_DIR,
        plot_dir: str = config.PLOT_DIR,
        run_id: str = "default",
        target_fraction: float = config.TARGET_FRACTION,
    ):
        """Initialize report.

        Args:
            result: Output of generate_year
            output_dir: Output directory for reports
            plot_dir: Output directory for figures
            run_id: Identifier for this run
            target_fraction: Required share of calls within the threshold
        """
        self.result = result
        self.settings = result.settings
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.plot_dir = Path(plot_dir)
        self.run_id = run_id
        self.target_fraction = target_fraction
        self._summary: Optional[pd.DataFrame] = None

    def compute_daily_summary(self) -> pd.DataFrame:
        if self._summary is None:
            self._summary = daily_summary(
                self.result.table,
                agents=self.settings.agents,
                day_length=self.settings.day_length,
                threshold=self.settings.target_threshold,
            )
        return self._summary

    def compute_parameter_recovery(self) -> pd.DataFrame:
        """Recovered vs configured arrival rate and service mean per day.

        Returns:
            DataFrame with estimates and absolute errors in %
        """
        table = self.result.table
        rates = self.result.rates.set_index("date")["arrival_rate"]
        rows = []
        if not table.empty:
            for (date, replication), frame in table.groupby(["date", "replication"], sort=True):
                est_lambda, est_mean = recover_day_parameters(frame)
                true_lambda = rates.loc[date]
                rows.append({
                    "date": date,
                    "replication": replication,
                    "arrival_rate": true_lambda,
                    "est_lambda": est_lambda,
                    "est_service_mean": est_mean,
                    "arrival_rate_error_pct": abs(est_lambda - true_lambda) / true_lambda * 100,
                    "service_mean_error_pct": (
                        abs(est_mean - self.settings.service_mean)
                        / self.settings.service_mean * 100
                    ),
                })

        columns = ["date", "replication", "arrival_rate", "est_lambda", "est_service_mean",
                   "arrival_rate_error_pct", "service_mean_error_pct"]
        return pd.DataFrame(rows, columns=columns)

    def generate_report(self) -> Dict:
        """Generate comprehensive metrics report.

        Returns:
            Report dictionary
        """
        table = self.result.table
        summary = self.compute_daily_summary()
        recovery = self.compute_parameter_recovery()
        threshold = self.settings.target_threshold

        day_levels = summary["service_level"].dropna()
        overall_level = (
            service_level(table["waiting_time"], threshold) if not table.empty else np.nan
        )

        report = {
            "run_id": self.run_id,
            "settings": {
                "agents": self.settings.agents,
                "base_arrival_rate": self.settings.base_arrival_rate,
                "service_mean": self.settings.service_mean,
                "day_length": self.settings.day_length,
                "max_calls": self.settings.max_calls,
                "end_of_day": self.settings.end_of_day,
                "year": self.settings.year,
                "seed": self.settings.seed,
                "replications": self.settings.replications,
            },
            "volume": {
                "calls": int(len(table)),
                "days": int(summary["date"].nunique()),
                "mean_calls_per_day": float(summary["calls"].mean()) if len(summary) else np.nan,
                "failed_days": [d.strftime("%Y-%m-%d") for d in self.result.failed_days],
                "saturated_days": [d.strftime("%Y-%m-%d") for d in self.result.saturated_days],
            },
            "service_level": {
                "threshold": threshold,
                "target_fraction": self.target_fraction,
                "overall": overall_level,
                "days_meeting_target": int((day_levels >= self.target_fraction).sum()),
                "days_measured": int(day_levels.size),
                "worst_day": float(day_levels.min()) if day_levels.size else np.nan,
            },
            "waiting": {
                "mean_wait": float(table["waiting_time"].astype(float).mean())
                if not table.empty else np.nan,
                "max_wait": float(table["waiting_time"].astype(float).max())
                if not table.empty else np.nan,
            },
            "utilization": {
                "mean": float(summary["utilization"].mean()) if len(summary) else np.nan,
                "max": float(summary["utilization"].max()) if len(summary) else np.nan,
            },
            "parameter_recovery": {
                "arrival_rate_error_pct": float(recovery["arrival_rate_error_pct"].mean())
                if len(recovery) else np.nan,
                "service_mean_error_pct": float(recovery["service_mean_error_pct"].mean())
                if len(recovery) else np.nan,
            },
        }

        return report

    def save_report_json(self, report: Dict) -> str:
        """Save report as JSON file.

        Args:
            report: Report dictionary

        Returns:
            Path to saved file
        """
        path = self.output_dir / f"report_{self.run_id}.json"

        # NaN is written as null
        def default_serializer(obj):
            if isinstance(obj, np.ndarray):
                return obj.tolist()
            if isinstance(obj, (np.integer, np.floating)):
                return float(obj)
            return str(obj)

        def nan_to_none(obj):
            if isinstance(obj, dict):
                return {k: nan_to_none(v) for k, v in obj.items()}
            if isinstance(obj, list):
                return [nan_to_none(v) for v in obj]
            if isinstance(obj, float) and np.isnan(obj):
                return None
            return obj

        with open(path, "w") as f:
            json.dump(nan_to_none(report), f, indent=2, default=default_serializer)

        return str(path)

    def plot_daily_volume(self) -> str:
        """Plot calls per day against the configured arrival rate.

        Returns:
            Path to saved figure, "" when there is nothing to plot
        """
        summary = self.compute_daily_summary()
        if summary.empty:
            return ""

        per_day = summary.groupby("date")["calls"].mean()
        expected = self.result.rates.set_index("date")["arrival_rate"] * self.settings.day_length

        fig, ax = plt.subplots(figsize=(12, 6))
        ax.plot(per_day.index, per_day.values, label="Simulated calls", linewidth=1)
        ax.plot(expected.index, expected.values, label="Expected (rate x day length)",
                linestyle="--", linewidth=1)
        ax.set_xlabel("Date")
        ax.set_ylabel("Calls per day")
        ax.set_title("Daily Call Volume")
        ax.legend()
        ax.grid(True, alpha=0.3)

        path = self.plot_dir / f"volume_{self.run_id}.png"
        path.parent.mkdir(parents=True, exist_ok=True)
        plt.tight_layout()
        plt.savefig(path, dpi=150)
        plt.close(fig)

        return str(path)

    def plot_service_level(self) -> str:
        """Plot daily service level against the target.

        Returns:
            Path to saved figure, "" when there is nothing to plot
        """
        summary = self.compute_daily_summary().dropna(subset=["service_level"])
        if summary.empty:
            return ""

        per_day = summary.groupby("date")["service_level"].mean()

        fig, axes = plt.subplots(2, 1, figsize=(12, 8))

        axes[0].plot(per_day.index, per_day.values * 100, linewidth=1, label="Service level")
        axes[0].axhline(self.target_fraction * 100, color="r", linestyle="--",
                        label="Target", linewidth=2)
        axes[0].set_ylabel(f"% answered within {self.settings.target_threshold:g} min")
        axes[0].set_title("Daily Service Level")
        axes[0].legend()
        axes[0].grid(True, alpha=0.3)

        axes[1].hist(per_day.values * 100, bins=30, alpha=0.7)
        axes[1].axvline(self.target_fraction * 100, color="r", linestyle="--", linewidth=2)
        axes[1].set_xlabel("Service level (%)")
        axes[1].set_ylabel("Days")
        axes[1].set_title("Distribution of Daily Service Level")
        axes[1].grid(True, alpha=0.3)

        path = self.plot_dir / f"service_level_{self.run_id}.png"
        path.parent.mkdir(parents=True, exist_ok=True)
        plt.tight_layout()
        plt.savefig(path, dpi=150)
        plt.close(fig)

        return str(path)
