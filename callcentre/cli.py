"""
Command-line entry point: generate one year of call logs.
Writes the dataset CSV, a JSON report and plots, and prints a summary.
"""

import argparse
import logging
from pathlib import Path
from typing import List, Optional
import numpy as np
import config
from callcentre.calendar_driver import GenerationSettings, generate_year
from callcentre.day_simulator import END_OF_DAY_POLICIES, ConfigurationError
from callcentre.metrics import DatasetReport


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="generate-call-log",
        description="Generate a synthetic call-centre event log for one year of business days",
    )
    parser.add_argument("--agents", type=int, default=config.AGENTS,
                        help="Number of agents")
    parser.add_argument("--arrival-rate", type=float, default=config.BASE_ARRIVAL_RATE,
                        help="Base arrival rate in calls/min before calendar adjustment")
    parser.add_argument("--service-mean", type=float, default=config.SERVICE_MEAN,
                        help="Mean service time in minutes")
    parser.add_argument("--day-length", type=float, default=config.DAY_LENGTH,
                        help="Opening hours in minutes")
    parser.add_argument("--max-calls", type=int, default=config.MAX_CALLS_PER_DAY,
                        help="Cap on arrivals per day")
    parser.add_argument("--end-of-day", choices=END_OF_DAY_POLICIES,
                        default=config.END_OF_DAY_POLICY,
                        help="Let calls in progress at closing finish, or report them unfinished")
    parser.add_argument("--target", type=float, default=config.TARGET_THRESHOLD,
                        help="Waiting-time target in minutes")
    parser.add_argument("--noise-stdev", type=float, default=config.NOISE_STDEV,
                        help="Standard deviation of the daily rate noise")
    parser.add_argument("--year", type=int, default=config.YEAR,
                        help="Calendar year to simulate")
    parser.add_argument("--seed", type=int, default=config.RANDOM_SEED_BASE,
                        help="Base random seed")
    parser.add_argument("--replications", type=int, default=config.REPLICATIONS,
                        help="Independent runs per business day")
    parser.add_argument("--workers", type=int, default=config.WORKERS,
                        help="Worker processes for independent days")
    parser.add_argument("--limit-days", type=int, default=None,
                        help="Only simulate the first N business days")
    parser.add_argument("--output-dir", default=config.OUTPUT_DIR,
                        help="Directory for data, reports and plots")
    parser.add_argument("--no-plots", action="store_true",
                        help="Skip the matplotlib figures")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Debug logging")
    return parser


def settings_from_args(args: argparse.Namespace) -> GenerationSettings:
    return GenerationSettings(
        agents=args.agents,
        base_arrival_rate=args.arrival_rate,
        service_mean=args.service_mean,
        day_length=args.day_length,
        max_calls=args.max_calls,
        end_of_day=args.end_of_day,
        target_threshold=args.target,
        year=args.year,
        seed=args.seed,
        replications=args.replications,
        noise_stdev=args.noise_stdev,
        limit_days=args.limit_days,
    )


def print_summary(report: dict, outputs: dict):
    volume = report["volume"]
    level = report["service_level"]

    print(f"\n{'=' * 50}")
    print(f"SUMMARY")
    print(f"{'=' * 50}")
    print(f"\nVolume:")
    print(f"  Calls: {volume['calls']}")
    print(f"  Days:  {volume['days']}")
    print(f"  Mean per day: {volume['mean_calls_per_day']:.1f}")
    print(f"  Saturated days: {len(volume['saturated_days'])}")
    print(f"  Failed days:    {len(volume['failed_days'])}")

    print(f"\nService level (within {level['threshold']:g} min):")
    if np.isnan(level["overall"]):
        print(f"  No answered calls")
    else:
        print(f"  Overall: {level['overall'] * 100:.2f}%")
        print(f"  Days meeting {level['target_fraction'] * 100:.0f}%: "
              f"{level['days_meeting_target']} / {level['days_measured']}")
        print(f"  Worst day: {level['worst_day'] * 100:.2f}%")

    print(f"\n{'=' * 50}")
    print(f"Outputs:")
    for name, path in outputs.items():
        print(f"  {name + ':':<10} {path}")
    print(f"{'=' * 50}")


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for dataset generation."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    settings = settings_from_args(args)
    try:
        settings.validate()
    except ConfigurationError as exc:
        parser.error(str(exc))
    if args.workers < 1:
        parser.error(f"--workers must be >= 1, got {args.workers}")

    print(f"Call Centre Event Log Generator")
    print(f"=" * 50)
    print(f"Configuration:")
    print(f"  Agents: {settings.agents}")
    print(f"  Base arrival rate: {settings.base_arrival_rate} calls/min")
    print(f"  Service mean: {settings.service_mean} min")
    print(f"  Day length: {settings.day_length} min")
    print(f"  Year: {settings.year}, seed: {settings.seed}")
    print(f"  Replications per day: {settings.replications}")
    print(f"=" * 50)

    result = generate_year(settings, workers=args.workers)

    output_dir = Path(args.output_dir)
    run_id = f"{settings.year}_seed{settings.seed}"
    outputs = {
        "Dataset": result.save_csv(output_dir / config.DATA_SUBDIR / config.DATASET_FILENAME),
    }

    report_builder = DatasetReport(
        result,
        output_dir=str(output_dir / config.REPORT_SUBDIR),
        plot_dir=str(output_dir / config.PLOT_SUBDIR),
        run_id=run_id,
    )
    report = report_builder.generate_report()
    outputs["Report"] = report_builder.save_report_json(report)
    if not args.no_plots:
        outputs["Volume"] = report_builder.plot_daily_volume()
        outputs["Service"] = report_builder.plot_service_level()

    print_summary(report, outputs)
    return 0
