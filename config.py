"""
Configuration for the synthetic call-centre event log generator.
"""

# ============================================================================
# DAY SIMULATOR
# ============================================================================

# Number of interchangeable agents (servers)
AGENTS = 14

# Arrival process: Poisson with exponential interarrival times
BASE_ARRIVAL_RATE = 1.6  # calls/min before calendar adjustment (mean gap = 0.625 min)

# Service time: exponential
SERVICE_MEAN = 5.0  # minutes

# Opening hours: arrivals are accepted in [0, DAY_LENGTH)
DAY_LENGTH = 600.0  # 10 hours in minutes

# Safety cap on arrivals per day
MAX_CALLS_PER_DAY = 3000

# What happens to calls still in progress when the day window closes:
# "complete" lets them finish, "truncate" reports them as unfinished
END_OF_DAY_POLICY = "complete"

# ============================================================================
# PERFORMANCE TARGET
# ============================================================================

# 90% of calls answered within 1 minute
TARGET_THRESHOLD = 1.0  # minutes
TARGET_FRACTION = 0.9

# ============================================================================
# CALENDAR DRIVER
# ============================================================================

YEAR = 2021  # 261 business days

# Multiplicative coefficient per month (Jan..Dec)
MONTH_COEFFICIENTS = [1.15, 1.10, 1.05, 1.00, 0.95, 0.90, 0.80, 0.80, 1.00, 1.05, 1.05, 0.90]

# Multiplicative coefficient per weekday (Mon..Fri)
WEEKDAY_COEFFICIENTS = [1.20, 1.05, 1.00, 0.95, 0.85]

# Additive offset (calls/min) by week of the month (days 1-7, 8-14, ...)
WEEK_OF_MONTH_OFFSETS = [0.15, 0.05, 0.0, -0.05, 0.10]

# Gaussian noise on the daily rate
NOISE_STDEV = 0.08  # calls/min

# Floor keeping every daily rate strictly positive
MIN_ARRIVAL_RATE = 0.05  # calls/min

# ============================================================================
# SIMULATION
# ============================================================================

RANDOM_SEED_BASE = 42
NOISE_SEED_OFFSET = 100000  # keeps the noise stream clear of the per-day seeds
REPLICATIONS = 1  # independent runs per business day
WORKERS = 1  # >1 runs days in a process pool

# ============================================================================
# OUTPUT
# ============================================================================

OUTPUT_DIR = "outputs"
DATA_SUBDIR = "data"
PLOT_SUBDIR = "plots"
REPORT_SUBDIR = "reports"
DATA_DIR = f"{OUTPUT_DIR}/{DATA_SUBDIR}"
PLOT_DIR = f"{OUTPUT_DIR}/{PLOT_SUBDIR}"
REPORT_DIR = f"{OUTPUT_DIR}/{REPORT_SUBDIR}"

DATASET_FILENAME = "call_log.csv"

# Dataset columns, one row per call
CALL_LOG_COLUMNS = [
    "customer",  # "call<N>", numbered per day in arrival order
    "arrival_time",
    "start_time",  # service start
    "end_time",
    "activity_time",  # service duration
    "finished",
    "replication",
    "waiting_time",
    "within_target",
    "date",
]
