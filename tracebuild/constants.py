APP_NAME = "tracebuild"

# Identifier and timestamp hand-over between invocations
ENV_BUILD_ID = "TRACEBUILD_BUILD_ID"
ENV_BUILD_START = "TRACEBUILD_BUILD_START"
ENV_STEP_ID = "TRACEBUILD_STEP_ID"
ENV_STEP_START = "TRACEBUILD_STEP_START"
ENV_DEBUG = "TRACEBUILD_DEBUG"
ENV_FLUSH_TIMEOUT = "TRACEBUILD_FLUSH_TIMEOUT"

UNSET = "unset"

# From https://man.netbsd.org/sysexits.3
EX_USAGE = 2  # click's own usage error code
EX_OSERR = 71
EX_CONFIG = 78

# Shell convention for "terminated by signal N"
SIGNAL_EXIT_BASE = 128

DEFAULT_FLUSH_TIMEOUT = 5.0

# Histogram boundaries in seconds: 5 to 45 minutes, 5 minutes wide
DURATION_BUCKETS = tuple(float(minutes * 60) for minutes in range(5, 50, 5))

# Bounded label set for pushed metrics
METRIC_LABELS = ("name", "status", "exit_code", "branch")

PUSH_JOB_NAME = APP_NAME
