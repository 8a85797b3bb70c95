import os
from dotenv import load_dotenv

# Load overrides from a local .env file, if present
load_dotenv()

# Logging
LOG_LEVEL = os.getenv("SCHEDULE_LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("SCHEDULE_LOG_FILE")

# Critical path: |float| below this many days counts as critical
CRITICAL_FLOAT_TOLERANCE = float(os.getenv("CRITICAL_FLOAT_TOLERANCE", "0.5"))
NEAR_CRITICAL_THRESHOLD = float(os.getenv("NEAR_CRITICAL_THRESHOLD", "1.0"))

# Dependency type used when a task does not name one
DEFAULT_DEP_TYPE = os.getenv("DEFAULT_DEP_TYPE", "FS").upper()

# Extra days shown after the last finish in the Gantt date range
PROJECT_RANGE_PADDING_DAYS = int(os.getenv("PROJECT_RANGE_PADDING_DAYS", "14"))
