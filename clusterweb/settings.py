"""
This module contains the configuration settings for the ClusterWeb application.
It defines the listening address, pool supervision timings, request limits and
logging options. Values that are part of the external contract (port, request
limit) are fixed; operational timings can be tuned through the environment.
"""

import os
import sys
import pathlib
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv(override=False)

#* --- Core Paths ---
BASE_DIR = pathlib.Path(__file__).resolve().parent.parent  # Project Root
PYTHON_EXECUTABLE = sys.executable

#* --- Listening Socket ---
# The port and host are fixed; they are not read from the environment.
HOST = "0.0.0.0"
PORT = 3000
LISTEN_BACKLOG = 511

#* --- Process Roles ---
# Set by the supervisor in the environment of every worker it spawns.
ROLE_ENV_VAR = "CLUSTERWEB_ROLE"
LISTEN_FD_ENV_VAR = "CLUSTERWEB_LISTEN_FD"

#* --- Supervisor Settings ---
SUPERVISOR_POLL_INTERVAL = float(os.getenv("CLUSTERWEB_POLL_INTERVAL", "1.0"))  # seconds
WORKER_SHUTDOWN_TIMEOUT = float(os.getenv("CLUSTERWEB_SHUTDOWN_TIMEOUT", "5"))  # seconds before SIGKILL

#* --- Worker Settings ---
PARENT_CHECK_INTERVAL = float(os.getenv("CLUSTERWEB_PARENT_CHECK_INTERVAL", "1.0"))  # seconds
GREETING = "Hello World!"
MAX_COUNT = 5_000_000_000

#* --- Logging ---
LOG_LEVEL = os.getenv("CLUSTERWEB_LOG_LEVEL", "INFO").upper()

# Grafana Loki (optional log shipping)
LOKI_ENABLED = os.getenv("LOKI_ENABLED", "False").lower() in ('true', '1', 't')
LOKI_URL = os.getenv("LOKI_URL", "http://localhost:3100")
LOKI_ORG_ID = os.getenv("LOKI_ORG_ID", "fake")
LOG_BUFFER_FLUSH_INTERVAL = int(os.getenv("LOG_BUFFER_FLUSH_INTERVAL", "10"))
