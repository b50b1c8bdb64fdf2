"""Constants shared across kite-ports packages."""

KITE_HOME_DIR = ".sql-kite"
RUNTIME_SUBDIR = "runtime"
LOG_SUBDIR = "logs"

REGISTRY_FILENAME = ".port-registry.json"
REGISTRY_LOCK_SUFFIX = ".lock"

# Run-state marker written by the project launcher, relative to the project dir
MARKER_SUBDIR = ".studio"
MARKER_FILENAME = "server.json"

USER_CONFIG_DIR = "sql-kite"
USER_CONFIG_FILENAME = "ports.yaml"


class EnvVars:
    """Environment variables understood by kite-ports."""

    HOME = "KITE_HOME"
    LOG_LEVEL = "KITE_LOG_LEVEL"
    LOG_TO_FILE = "KITE_LOG_TO_FILE"
    CONSOLE_LOGGING = "KITE_CONSOLE_LOGGING"
    REGISTRY_FILE = "KITE_PORT_REGISTRY_FILE"
    LOCK = "KITE_PORT_LOCK"
    LOCK_TIMEOUT = "KITE_PORT_LOCK_TIMEOUT_SEC"
    CLEANUP_INTERVAL = "KITE_PORT_CLEANUP_INTERVAL_SEC"
    MAX_ATTEMPTS = "KITE_PORT_MAX_ATTEMPTS"
    PROBE_HOST = "KITE_PORT_PROBE_HOST"
