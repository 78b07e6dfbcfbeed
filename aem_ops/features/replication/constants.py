"""Constants for content replication."""

DEFAULT_REPLICATION_BATCH_SIZE = 10
DEFAULT_REPLICATION_THROTTLE_MS = 100
DEFAULT_REPLICATION_AGENT = "publish"

# Replication action -> servlet cmd parameter
REPLICATION_COMMANDS = {
    "activate": "Activate",
    "deactivate": "Deactivate",
}
