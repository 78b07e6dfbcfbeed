"""Constants for dispatcher/CDN cache purge."""

DEFAULT_PURGE_TIMEOUT_MS = 5_000
DEFAULT_PURGE_BATCH_SIZE = 10
DEFAULT_PURGE_THROTTLE_MS = 0

PURGE_METHODS = frozenset({"PURGE", "POST"})
