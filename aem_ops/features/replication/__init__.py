"""Content replication (activate/deactivate) for AEM 6.5."""

from aem_ops.features.replication.models import (
    ReplicationAction,
    ReplicationOutput,
    ReplicationPathResult,
    ReplicationQueueStatus,
)
from aem_ops.features.replication.replicator import (
    ReplicationHandler,
    activate_paths,
    deactivate_paths,
    get_replication_queue_status,
    perform_replication,
)


__all__ = [
    "ReplicationAction",
    "ReplicationHandler",
    "ReplicationOutput",
    "ReplicationPathResult",
    "ReplicationQueueStatus",
    "activate_paths",
    "deactivate_paths",
    "get_replication_queue_status",
    "perform_replication",
]
