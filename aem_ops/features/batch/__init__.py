"""Sequential, deduplicating batch engine for multi-item operations."""

from aem_ops.features.batch.engine import (
    DEFAULT_BATCH_SIZE,
    SKIPPED_MESSAGE,
    BatchItemHandler,
    chunk,
    run_batches,
)
from aem_ops.features.batch.models import BatchOutput, OperationResult


__all__ = [
    "DEFAULT_BATCH_SIZE",
    "SKIPPED_MESSAGE",
    "BatchItemHandler",
    "BatchOutput",
    "OperationResult",
    "chunk",
    "run_batches",
]
