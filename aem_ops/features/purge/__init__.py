"""Dispatcher/CDN cache purge with URL allowlisting."""

from aem_ops.features.purge.models import CachePurgeOutput, PurgeMethod, PurgeUrlResult
from aem_ops.features.purge.purger import PurgeHandler, purge_cache


__all__ = [
    "CachePurgeOutput",
    "PurgeHandler",
    "PurgeMethod",
    "PurgeUrlResult",
    "purge_cache",
]
