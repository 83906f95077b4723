"""External API integrations.

This package contains:
- Aggregator protocol: Interface the sync pipeline expects from a data aggregator
- Plaid client: Integration with the Plaid API
- Cache store: Key/value storage for linked items and cached snapshots
"""

from integrations.aggregator_protocol import AggregatorClient, ErrorCategory, ItemSyncError
from integrations.cache_store import CacheStore, get_cache_store

__all__ = [
    "AggregatorClient",
    "CacheStore",
    "ErrorCategory",
    "ItemSyncError",
    "get_cache_store",
]
