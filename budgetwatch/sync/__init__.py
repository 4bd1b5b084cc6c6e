"""Read cache kept in sync with the ledgers."""

from budgetwatch.sync.cache import (
    CacheStrategy,
    QueryCache,
    QueryKey,
    SyncLayer,
    UnknownQueryError,
)

__all__ = [
    "CacheStrategy",
    "QueryCache",
    "QueryKey",
    "SyncLayer",
    "UnknownQueryError",
]
