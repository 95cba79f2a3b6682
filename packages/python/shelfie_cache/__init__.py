"""
Shelfie query cache.

Keyed, staleness-aware store for remote reads plus the mutation/invalidation
table that keeps it consistent.
"""

from shelfie_cache.keys import QueryKey, QueryOptions, normalize_key, options_for
from shelfie_cache.query_cache import CacheEntry, QueryCache
from shelfie_cache.query_client import QueryClient, QueryError, QueryResult
from shelfie_cache.pagination import InfiniteData, Page, page_from_rows
from shelfie_cache.invalidation import Mutation, families_for
from shelfie_cache.mutations import MutationCoordinator

__all__ = [
    # Keys
    "QueryKey",
    "QueryOptions",
    "normalize_key",
    "options_for",
    # Store & client
    "CacheEntry",
    "QueryCache",
    "QueryClient",
    "QueryError",
    "QueryResult",
    # Pagination
    "InfiniteData",
    "Page",
    "page_from_rows",
    # Mutations
    "Mutation",
    "families_for",
    "MutationCoordinator",
]
