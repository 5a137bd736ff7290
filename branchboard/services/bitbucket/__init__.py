"""
Bitbucket service package.

Module structure:
- client.py: BitbucketClient and BitbucketConfig (repository and branch listings)
- loader.py: CachedRepositoryLoader composing the client with the TTL cache
- http_client.py: Shared AsyncClient and RetryingHttpClient (429/network retries)
- rate_limit.py: RateLimitTracker fed from response headers
- cache.py: TTLCache and its key-value stores
- types.py: Data types for API records
- exceptions.py: Error taxonomy
- constants.py: API and retry constants
"""

from branchboard.services.bitbucket.cache import JsonFileStore, KeyValueStore, MemoryStore, TTLCache
from branchboard.services.bitbucket.client import BitbucketClient, BitbucketConfig
from branchboard.services.bitbucket.exceptions import (
    BitbucketAPIError,
    CacheError,
    ConfigurationError,
    HttpError,
    NetworkError,
    RateLimitExceeded,
)
from branchboard.services.bitbucket.http_client import (
    RetryingHttpClient,
    close_bitbucket_client,
    get_bitbucket_client,
)
from branchboard.services.bitbucket.loader import BranchSnapshot, CachedRepositoryLoader
from branchboard.services.bitbucket.rate_limit import RateLimitInfo, RateLimitTracker
from branchboard.services.bitbucket.types import (
    Branch,
    CommitAuthor,
    CommitTarget,
    GroupedBranches,
    Project,
    Repository,
)

__all__ = [
    # Client and loading
    "BitbucketClient",
    "BitbucketConfig",
    "BranchSnapshot",
    "CachedRepositoryLoader",
    # HTTP
    "RetryingHttpClient",
    "close_bitbucket_client",
    "get_bitbucket_client",
    "RateLimitInfo",
    "RateLimitTracker",
    # Cache
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "TTLCache",
    # Exceptions
    "BitbucketAPIError",
    "CacheError",
    "ConfigurationError",
    "HttpError",
    "NetworkError",
    "RateLimitExceeded",
    # Types
    "Branch",
    "CommitAuthor",
    "CommitTarget",
    "GroupedBranches",
    "Project",
    "Repository",
]
