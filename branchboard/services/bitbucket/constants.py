"""Constants for Bitbucket service."""

BITBUCKET_API_URL = "https://api.bitbucket.org/2.0"

# Single bounded page per listing; deeper pagination is not followed
PAGE_LEN = 100

# Retry policy for 429 and transport failures
MAX_RETRIES = 3
BASE_RETRY_DELAY_SECONDS = 1.0

# Rate limit tracking
# Bitbucket only reports the ceiling and a near-limit flag, never an exact count
DEFAULT_RATE_LIMIT = 1000  # Authenticated requests per hour
DEFAULT_RATE_LIMIT_RESOURCE = "api"
RATE_LIMIT_WINDOW_SECONDS = 3600.0
NEAR_LIMIT_REMAINING_RATIO = 0.2
NORMAL_REMAINING_RATIO = 0.8
NEAR_LIMIT_COOLDOWN_SECONDS = 2.0
NEAR_LIMIT_COOLDOWN_THRESHOLD = 10  # Pause before a request when fewer remain
LOW_REMAINING_WARNING_THRESHOLD = 50

# Cache keys: "<namespace>:<workspace>:<resource>"
CACHE_NAMESPACE = "bitbucket_cache"
REPOSITORIES_RESOURCE = "repositories"
BRANCHES_RESOURCE = "branches"
