"""Core constants: cache key prefixes and shared literal values.

Single source of truth for cache key structure (DRY). Used by
app.infrastructure.cache.keys.
"""

# Cache key prefixes (used as tenant:<id>:<suffix> and user:<id>:<suffix>)
CACHE_PREFIX_TENANT = "tenant"
CACHE_PREFIX_USER = "user"

# Delimiter for composite keys
CACHE_KEY_SEP = ":"

# Percent-encoded in owner ids (separator, escape char, Redis glob
# metacharacters) so that tenant:<id>:* never matches another tenant's keys.
CACHE_ESCAPED_CHARS = frozenset(":%*?[]\\")

# SCAN batch size for pattern deletion
CACHE_DELETE_CHUNK_SIZE = 500

# Transaction retry backoff: wait 2**attempt * base after failed attempt `attempt`
TRANSACTION_BACKOFF_BASE_MS = 100
TRANSACTION_DEFAULT_MAX_RETRIES = 3
