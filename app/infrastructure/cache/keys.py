"""Cache key builders. Single place for key format (DRY).

Keys are namespaced by owner so a whole group can be invalidated with one
pattern delete:

    tenant:<tenant_id>:<suffix>
    user:<user_id>:<suffix>

The separator, '%' and Redis glob metacharacters in an owner id are
percent-encoded, so tenant:<id>:* matches exactly one owner's keys even for
ids like "org:eu" or "t*". Suffixes are free-form (they may contain ':' for
sub-namespaces, e.g. "news:list:1").
"""

from app.core.constants import (
    CACHE_ESCAPED_CHARS,
    CACHE_KEY_SEP,
    CACHE_PREFIX_TENANT,
    CACHE_PREFIX_USER,
)


def encode_owner_id(value: str, name: str = "owner_id") -> str:
    """Return value with characters that could widen a pattern percent-encoded.

    Raises:
        ValueError: If value is empty.
    """
    if not value:
        raise ValueError(f"Cache key component {name!r} must not be empty")
    return "".join(f"%{ord(ch):02X}" if ch in CACHE_ESCAPED_CHARS else ch for ch in value)


def tenant_key(tenant_id: str, suffix: str) -> str:
    """Cache key scoped to a tenant: tenant:<tenant_id>:<suffix>."""
    owner = encode_owner_id(tenant_id, "tenant_id")
    return f"{CACHE_PREFIX_TENANT}{CACHE_KEY_SEP}{owner}{CACHE_KEY_SEP}{suffix}"


def user_key(user_id: str, suffix: str) -> str:
    """Cache key scoped to a user: user:<user_id>:<suffix>."""
    owner = encode_owner_id(user_id, "user_id")
    return f"{CACHE_PREFIX_USER}{CACHE_KEY_SEP}{owner}{CACHE_KEY_SEP}{suffix}"


def tenant_pattern(tenant_id: str) -> str:
    """Glob matching every key of one tenant: tenant:<tenant_id>:*."""
    return tenant_key(tenant_id, "*")


def user_pattern(user_id: str) -> str:
    """Glob matching every key of one user: user:<user_id>:*."""
    return user_key(user_id, "*")
