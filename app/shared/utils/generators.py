"""Primary key generator for ORM models."""

from cuid2 import cuid_wrapper

cuid_generator = cuid_wrapper()


def generate_cuid() -> str:
    """Return a new CUID2 string (used as default primary key)."""
    return cuid_generator()
