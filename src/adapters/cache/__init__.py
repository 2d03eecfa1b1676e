"""Cache adapters - Trusted-device ledger implementations."""

from .memory import InMemoryTrustCache
from .redis_cache import RedisTrustCache

__all__ = ["InMemoryTrustCache", "RedisTrustCache"]
