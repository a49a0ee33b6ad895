"""Commission repositories package."""
from .cache_repository import CommissionCacheRepository

__all__ = ['CommissionCacheRepository']
