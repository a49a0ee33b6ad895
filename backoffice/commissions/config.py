"""
Phorest connector and commission configuration.

Credentials come from the environment; everything else is a constant of the
Phorest third-party API or of the commission policy.
"""

import os
from dataclasses import dataclass, field


@dataclass
class PhorestConfig:
    """Phorest third-party API settings."""

    base_url: str = field(default_factory=lambda: os.environ.get(
        'PHOREST_BASE_URL', 'https://api-gateway-us.phorest.com/third-party-api-server/api'))
    business_id: str = field(default_factory=lambda: os.environ.get('PHOREST_BUSINESS_ID', ''))
    username: str = field(default_factory=lambda: os.environ.get('PHOREST_USERNAME', ''))
    password: str = field(default_factory=lambda: os.environ.get('PHOREST_PASSWORD', ''))
    request_timeout: int = field(default_factory=lambda: int(os.environ.get('PHOREST_TIMEOUT', '30')))

    # Pagination / batching
    PAGE_SIZE: int = 100
    CLIENT_BATCH_SIZE: int = 100
    MAX_APPOINTMENT_RANGE_DAYS: int = 31  # API rejects wider from/to windows

    # Retry settings
    MAX_RETRIES: int = 3
    RETRY_BASE_DELAY: float = 1.0  # seconds

    @property
    def is_configured(self) -> bool:
        return bool(self.business_id and self.username and self.password)


# Commission policy
COMMISSION_RATE = 0.20
CACHE_TTL_HOURS = 1
