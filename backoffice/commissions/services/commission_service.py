"""Business logic for the first-visit commission report."""
import logging
from dataclasses import dataclass
from typing import Any, Optional

from core.utils.api_helpers import parse_iso_date
from ..client import PhorestClient, PhorestError, AuthenticationError
from ..config import CACHE_TTL_HOURS
from ..repositories import CommissionCacheRepository
from ..repositories.cache_repository import date_range_key
from .commission_calculator import calculate_commissions

logger = logging.getLogger('backoffice.commissions.service')


@dataclass
class ServiceResult:
    """Result of a service operation."""
    success: bool
    data: Any = None
    error: Optional[str] = None
    status_code: int = 200


def validate_date_range(start_date, end_date):
    """Return (start, end) dates or raise ValueError with a user-facing message."""
    if not start_date or not end_date:
        raise ValueError('startDate and endDate are required')
    start = parse_iso_date(start_date, 'startDate')
    end = parse_iso_date(end_date, 'endDate')
    if start > end:
        raise ValueError('startDate must be before endDate')
    return start, end


class CommissionService:
    """Fetches Phorest data, computes the rollup and caches it per date range."""

    def __init__(self, client_factory=PhorestClient):
        self.cache_repo = CommissionCacheRepository()
        self._client_factory = client_factory

    def calculate(self, start_date, end_date, force_refresh=False):
        try:
            start, end = validate_date_range(start_date, end_date)
        except ValueError as e:
            return ServiceResult(success=False, error=str(e), status_code=400)

        key = date_range_key(start.isoformat(), end.isoformat())

        if not force_refresh:
            cached = self._read_cache(key)
            if cached is not None:
                logger.info(f'Commission cache hit for {key}')
                return ServiceResult(success=True, data=cached)

        try:
            results = self._compute(start, end)
        except AuthenticationError as e:
            logger.error(f'Phorest authentication failed: {e}')
            return ServiceResult(success=False, error=f'Phorest authentication failed: {e}', status_code=502)
        except PhorestError as e:
            logger.error(f'Phorest request failed for {key}: {e}')
            return ServiceResult(success=False, error=f'Phorest API error: {e}', status_code=502)

        try:
            self.cache_repo.upsert(key, results, ttl_hours=CACHE_TTL_HOURS)
        except Exception:
            logger.exception(f'Failed to cache commission results for {key}')

        return ServiceResult(success=True, data=results)

    def _read_cache(self, key):
        try:
            return self.cache_repo.get_fresh(key)
        except Exception:
            logger.exception(f'Commission cache read failed for {key}')
            return None

    def _compute(self, start, end):
        client = self._client_factory()
        try:
            branches = client.fetch_branches()
            branch_data = []
            for branch in branches:
                branch_id = branch['branchId']
                branch_data.append({
                    'branch': branch,
                    'staff': client.fetch_staff(branch_id),
                    'appointments': client.fetch_appointments(branch_id, start, end),
                })

            client_ids = {
                appt['clientId']
                for entry in branch_data
                for appt in entry['appointments']
                if appt.get('clientId')
            }
            clients = client.fetch_clients_batch(sorted(client_ids))
        finally:
            client.close()

        results = calculate_commissions(branch_data, clients, start, end)
        logger.info(
            f'Commissions {start}..{end}: {len(branches)} branches, '
            f'{results["totalNewClients"]} new clients, total {results["totalCommission"]}'
        )
        return results

    def clear_cache(self):
        return self.cache_repo.clear()

    def purge_expired(self):
        return self.cache_repo.delete_expired()
