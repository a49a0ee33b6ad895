"""Phorest third-party REST API client.

Handles HTTP basic auth, HAL-style pagination (`_embedded` + `page`),
appointment date windows and batched client lookups.
"""

import time
import logging
from datetime import date, timedelta

import requests

from ..config import PhorestConfig
from .exceptions import (
    AuthenticationError, NetworkError, TimeoutError,
    RateLimitError, APIError, ParseError
)

logger = logging.getLogger('backoffice.commissions.phorest')


def split_date_range(start, end, max_days):
    """Split an inclusive [start, end] date range into windows of at most max_days days.

    2024-01-01..2024-02-15 with max_days=31 gives Jan 1-31 and Feb 1-15.
    """
    windows = []
    cursor = start
    while cursor <= end:
        window_end = min(cursor + timedelta(days=max_days - 1), end)
        windows.append((cursor, window_end))
        cursor = window_end + timedelta(days=1)
    return windows


class PhorestClient:
    """Client for the Phorest third-party API.

    Auth: HTTP basic on every request; all resources live under
    /business/{businessId}.
    """

    def __init__(self, config=None):
        self.config = config or PhorestConfig()
        if not self.config.is_configured:
            raise AuthenticationError('Phorest credentials are not configured')
        self.base_url = self.config.base_url.rstrip('/')
        self._session = requests.Session()
        self._session.auth = (self.config.username, self.config.password)
        self._session.headers['Accept'] = 'application/json'

    @property
    def business_url(self):
        return f'{self.base_url}/business/{self.config.business_id}'

    def _request(self, method, endpoint, params=None):
        """Make API request with bounded retries on transient failures."""
        url = f'{self.business_url}{endpoint}'
        max_retries = self.config.MAX_RETRIES
        delay = self.config.RETRY_BASE_DELAY

        for attempt in range(max_retries):
            last_attempt = attempt == max_retries - 1
            try:
                resp = self._session.request(
                    method, url, params=params,
                    timeout=self.config.request_timeout,
                )
            except requests.exceptions.Timeout:
                if not last_attempt:
                    time.sleep(delay * (attempt + 1))
                    continue
                raise TimeoutError(f'Timeout: {method} {endpoint}')
            except requests.exceptions.ConnectionError as e:
                if not last_attempt:
                    time.sleep(delay * (attempt + 1))
                    continue
                raise NetworkError(f'Connection error: {e}')

            if resp.status_code in (401, 403):
                raise AuthenticationError(
                    f'Phorest rejected credentials (HTTP {resp.status_code})', code=resp.status_code)

            if resp.status_code == 429:
                retry_after = _retry_after_seconds(resp, delay * (attempt + 1))
                if not last_attempt:
                    logger.warning(f'Phorest rate limit hit on {endpoint}, retrying in {retry_after}s')
                    time.sleep(retry_after)
                    continue
                raise RateLimitError(retry_after=retry_after)

            if resp.status_code >= 500 and not last_attempt:
                logger.warning(f'Phorest {resp.status_code} on {endpoint} (attempt {attempt + 1}/{max_retries})')
                time.sleep(delay * (attempt + 1))
                continue

            if resp.status_code >= 400:
                body = self._parse_json(resp, strict=False)
                msg = body.get('detail') or body.get('message') or f'HTTP {resp.status_code}'
                raise APIError(msg, status_code=resp.status_code)

            return self._parse_json(resp)

        raise NetworkError(f'Max retries exceeded for {method} {endpoint}')

    def _parse_json(self, resp, strict=True):
        """Parse JSON response, raise ParseError on failure."""
        try:
            return resp.json()
        except (ValueError, TypeError) as e:
            if not strict:
                return {}
            raise ParseError(f'Invalid JSON response: {e}')

    def _get_all(self, endpoint, embedded_key, params=None):
        """Walk every page of a paginated collection and return the items."""
        items = []
        page = 0
        while True:
            query = dict(params or {})
            query.update({'page': page, 'size': self.config.PAGE_SIZE})
            body = self._request('GET', endpoint, params=query)

            items.extend((body.get('_embedded') or {}).get(embedded_key, []))

            page_meta = body.get('page') or {}
            total_pages = page_meta.get('totalPages', 1)
            page += 1
            if page >= total_pages:
                return items

    # ── Resources ──

    def fetch_branches(self):
        """GET /branch: every branch of the business."""
        return self._get_all('/branch', 'branches')

    def fetch_staff(self, branch_id):
        """GET /branch/{id}/staff"""
        return self._get_all(f'/branch/{branch_id}/staff', 'staffs')

    def fetch_appointments(self, branch_id, start_date, end_date):
        """GET /branch/{id}/appointment for an inclusive date range.

        The API caps from_date/to_date windows, so longer ranges are fetched
        window by window.
        """
        if isinstance(start_date, str):
            start_date = date.fromisoformat(start_date)
        if isinstance(end_date, str):
            end_date = date.fromisoformat(end_date)

        appointments = []
        for window_start, window_end in split_date_range(
                start_date, end_date, self.config.MAX_APPOINTMENT_RANGE_DAYS):
            appointments.extend(self._get_all(
                f'/branch/{branch_id}/appointment', 'appointments',
                params={'from_date': window_start.isoformat(), 'to_date': window_end.isoformat()},
            ))
        return appointments

    def fetch_clients_batch(self, client_ids):
        """GET /client?client_id=... in batches. Returns {clientId: client}."""
        ids = [cid for cid in dict.fromkeys(client_ids) if cid]
        clients = {}
        batch_size = self.config.CLIENT_BATCH_SIZE
        for i in range(0, len(ids), batch_size):
            batch = ids[i:i + batch_size]
            for client in self._get_all('/client', 'clients', params={'client_id': batch}):
                clients[client['clientId']] = client
        logger.debug(f'Fetched {len(clients)} of {len(ids)} clients')
        return clients

    def close(self):
        """Close the underlying session."""
        if self._session:
            self._session.close()


def _retry_after_seconds(resp, default):
    value = resp.headers.get('Retry-After')
    try:
        return max(float(value), 0.0) if value is not None else default
    except (TypeError, ValueError):
        return default
