"""
Shared HTTP plumbing for the outbound CRM/email clients.

Every request goes through the service's circuit breaker. 429, 5xx and network
failures are retried with exponential backoff (1s, 2s); other 4xx responses are
returned to the caller unchanged.
"""
import logging
import time
from typing import Dict

import requests

from awards.services.circuit_breaker import get_breaker

logger = logging.getLogger('services.api_client')


class ApiError(Exception):
    def __init__(self, message, status=None):
        self.status = status
        super().__init__(message)

    @property
    def retryable(self):
        return self.status is None or self.status == 429 or self.status >= 500


class RetryingClient:
    """
    Subclasses set SERVICE (breaker name), LABEL (for messages), BASE_URL and
    ERROR (an ApiError subclass), and pass the bearer token to __init__.
    """

    SERVICE = None
    LABEL = None
    BASE_URL = None
    ERROR = ApiError
    MAX_ATTEMPTS = 3
    BACKOFF_SECONDS = 1.0
    TIMEOUT = 15

    def __init__(self, token: str):
        self.token = token

    @property
    def headers(self):
        return {
            'Authorization': f'Bearer {self.token}',
            'Content-Type': 'application/json',
        }

    def fail(self, resp):
        """Raise ERROR for a non-retryable error response."""
        raise self.ERROR(f'{self.LABEL} {resp.status_code}: {resp.text[:200]}', status=resp.status_code)

    def _send(self, method, path, body):
        try:
            resp = requests.request(method, f'{self.BASE_URL}{path}', headers=self.headers,
                                    json=body, timeout=self.TIMEOUT)
        except requests.RequestException as e:
            raise self.ERROR(f'{self.LABEL} request failed: {e}')
        if resp.status_code == 429 or resp.status_code >= 500:
            self.fail(resp)
        return resp

    def request(self, method: str, path: str, body: Dict = None):
        breaker = get_breaker(self.SERVICE)
        for attempt in range(self.MAX_ATTEMPTS):
            try:
                return breaker.call(self._send, method, path, body)
            except ApiError as e:
                if not e.retryable or attempt == self.MAX_ATTEMPTS - 1:
                    raise
                wait = self.BACKOFF_SECONDS * (2 ** attempt)
                logger.warning("%s %s %s failed (%s), retrying in %.1fs", self.LABEL, method, path, e, wait)
                time.sleep(wait)
