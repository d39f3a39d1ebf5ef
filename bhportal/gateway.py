"""
Persistence gateways used by the wizard engines

A gateway creates a record on the first save and updates it afterwards;
every call carries the complete form state. Failures are raised as
``GatewayError`` with the message sent by the records service, so the
wizard can show it to the user. Nothing is retried.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from .exceptions import GatewayError

logger = logging.getLogger(__name__)


@dataclass
class GatewayResult:
    """Outcome of a successful create or update"""

    record_id: Optional[str]
    body: Dict[str, Any] = field(default_factory=dict)
    created: bool = False


class PersistenceGateway(ABC):
    """Create/update contract between a wizard and the records it saves"""

    @abstractmethod
    def create(self, payload: Dict[str, Any]) -> GatewayResult:
        """Store a new record and return its identifier"""

    @abstractmethod
    def update(self, record_id: str, payload: Dict[str, Any]) -> GatewayResult:
        """Replace the stored form of ``record_id``"""

    def save(self, record_id: Optional[str], payload: Dict[str, Any]) -> GatewayResult:
        """Create when no identifier is known yet, update otherwise"""
        if record_id is None:
            return self.create(payload)
        return self.update(record_id, payload)


class HttpPersistenceGateway(PersistenceGateway):
    """
    Gateway talking JSON to a records API over HTTP

    ``POST {base_url}/{collection}`` creates, ``PATCH {base_url}/{collection}/{id}``
    updates. The identifier is read from ``id`` or ``{record_key: {id}}`` in
    the response body.
    """

    def __init__(self,
                 base_url: str,
                 collection: str,
                 record_key: str,
                 timeout: float = 30.0,
                 headers: Optional[Dict[str, str]] = None):
        self.base_url = base_url.rstrip('/')
        self.collection = collection.strip('/')
        self.record_key = record_key
        self.timeout = timeout
        self.headers = {'Content-Type': 'application/json'}
        self.headers.update(headers or {})

    @property
    def collection_url(self) -> str:
        return f'{self.base_url}/{self.collection}'

    def create(self, payload: Dict[str, Any]) -> GatewayResult:
        body = self._request('POST', self.collection_url, payload)
        return GatewayResult(self._record_id(body), body, created=True)

    def update(self, record_id: str, payload: Dict[str, Any]) -> GatewayResult:
        body = self._request('PATCH', f'{self.collection_url}/{record_id}', payload)
        return GatewayResult(self._record_id(body) or record_id, body, created=False)

    def _request(self, method: str, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        logger.debug(f"{method} {url} (isDraft={payload.get('isDraft')})")
        try:
            response = requests.request(
                method, url, json=payload, headers=self.headers, timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"Records API request failed: {method} {url}: {e}")
            raise GatewayError(None, url=url) from e

        body = self._json(response)
        if not 200 <= response.status_code < 300:
            message = body.get('error') if isinstance(body.get('error'), str) else None
            logger.error(f"Records API answered {response.status_code} for {method} {url}: {message}")
            raise GatewayError(message, status=response.status_code, url=url)
        return body

    @staticmethod
    def _json(response: requests.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            logger.debug(f"Records API returned a non-JSON body: {response.text[:200]!r}")
            return {}
        return body if isinstance(body, dict) else {}

    def _record_id(self, body: Dict[str, Any]) -> Optional[str]:
        record = body.get(self.record_key)
        if isinstance(record, dict) and record.get('id') is not None:
            return str(record['id'])
        if body.get('id') is not None:
            return str(body['id'])
        return None
