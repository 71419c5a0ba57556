"""
HTTP transport for the sync endpoints.
"""
import logging
from typing import Any, Dict, Optional

import requests

from app.client.exceptions import SyncTransportError, SyncAuthError

logger = logging.getLogger(__name__)


class SyncApiClient:
    """
    Posts sync requests and returns decoded response bodies.

    Any object with a requests-compatible post() can stand in for the
    session, e.g. FastAPI's TestClient with base_url="".
    """

    def __init__(
        self,
        base_url: str,
        access_token: Optional[str] = None,
        timeout: float = 30,
        session=None,
        api_prefix: str = "/api",
    ):
        self.base_url = base_url.rstrip('/')
        self.api_prefix = api_prefix.rstrip('/')
        self.access_token = access_token
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()

    def _headers(self) -> Dict[str, str]:
        headers = {'Content-Type': 'application/json', 'Accept': 'application/json'}
        if self.access_token:
            headers['Authorization'] = f'Bearer {self.access_token}'
        return headers

    def ping(self) -> bool:
        """True if the server's health endpoint answers with a 2xx."""
        try:
            response = self.session.get(f"{self.base_url}/health", timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.debug(f"Health check failed: {e}")
            return False
        return 200 <= response.status_code < 300

    def post_sync(self, stream: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a sync request for one stream.

        Raises:
            SyncAuthError: On 401
            SyncTransportError: On network failure, timeout, other non-2xx
                responses or an undecodable body
        """
        url = f"{self.base_url}{self.api_prefix}/sync/{stream}"
        logger.debug(f"Posting {len(payload.get('operations', []))} {stream} operations to {url}")

        try:
            response = self.session.post(url, json=payload, headers=self._headers(), timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise SyncTransportError(f"Network error syncing {stream}: {e}") from e

        if response.status_code == 401:
            raise SyncAuthError(f"Not authenticated for {stream} sync", status_code=401)
        if not 200 <= response.status_code < 300:
            text = (response.text or "")[:200]
            raise SyncTransportError(
                f"HTTP {response.status_code} syncing {stream}: {text}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise SyncTransportError(f"Undecodable response syncing {stream}", response.status_code) from e

        if not isinstance(body, dict) or not isinstance(body.get("timestamp"), str):
            raise SyncTransportError(f"Unexpected response syncing {stream}", response.status_code)
        return body
