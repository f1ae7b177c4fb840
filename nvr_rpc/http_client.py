# nvr_rpc/http_client.py
import asyncio
import logging
from typing import Dict, Optional

import requests

from nvr_rpc import config
from nvr_rpc.errors import TransportError

logger = logging.getLogger(__name__)


class HttpTransport:
    """
    Handles HTTP interactions with the recorder's web server.

    requests is blocking, so every call runs in a worker thread and the
    event loop stays free. A timeout is applied to every request.
    """

    JSON_HEADERS = {
        "Content-Type": "application/json",
        "Accept": "application/json, text/javascript, */*; q=0.01",
        "X-Requested-With": "XMLHttpRequest",
    }

    def __init__(self, base_url: str = config.DEFAULT_BASE_URL, timeout: float = config.HTTP_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.setdefault("User-Agent", config.USER_AGENT)

    def url_for(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _request(self, method: str, path: str, headers: Optional[Dict[str, str]] = None,
                 data: Optional[bytes] = None) -> requests.Response:
        url = self.url_for(path)
        try:
            return self._session.request(method, url, headers=headers, data=data, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"[HTTP] {method} {url} failed: {e}")
            raise TransportError(f"{method} {path} failed: {e}") from e

    async def request(self, method: str, path: str, headers: Optional[Dict[str, str]] = None,
                      data: Optional[bytes] = None) -> requests.Response:
        """Sends a request and returns the response whatever its status code."""
        return await asyncio.to_thread(self._request, method, path, headers, data)

    async def post_json(self, path: str, body: bytes) -> bytes:
        """POSTs an encoded JSON body. Non-2xx answers raise TransportError."""
        response = await self.request("POST", path, headers=self.JSON_HEADERS, data=body)
        if not response.ok:
            raise TransportError(f"HTTP {response.status_code} from {path}")
        return response.content

    def close(self):
        self._session.close()
