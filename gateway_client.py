import logging
from typing import Optional

import requests

from errors import DiscoveryError

logger = logging.getLogger("GatewayClient")


class GatewayClient:
    """HTTP access to an IPFS gateway: directory pages, HEAD probes and raw bytes"""

    def __init__(self, gateway_base: str, directory_url: str, timeout: float = 30.0, probe_timeout: float = 10.0):
        self.gateway_base = gateway_base.rstrip("/")
        self.directory_url = directory_url
        self.timeout = timeout
        self.probe_timeout = probe_timeout

    def fetch_listing(self) -> str:
        """Fetch the directory listing page as text"""
        logger.info(f"Fetching directory listing {self.directory_url}")
        try:
            response = requests.get(self.directory_url, timeout=self.timeout)
        except requests.RequestException as e:
            raise DiscoveryError(f"Failed to fetch directory: {e}") from e
        if not response.ok:
            reason = response.reason or str(response.status_code)
            raise DiscoveryError(f"Failed to fetch directory: {reason}", status_text=reason)
        return response.text

    def content_length(self, url: str) -> Optional[str]:
        """Issue a HEAD request and return the raw Content-Length header, if any.

        Transport errors propagate; callers decide whether they are fatal.
        """
        response = requests.head(url, timeout=self.probe_timeout, allow_redirects=True)
        return response.headers.get("content-length")

    def fetch_bytes(self, url: str) -> bytes:
        """GET an asset; raises requests.RequestException on transport or HTTP failure"""
        response = requests.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response.content
