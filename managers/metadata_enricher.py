"""Best-effort size enrichment for discovered assets"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Iterable

import requests

from asset_processor import format_size
from gateway_client import GatewayClient
from models.asset import UNKNOWN_SIZE_INFO, GalleryAsset, SizeInfo

logger = logging.getLogger("MCP_Server")

SizeCallback = Callable[[str, SizeInfo], None]


class MetadataEnricher:
    """Probes asset sizes with HEAD requests; never raises"""

    def __init__(self, client: GatewayClient, max_workers: int = 8):
        self.client = client
        self.max_workers = max_workers

    def probe(self, url: str) -> SizeInfo:
        """Return the formatted size of ``url`` or the unknown sentinel"""
        try:
            raw = self.client.content_length(url)
        except requests.RequestException as e:
            logger.debug(f"Size probe failed for {url}: {e}")
            return UNKNOWN_SIZE_INFO
        if not raw:
            return UNKNOWN_SIZE_INFO
        try:
            size_bytes = int(raw.strip())
        except ValueError:
            logger.debug(f"Ignoring non-numeric content-length {raw!r} for {url}")
            return UNKNOWN_SIZE_INFO
        if size_bytes < 0:
            return UNKNOWN_SIZE_INFO
        return SizeInfo(formatted=format_size(size_bytes), size_bytes=size_bytes)

    def enrich_all(self, assets: Iterable[GalleryAsset], on_result: SizeCallback) -> int:
        """Probe every asset concurrently; ``on_result`` runs as each probe completes.

        Completion order is arbitrary. Returns the number of probes delivered.
        """
        assets = list(assets)
        if not assets:
            return 0

        delivered = 0
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_id = {executor.submit(self.probe, asset.source_url): asset.asset_id for asset in assets}
            for future in as_completed(future_to_id):
                asset_id = future_to_id[future]
                try:
                    on_result(asset_id, future.result())
                    delivered += 1
                except Exception:
                    logger.exception(f"Failed to apply size for asset {asset_id}")
        logger.info(f"Size enrichment finished for {delivered}/{len(assets)} assets")
        return delivered
