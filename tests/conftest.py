"""Shared fixtures and fakes for the gallery tests"""

from typing import Dict, List, Optional

import pytest
import requests

from managers.gallery_state import GalleryState
from models.asset import GalleryAsset


class FakeGateway:
    """Stands in for GatewayClient without touching the network"""

    def __init__(
        self,
        listing: str = "",
        lengths: Optional[Dict[str, Optional[str]]] = None,
        contents: Optional[Dict[str, bytes]] = None,
        failing: Optional[set] = None,
        gateway_base: str = "https://ipfs.io",
    ):
        self.listing = listing
        self.lengths = lengths or {}
        self.contents = contents or {}
        self.failing = failing or set()
        self.gateway_base = gateway_base
        self.directory_url = f"{gateway_base}/ipfs/QmTest/"
        self.fetched: List[str] = []
        self.before_fetch = None

    def fetch_listing(self) -> str:
        return self.listing

    def content_length(self, url: str) -> Optional[str]:
        if url in self.failing:
            raise requests.ConnectionError(f"cannot reach {url}")
        return self.lengths.get(url)

    def fetch_bytes(self, url: str) -> bytes:
        if self.before_fetch:
            self.before_fetch(url)
        self.fetched.append(url)
        if url in self.failing:
            raise requests.HTTPError(f"404 Client Error for url: {url}")
        return self.contents.get(url, b"data:" + url.encode())


def make_asset(name: str, asset_id: Optional[str] = None, **kwargs) -> GalleryAsset:
    return GalleryAsset(
        asset_id=asset_id or f"id-{name}",
        source_url=f"https://ipfs.io/ipfs/QmTest/{name}",
        display_name=name,
        kind=name.rsplit(".", 1)[-1].upper(),
        **kwargs,
    )


@pytest.fixture
def assets():
    return [make_asset("a.png"), make_asset("b.jpg"), make_asset("c.gif")]


@pytest.fixture
def state(assets):
    gallery = GalleryState()
    gallery.load(assets)
    return gallery
