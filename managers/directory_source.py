"""Directory discovery: turn a gateway listing page into gallery assets"""

import logging
import re
import uuid
from html.parser import HTMLParser
from typing import List
from urllib.parse import urljoin

from gateway_client import GatewayClient
from models.asset import GalleryAsset

logger = logging.getLogger("MCP_Server")

IMAGE_EXTENSION_REGEX = re.compile(r"\.(jpe?g|png|gif|webp)$", re.IGNORECASE)
DEFAULT_DISPLAY_NAME = "image"
DEFAULT_KIND = "IMG"


class _AnchorCollector(HTMLParser):
    """Collects href values of <a> tags in document order"""

    def __init__(self):
        super().__init__()
        self.hrefs: List[str] = []

    def handle_starttag(self, tag, attrs):
        if tag != "a":
            return
        for name, value in attrs:
            if name == "href" and value:
                self.hrefs.append(value)


def extract_links(html: str) -> List[str]:
    parser = _AnchorCollector()
    parser.feed(html)
    parser.close()
    return parser.hrefs


def normalize_target(href: str) -> str:
    """Strip the query string (and fragment) from a link target"""
    return href.split("?", 1)[0].split("#", 1)[0]


def is_image_target(target: str) -> bool:
    return bool(IMAGE_EXTENSION_REGEX.search(target))


def derive_display_name(target: str) -> str:
    segment = target.rstrip("/").rsplit("/", 1)[-1] if target else ""
    return segment or DEFAULT_DISPLAY_NAME


def derive_kind(display_name: str) -> str:
    if "." not in display_name:
        return DEFAULT_KIND
    extension = display_name.rsplit(".", 1)[-1]
    return extension.upper() or DEFAULT_KIND


def resolve_url(target: str, gateway_base: str) -> str:
    """Absolute and protocol-relative targets keep their host, anything else is joined to the gateway origin"""
    return urljoin(gateway_base.rstrip("/") + "/", target)


def parse_listing(html: str, gateway_base: str) -> List[GalleryAsset]:
    """Build assets from a listing page, keeping the first occurrence of each image"""
    seen = set()
    assets: List[GalleryAsset] = []
    for href in extract_links(html):
        target = normalize_target(href)
        if not target or not is_image_target(target):
            continue
        source_url = resolve_url(target, gateway_base)
        if source_url in seen:
            continue
        seen.add(source_url)
        display_name = derive_display_name(target)
        assets.append(
            GalleryAsset(
                asset_id=uuid.uuid4().hex,
                source_url=source_url,
                display_name=display_name,
                kind=derive_kind(display_name),
            )
        )
    return assets


class DirectorySource:
    """Discovers the image assets listed in a remote directory"""

    def __init__(self, client: GatewayClient):
        self.client = client

    def discover(self) -> List[GalleryAsset]:
        """Fetch and parse the listing. DiscoveryError propagates unchanged."""
        html = self.client.fetch_listing()
        assets = parse_listing(html, self.client.gateway_base)
        logger.info(f"Discovered {len(assets)} images in {self.client.directory_url}")
        return assets
