"""Gallery asset data models"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


UNKNOWN_SIZE = "Unknown"


@dataclass(frozen=True)
class SizeInfo:
    """Result of a metadata-only size probe"""
    formatted: str
    size_bytes: int


UNKNOWN_SIZE_INFO = SizeInfo(formatted=UNKNOWN_SIZE, size_bytes=0)


@dataclass(frozen=True)
class GalleryAsset:
    """One image discovered in the remote directory listing.

    Instances are immutable; the gallery replaces an entry with
    ``dataclasses.replace`` whenever enrichment, tagging or preview decoding
    reports something new about it.
    """
    asset_id: str
    source_url: str
    display_name: str
    kind: str
    tags: Optional[Tuple[str, ...]] = None  # None until analyzed
    analyzing: bool = False
    dimensions: Optional[str] = None
    formatted_size: Optional[str] = None
    size_bytes: Optional[int] = None

    def matches(self, query: str) -> bool:
        """Case-insensitive match against the name or any tag"""
        if not query:
            return True
        needle = query.lower()
        if needle in self.display_name.lower():
            return True
        return any(needle in tag.lower() for tag in self.tags or ())

    def to_dict(self) -> dict:
        return {
            "asset_id": self.asset_id,
            "source_url": self.source_url,
            "display_name": self.display_name,
            "kind": self.kind,
            "tags": list(self.tags) if self.tags is not None else None,
            "analyzing": self.analyzing,
            "dimensions": self.dimensions,
            "formatted_size": self.formatted_size,
            "size_bytes": self.size_bytes,
        }


class GalleryStatus(str, Enum):
    """Load state of the gallery"""
    IDLE = "IDLE"
    FETCHING = "FETCHING"
    READY = "READY"
    ERROR = "ERROR"
