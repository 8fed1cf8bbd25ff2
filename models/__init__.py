"""Data models for the IPFS Gallery MCP Server"""

from models.asset import (
    UNKNOWN_SIZE_INFO,
    GalleryAsset,
    GalleryStatus,
    SizeInfo,
)
from models.export import IDLE_PROGRESS, ExportProgress, ExportResult

__all__ = [
    "GalleryAsset",
    "GalleryStatus",
    "SizeInfo",
    "UNKNOWN_SIZE_INFO",
    "ExportProgress",
    "ExportResult",
    "IDLE_PROGRESS",
]
