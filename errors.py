"""Error types raised by the gallery core"""

from typing import Optional


class GalleryError(Exception):
    """Base class for gallery errors"""


class DiscoveryError(GalleryError):
    """Directory listing could not be retrieved"""

    def __init__(self, message: str, status_text: Optional[str] = None):
        super().__init__(message)
        self.status_text = status_text


class ExportError(GalleryError):
    """Export aborted; ``asset_name`` names the first asset that failed"""

    def __init__(self, message: str, asset_name: Optional[str] = None):
        super().__init__(message)
        self.asset_name = asset_name


class ExportInProgressError(GalleryError):
    """Another export job is already running"""


class AnalysisError(GalleryError):
    """Tagging failed for a reason other than credentials"""


class AnalysisCredentialError(AnalysisError):
    """Tagging failed because the API key is missing or was rejected"""
