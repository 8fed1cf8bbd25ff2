"""Manager classes for the IPFS Gallery MCP Server"""

from managers.credentials import CredentialPrompt, CredentialStore
from managers.gallery_state import GalleryState
from managers.directory_source import DirectorySource
from managers.metadata_enricher import MetadataEnricher
from managers.export_manager import ExportManager
from managers.tag_workflow import TagWorkflow

__all__ = [
    "CredentialPrompt",
    "CredentialStore",
    "DirectorySource",
    "ExportManager",
    "GalleryState",
    "MetadataEnricher",
    "TagWorkflow",
]
