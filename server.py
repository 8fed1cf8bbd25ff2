import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from mcp.server.fastmcp import FastMCP

from analysis_client import AnalysisClient, GeminiProvider
from config import GalleryConfig
from gateway_client import GatewayClient
from managers.credentials import CredentialPrompt, CredentialStore
from managers.directory_source import DirectorySource
from managers.export_manager import ExportManager
from managers.gallery_state import GalleryState
from managers.metadata_enricher import MetadataEnricher
from managers.tag_workflow import TagWorkflow
from tools.analysis import register_analysis_tools
from tools.export import register_export_tools
from tools.gallery import register_gallery_tools

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("MCP_Server")

config = GalleryConfig()
gateway_client = GatewayClient(
    config.gateway_base,
    config.directory_url,
    timeout=config.request_timeout,
    probe_timeout=config.probe_timeout,
)
gallery_state = GalleryState()
directory_source = DirectorySource(gateway_client)
metadata_enricher = MetadataEnricher(gateway_client, max_workers=config.max_workers)
export_manager = ExportManager(gallery_state, gateway_client, delay=config.export_delay)
credential_store = CredentialStore()
credential_prompt = CredentialPrompt(credential_store)
analysis_client = AnalysisClient(
    credential_store,
    GeminiProvider(config.analysis_endpoint, config.analysis_model),
    timeout=config.request_timeout,
)
tag_workflow = TagWorkflow(gallery_state, analysis_client, credential_prompt)


class AppContext:
    def __init__(self, state: GalleryState, config: GalleryConfig):
        self.state = state
        self.config = config


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    """Manage application lifecycle"""
    logger.info("Starting IPFS gallery server...")
    logger.info(f"Directory: {config.directory_url} (gateway {config.gateway_base})")
    logger.debug(f"Configuration: {config.to_dict()}")
    try:
        yield AppContext(state=gallery_state, config=config)
    finally:
        # Gallery state is session-only
        logger.info("Shutting down IPFS gallery server")


mcp = FastMCP("IPFS_Gallery_MCP_Server", lifespan=app_lifespan)

register_gallery_tools(mcp, gallery_state, directory_source, metadata_enricher, gateway_client, config)
register_export_tools(mcp, gallery_state, export_manager, config)
register_analysis_tools(mcp, gallery_state, tag_workflow, credential_prompt)

if __name__ == "__main__":
    mcp.run(transport="streamable-http")
