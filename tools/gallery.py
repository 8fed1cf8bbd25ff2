"""Gallery browsing and selection tools"""

import asyncio
import logging

import requests
from mcp.server.fastmcp import FastMCP, Image as FastMCPImage
from PIL import UnidentifiedImageError

from asset_processor import encode_preview, get_cache_key, get_image_dimensions
from config import GalleryConfig, ensure_export_dir
from errors import DiscoveryError
from gateway_client import GatewayClient
from managers.directory_source import DirectorySource
from managers.gallery_state import GalleryState
from managers.metadata_enricher import MetadataEnricher
from models.asset import GalleryStatus
from tools.helpers import build_asset_response, load_gallery, write_output

logger = logging.getLogger("MCP_Server")


def register_gallery_tools(
    mcp: FastMCP,
    state: GalleryState,
    source: DirectorySource,
    enricher: MetadataEnricher,
    gateway: GatewayClient,
    config: GalleryConfig,
):
    """Register gallery tools with the MCP server"""

    @mcp.tool(name="load_gallery")
    async def load_gallery_listing() -> dict:
        """Fetch the configured IPFS directory and (re)build the gallery.

        Returns as soon as the listing is parsed; file sizes are filled in
        afterwards by background HEAD requests (see list_assets).
        """
        try:
            assets = await asyncio.to_thread(load_gallery, source, enricher, state)
        except DiscoveryError as e:
            logger.warning(f"Discovery failed: {e}")
            return {"error": str(e), "status": state.status.value}
        except Exception as e:
            logger.exception("Unexpected discovery failure")
            state.set_status(GalleryStatus.ERROR, str(e))
            return {"error": f"Discovery failed: {e}", "status": state.status.value}
        return {
            "status": state.status.value,
            "count": len(assets),
            "directory_url": gateway.directory_url,
        }

    @mcp.tool()
    def get_gallery_status() -> dict:
        """Load status, last error and gallery stats (total, visible, selected, selected_size)."""
        return {
            "status": state.status.value,
            "error": state.error,
            "filter": state.filter_text,
            "stats": state.stats(),
            "export": state.progress.to_dict(),
        }

    @mcp.tool()
    def list_assets(visible_only: bool = True) -> dict:
        """List gallery assets.

        Args:
            visible_only: Only assets matching the current filter (default True)
        """
        assets = state.filtered() if visible_only else state.assets()
        return {
            "assets": [build_asset_response(state, asset) for asset in assets],
            "count": len(assets),
            "filter": state.filter_text,
        }

    @mcp.tool()
    def set_filter(text: str = "") -> dict:
        """Filter by file name or AI tag (case-insensitive). Selection is not affected."""
        state.set_filter(text)
        return {"filter": state.filter_text, "visible": len(state.filtered())}

    @mcp.tool()
    def toggle_selection(asset_id: str) -> dict:
        """Select or deselect one asset. Ignored while an export is running."""
        if state.get(asset_id) is None:
            return {"error": f"Asset {asset_id} not found"}
        selected = state.toggle(asset_id)
        return {
            "asset_id": asset_id,
            "selected": selected,
            "export_active": state.export_active,
            "selected_count": len(state.selected_ids()),
            "selected_size": state.selected_size(),
        }

    @mcp.tool()
    def select_all() -> dict:
        """Select every asset, or clear the selection if everything is already selected."""
        count = state.select_all()
        return {
            "selected_count": count,
            "total": len(state.assets()),
            "export_active": state.export_active,
            "selected_size": state.selected_size(),
        }

    @mcp.tool()
    def get_selection() -> dict:
        """Selected assets in display order and their aggregate size."""
        selected = state.selected_assets()
        return {
            "asset_ids": [asset.asset_id for asset in selected],
            "names": [asset.display_name for asset in selected],
            "count": len(selected),
            "selected_size": state.selected_size(),
        }

    @mcp.tool()
    def preview_asset(asset_id: str, step: int = 0, mode: str = "metadata", max_dim: int = 512):
        """Preview an asset, optionally stepping through the filtered view.

        Args:
            asset_id: Asset to start from
            step: Offset within the filtered view (1 = next, -1 = previous); wraps around
            mode: "metadata" (info only, default) or "thumb" (inline WebP thumbnail)
            max_dim: Maximum thumbnail dimension in pixels

        Decoding the image records its dimensions on the asset.
        """
        target = state.neighbor(asset_id, step) if step else state.get(asset_id)
        if target is None:
            return {"error": f"Asset {asset_id} not found in the current view"}
        if mode not in ("metadata", "thumb"):
            return {"error": f"Mode '{mode}' not supported. Use 'metadata' or 'thumb'."}

        try:
            image_bytes = gateway.fetch_bytes(target.source_url)
        except requests.RequestException as e:
            logger.warning(f"Preview fetch failed for {target.display_name}: {e}")
            return {"error": f"Failed to fetch {target.display_name}: {e}"}

        dims = get_image_dimensions(image_bytes)
        if dims:
            target = state.set_dimensions(target.asset_id, *dims) or target

        if mode == "metadata":
            return build_asset_response(state, target)

        try:
            encoded = encode_preview(
                image_bytes,
                max_dim=max_dim,
                cache_key=get_cache_key(target.asset_id, max_dim, 70),
            )
        except (ValueError, UnidentifiedImageError, OSError) as e:
            logger.warning(f"Refusing to inline preview for {target.display_name}: {e}")
            return {
                "error": f"Could not inline image: {e}",
                "asset": build_asset_response(state, target),
            }
        return FastMCPImage(data=encoded.raw_bytes, format="webp")

    @mcp.tool()
    def download_asset(asset_id: str) -> dict:
        """Save a single asset into the export directory under its file name."""
        asset = state.get(asset_id)
        if asset is None:
            return {"error": f"Asset {asset_id} not found"}
        try:
            data = gateway.fetch_bytes(asset.source_url)
            path = write_output(ensure_export_dir(config), asset.display_name, data)
        except requests.RequestException as e:
            logger.warning(f"Download failed for {asset.display_name}: {e}")
            return {"error": f"Failed to download {asset.display_name}: {e}"}
        except (OSError, ValueError) as e:
            logger.exception(f"Failed to save {asset.display_name}")
            return {"error": f"Failed to save {asset.display_name}: {e}"}
        return {"asset_id": asset_id, "path": str(path), "bytes": len(data)}
